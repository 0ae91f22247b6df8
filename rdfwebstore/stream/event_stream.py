"""
RDF Web Store Event Stream

Wraps an asynchronous operation into an object returned to the caller right
away, which later reports completion or failure through listeners and can
also be awaited.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

FINISH = "finish"
ERROR = "error"


class EventStream:
    """
    Handle on a running store operation.

    The wrapped operation is scheduled on the running event loop when the
    handle is created and runs to completion whatever the caller does with
    the handle. Listeners registered with ``on("finish", cb)`` are called
    without arguments on success, listeners registered with
    ``on("error", cb)`` get the exception. Listeners added after the
    operation settled are still called. Awaiting the handle returns None or
    raises the failure; cancelling the awaiting task does not cancel the
    operation.
    """

    def __init__(self, operation: Awaitable[Any]):
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            if asyncio.iscoroutine(operation):
                operation.close()
            raise
        self._listeners: Dict[str, List[Callable[..., Any]]] = {FINISH: [], ERROR: []}
        self._error: Optional[BaseException] = None
        self._settled = False

        self._task = asyncio.ensure_future(operation)
        self._task.add_done_callback(self._settle)

    def on(self, event: str, callback: Callable[..., Any]) -> "EventStream":
        """Register a listener for ``finish`` or ``error``."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")

        if self._settled:
            if event == FINISH and self._error is None:
                self._loop.call_soon(callback)
            elif event == ERROR and self._error is not None:
                self._loop.call_soon(callback, self._error)
            return self

        self._listeners[event].append(callback)
        return self

    def done(self) -> bool:
        return self._settled

    def exception(self) -> Optional[BaseException]:
        """The failure of a settled operation, or None."""
        return self._error

    def _settle(self, task: asyncio.Future) -> None:
        if task.cancelled():
            self._error = asyncio.CancelledError()
        else:
            self._error = task.exception()
        self._settled = True

        if self._error is None:
            logger.debug("Store operation finished")
            for callback in self._listeners[FINISH]:
                callback()
        else:
            logger.debug(f"Store operation failed: {self._error!r}")
            for callback in self._listeners[ERROR]:
                callback(self._error)

        self._listeners = {FINISH: [], ERROR: []}

    def __await__(self):
        yield from asyncio.shield(self._task).__await__()
        return None
