"""
RDF Web Store Quad Stream

Lazy, async-iterable sequence of quads with end, error and destroy signaling.
Producers push items into the stream, a single consumer reads them with
``async for``. Streams compose with ``pipe``: errors travel downstream,
cancellation travels upstream.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class StreamState(Enum):
    """Lifecycle states of a quad stream."""
    OPEN = "open"
    ENDED = "ended"
    ERRORED = "errored"
    DESTROYED = "destroyed"


class QuadStream:
    """
    Buffered, push-driven quad stream consumed through async iteration.

    Exactly one terminal event happens: ``end`` (graceful), ``fail`` (error
    with a cause) or ``destroy`` (cancellation with an optional cause).
    Items still buffered when the stream ends are delivered before the end
    is observed; failing or destroying the stream discards them.
    """

    DEFAULT_HIGH_WATER_MARK = 64

    def __init__(self, high_water_mark: Optional[int] = None):
        self.high_water_mark = high_water_mark or self.DEFAULT_HIGH_WATER_MARK
        self.state = StreamState.OPEN
        self.error: Optional[BaseException] = None
        self.metadata: Dict[str, Any] = {}

        self._buffer = deque()
        self._readable = asyncio.Event()
        self._drained = asyncio.Event()
        self._drained.set()
        self._destroy_callbacks: List[Callable[[], Any]] = []

    @classmethod
    def from_iterable(cls, items: Iterable[Any], high_water_mark: Optional[int] = None) -> "QuadStream":
        """Create an ended stream holding the given items."""
        stream = cls(high_water_mark=high_water_mark)
        for item in items:
            stream.push(item)
        stream.end()
        return stream

    @property
    def closed(self) -> bool:
        """True once the stream reached a terminal state and nothing is left to read."""
        return self.state is not StreamState.OPEN and not self._buffer

    def _transform(self, item: Any) -> Any:
        """Map an incoming item before buffering it. Returning None drops the item."""
        return item

    # Producer side

    def push(self, item: Any) -> bool:
        """
        Add an item without waiting.

        Returns:
            False if the stream is no longer open or the buffer reached the
            high water mark, True otherwise
        """
        if self.state is not StreamState.OPEN:
            return False

        item = self._transform(item)
        if item is not None:
            self._buffer.append(item)
            self._readable.set()

        if len(self._buffer) >= self.high_water_mark:
            self._drained.clear()
            return False
        return True

    async def write(self, item: Any) -> None:
        """Add an item, waiting for the consumer while the buffer is full."""
        if not self.push(item):
            await self._drained.wait()

    def end(self) -> None:
        """Signal that no more items will be pushed."""
        if self.state is not StreamState.OPEN:
            return

        self.state = StreamState.ENDED
        self._wake()
        logger.debug(f"{self!r} ended")

    def fail(self, error: BaseException) -> None:
        """Terminate the stream with an error raised to the consumer."""
        if self.state is not StreamState.OPEN:
            return

        self.state = StreamState.ERRORED
        self.error = error
        self._buffer.clear()
        self._wake()
        logger.debug(f"{self!r} failed: {error}")

    # Consumer side

    def destroy(self, error: Optional[BaseException] = None) -> None:
        """
        Cancel the stream and release upstream resources.

        Destroying an already terminated stream is a no-op. When a cause is
        given the consumer sees it raised, otherwise iteration just stops.
        """
        if self.closed:
            return

        self.state = StreamState.DESTROYED
        self.error = error
        self._buffer.clear()
        self._wake()
        logger.debug(f"{self!r} destroyed" + (f": {error}" if error else ""))

        callbacks = self._destroy_callbacks
        self._destroy_callbacks = []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Error releasing resources of {self!r}: {e}")

    def on_destroy(self, callback: Callable[[], Any]) -> None:
        """Register a callback run once when the stream gets destroyed."""
        if self.state is StreamState.DESTROYED:
            callback()
            return
        self._destroy_callbacks.append(callback)

    def pipe(self, destination: "QuadStream") -> "QuadStream":
        """
        Pump every item of this stream into ``destination``.

        Must be called with a running event loop. An error of this stream
        fails the destination with the same cause, destroying the
        destination cancels the pump and destroys this stream.

        Returns:
            The destination stream
        """
        task = asyncio.get_running_loop().create_task(self._pump(destination))

        def release():
            if not task.done():
                task.cancel()
            self.destroy()

        destination.on_destroy(release)
        return destination

    async def _pump(self, destination: "QuadStream") -> None:
        try:
            async for item in self:
                await destination.write(item)
                if destination.state is not StreamState.OPEN:
                    break
        except Exception as e:
            destination.fail(e)
        else:
            destination.end()

    async def collect(self) -> List[Any]:
        """Read the remaining items into a list."""
        return [item async for item in self]

    async def drain(self) -> int:
        """Consume the remaining items, discarding them."""
        count = 0
        async for _ in self:
            count += 1
        return count

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        while True:
            if self._buffer:
                item = self._buffer.popleft()
                if len(self._buffer) < self.high_water_mark:
                    self._drained.set()
                return item

            if self.state is StreamState.OPEN:
                self._readable.clear()
                await self._readable.wait()
                continue

            if self.error is not None:
                raise self.error
            raise StopAsyncIteration

    def _wake(self) -> None:
        self._readable.set()
        self._drained.set()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(state={self.state.value}, buffered={len(self._buffer)})"
