"""
RDF Web Store Response Handling

Turns a transport response into either an HttpError or the quad stream of its body.
"""

import logging
from typing import Any, Optional

from ..utils.client_utils import HttpError
from ...stream.quad_stream import QuadStream

logger = logging.getLogger(__name__)


async def _release(response: Any) -> None:
    aclose = getattr(response, 'aclose', None)
    if callable(aclose):
        await aclose()


async def handle_response(response: Any) -> Optional[QuadStream]:
    """
    Check the status of a response and expose its body.

    Args:
        response: Object with a numeric ``status`` and optionally a
            ``quad_stream()`` method

    Returns:
        The body as a QuadStream, or None if the response carries no quads

    Raises:
        HttpError: If the status code is above 299
    """
    status = response.status
    url = getattr(response, 'url', None)

    if status > 299:
        logger.warning(f"HTTP error {status}" + (f" from {url}" if url else ""))
        await _release(response)
        raise HttpError(status, url)

    quad_stream = getattr(response, 'quad_stream', None)
    stream = quad_stream() if callable(quad_stream) else None

    if stream is None:
        await _release(response)

    return stream
