"""
RDF Web Store Client Utilities

Error types shared by the transport, the response handling and the store.
"""

from typing import Optional


class WebStoreError(Exception):
    """Base exception for RDF web store errors."""
    pass


class TransportError(WebStoreError):
    """Raised when the HTTP request itself fails (connection, DNS, timeout)."""
    pass


class HttpError(WebStoreError):
    """Raised for any response with a status code above 299."""

    def __init__(self, status: int, url: Optional[str] = None, message: Optional[str] = None):
        self.status = status
        self.url = url
        if message is None:
            message = f"http error {status}" + (f" for {url}" if url else "")
        super().__init__(message)


# Name used for the status failure in protocol descriptions
HttpStatusError = HttpError


class ParseError(WebStoreError):
    """Raised when a response body can not be parsed into quads."""
    pass
