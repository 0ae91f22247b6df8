"""
RDF Web Store Client Utilities

Shared error types for client operations.
"""

from .client_utils import WebStoreError, TransportError, HttpError, HttpStatusError, ParseError

__all__ = [
    'WebStoreError',
    'TransportError',
    'HttpError',
    'HttpStatusError',
    'ParseError',
]
