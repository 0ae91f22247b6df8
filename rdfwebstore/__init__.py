"""
RDF Web Store: a quad store over named graphs published on the web.
"""

__version__ = "0.1.0"

from rdfwebstore.client.config.client_config_loader import WebStoreClientConfig, ClientConfigurationError
from rdfwebstore.client.response.handle_response import handle_response
from rdfwebstore.client.transport import RdfFetch, RdfResponse
from rdfwebstore.client.utils.client_utils import (
    WebStoreError,
    TransportError,
    HttpError,
    HttpStatusError,
    ParseError,
)
from rdfwebstore.rdf.dataset import DataFactory, Quad, QuadDataset
from rdfwebstore.store.web_store import WebStore, if_match_precondition
from rdfwebstore.stream.event_stream import EventStream
from rdfwebstore.stream.filter_stream import PatternFilterStream
from rdfwebstore.stream.quad_stream import QuadStream, StreamState
from rdfwebstore.stream.triple_to_quad import TripleToQuadTransform

__all__ = [
    "WebStore",
    "if_match_precondition",
    # Streams
    "QuadStream",
    "StreamState",
    "TripleToQuadTransform",
    "PatternFilterStream",
    "EventStream",
    # Data model
    "DataFactory",
    "Quad",
    "QuadDataset",
    # Transport
    "RdfFetch",
    "RdfResponse",
    "handle_response",
    "WebStoreClientConfig",
    "ClientConfigurationError",
    # Errors
    "WebStoreError",
    "TransportError",
    "HttpError",
    "HttpStatusError",
    "ParseError",
]
