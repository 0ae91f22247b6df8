"""
RDF Utilities for the RDF Web Store

Media type registry, content negotiation helpers and rdflib based parsing and
serialization of graph payloads.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from rdflib import Dataset, Graph

from ..client.utils.client_utils import ParseError

logger = logging.getLogger(__name__)


class RDFFormat(Enum):
    """Supported RDF formats, valued by their rdflib plugin name."""
    TURTLE = "turtle"
    XML = "xml"
    N3 = "n3"
    NT = "nt"
    JSON_LD = "json-ld"
    TRIG = "trig"
    NQUADS = "nquads"


# Media type -> format, in Accept header preference order
_MEDIATYPE_TO_RDFFORMAT: Dict[str, RDFFormat] = {
    "text/turtle": RDFFormat.TURTLE,
    "application/n-triples": RDFFormat.NT,
    "application/ld+json": RDFFormat.JSON_LD,
    "application/rdf+xml": RDFFormat.XML,
    "text/n3": RDFFormat.N3,
    "application/trig": RDFFormat.TRIG,
    "application/n-quads": RDFFormat.NQUADS,
}

_QUAD_FORMATS = (RDFFormat.TRIG, RDFFormat.NQUADS)

PARSER_MEDIA_TYPES: List[str] = list(_MEDIATYPE_TO_RDFFORMAT)
SERIALIZER_MEDIA_TYPES: List[str] = [
    media_type for media_type, rdf_format in _MEDIATYPE_TO_RDFFORMAT.items()
    if rdf_format not in _QUAD_FORMATS
]


def parse_media_type(content_type: Optional[str]) -> Optional[str]:
    """Strip parameters from a Content-Type value and normalize its case."""
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower() or None


def format_for_media_type(media_type: Optional[str]) -> Optional[RDFFormat]:
    return _MEDIATYPE_TO_RDFFORMAT.get(parse_media_type(media_type))


def build_accept_header(media_types: Optional[Iterable[str]] = None) -> str:
    """Accept header listing every parser media type."""
    return ", ".join(media_types if media_types is not None else PARSER_MEDIA_TYPES)


def parse_triples(data: bytes, media_type: str, base_iri: Optional[str] = None) -> Iterator[Tuple]:
    """Parse a graph payload.

    Quad formats are accepted as well, their graph component is dropped
    since the graph of a payload is the resource it was retrieved from.

    Args:
        data: Raw response body
        media_type: Media type of the body, parameters allowed
        base_iri: Base IRI for relative references

    Returns:
        Iterator over (subject, predicate, object) tuples

    Raises:
        ParseError: If the media type is unknown or the body is malformed
    """
    rdf_format = format_for_media_type(media_type)
    if rdf_format is None:
        raise ParseError(f"No parser registered for media type: {media_type}")

    try:
        if rdf_format in _QUAD_FORMATS:
            dataset = Dataset()
            dataset.parse(data=data, format=rdf_format.value, publicID=base_iri)
            triples = [(s, p, o) for s, p, o, _ in dataset.quads((None, None, None, None))]
        else:
            graph = Graph()
            graph.parse(data=data, format=rdf_format.value, publicID=base_iri)
            triples = list(graph)
    except Exception as e:
        raise ParseError(f"Failed to parse {parse_media_type(media_type)} payload: {e}") from e

    logger.debug(f"Parsed {len(triples)} triples from {parse_media_type(media_type)} payload")
    return iter(triples)


def serialize_graph(graph: Graph, media_type: str) -> bytes:
    """Serialize the triples of a graph into the given media type."""
    rdf_format = format_for_media_type(media_type)
    if rdf_format is None or parse_media_type(media_type) not in SERIALIZER_MEDIA_TYPES:
        raise ValueError(f"No serializer registered for media type: {media_type}")

    return graph.serialize(format=rdf_format.value, encoding="utf-8")
