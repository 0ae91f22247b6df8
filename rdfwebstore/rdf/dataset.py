"""
RDF Web Store Dataset

Quad type, in-memory quad dataset and the term/dataset factory used by the store.
Terms are plain rdflib terms.
"""

import logging
from typing import Iterable, Iterator, NamedTuple, Optional, Union

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID
from rdflib.term import Node

from ..stream.quad_stream import QuadStream

logger = logging.getLogger(__name__)


class Quad(NamedTuple):
    """Immutable (subject, predicate, object, graph) tuple."""
    subject: Node
    predicate: Node
    object: Node
    graph: Node = DATASET_DEFAULT_GRAPH_ID


def to_quad(item, graph: Optional[Node] = None) -> Quad:
    """
    Coerce a triple or quad tuple into a Quad.

    Args:
        item: 3-tuple (triple) or 4-tuple (quad)
        graph: Graph term to use, overriding any graph of the item

    Returns:
        Quad instance
    """
    if len(item) == 3:
        subject, predicate, obj = item
        item_graph = DATASET_DEFAULT_GRAPH_ID
    elif len(item) == 4:
        subject, predicate, obj, item_graph = item
    else:
        raise ValueError(f"Expected a triple or a quad, got {len(item)} components")

    return Quad(subject, predicate, obj, graph if graph is not None else item_graph)


class QuadDataset:
    """
    Insertion-ordered set of unique quads.

    Iteration order is the order in which quads were first added, so the
    first quad of a dataset built from a stream is the first quad the
    stream delivered.
    """

    def __init__(self, quads: Optional[Iterable] = None):
        self._quads = {}
        if quads is not None:
            for quad in quads:
                self.add(quad)

    async def import_stream(self, stream: QuadStream) -> "QuadDataset":
        """Add every quad of the stream, returning the dataset once the stream ended."""
        async for item in stream:
            self.add(item)
        logger.debug(f"Imported stream into dataset, size now {self.size}")
        return self

    def add(self, quad) -> "QuadDataset":
        self._quads[to_quad(quad)] = None
        return self

    def delete(self, quad) -> "QuadDataset":
        self._quads.pop(to_quad(quad), None)
        return self

    def match(self, subject: Optional[Node] = None, predicate: Optional[Node] = None,
              object: Optional[Node] = None, graph: Optional[Node] = None) -> "QuadDataset":
        """Return the quads whose constrained components equal the given terms. None matches anything."""
        return QuadDataset(
            quad for quad in self._quads
            if (subject is None or quad.subject == subject)
            and (predicate is None or quad.predicate == predicate)
            and (object is None or quad.object == object)
            and (graph is None or quad.graph == graph)
        )

    def difference(self, other: "QuadDataset") -> "QuadDataset":
        """Return the quads of this dataset not contained in ``other``."""
        return QuadDataset(quad for quad in self._quads if quad not in other)

    def equals(self, other: "QuadDataset") -> bool:
        return self.size == other.size and all(quad in other for quad in self._quads)

    @property
    def size(self) -> int:
        return len(self._quads)

    def to_stream(self) -> QuadStream:
        return QuadStream.from_iterable(list(self._quads))

    def to_graph(self, identifier: Optional[Union[URIRef, BNode]] = None) -> Graph:
        """Copy the triples of this dataset into an rdflib Graph, dropping the graph component."""
        graph = Graph(identifier=identifier)
        for quad in self._quads:
            graph.add((quad.subject, quad.predicate, quad.object))
        return graph

    def __contains__(self, quad) -> bool:
        return to_quad(quad) in self._quads

    def __iter__(self) -> Iterator[Quad]:
        return iter(list(self._quads))

    def __len__(self) -> int:
        return len(self._quads)

    def __eq__(self, other) -> bool:
        if not isinstance(other, QuadDataset):
            return NotImplemented
        return self.equals(other)

    def __repr__(self) -> str:
        return f"QuadDataset(size={self.size})"


class DataFactory:
    """Creates terms, quads and datasets."""

    def named_node(self, iri: str) -> URIRef:
        return URIRef(iri)

    def blank_node(self, value: Optional[str] = None) -> BNode:
        return BNode(value)

    def literal(self, value, language: Optional[str] = None, datatype: Optional[str] = None) -> Literal:
        return Literal(value, lang=language, datatype=URIRef(datatype) if datatype else None)

    def default_graph(self) -> URIRef:
        return DATASET_DEFAULT_GRAPH_ID

    def quad(self, subject: Node, predicate: Node, object: Node, graph: Optional[Node] = None) -> Quad:
        return Quad(subject, predicate, object, graph if graph is not None else DATASET_DEFAULT_GRAPH_ID)

    def dataset(self, quads: Optional[Iterable] = None) -> QuadDataset:
        return QuadDataset(quads)
