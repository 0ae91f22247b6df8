"""
RDF Web Store Triple-to-Quad Transform

Stream stage attaching a fixed graph term to every incoming triple or quad.
"""

from typing import Optional

from rdflib.term import Node

from .quad_stream import QuadStream
from ..rdf.dataset import Quad, to_quad


class TripleToQuadTransform(QuadStream):
    """Quad stream whose items all carry the graph term given at construction."""

    def __init__(self, graph: Node, high_water_mark: Optional[int] = None):
        super().__init__(high_water_mark=high_water_mark)
        self.graph = graph

    def _transform(self, item) -> Quad:
        return to_quad(item, graph=self.graph)

    def __repr__(self) -> str:
        return f"TripleToQuadTransform(graph={self.graph}, state={self.state.value})"
