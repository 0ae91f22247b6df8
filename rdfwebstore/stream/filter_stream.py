"""
RDF Web Store Pattern Filter Stream

Client-side filtering of a quad stream by exact subject, predicate and object terms.
"""

from typing import Optional

from rdflib.term import Node

from .quad_stream import QuadStream


class PatternFilterStream(QuadStream):
    """
    Passes through the quads of ``source`` matching the pattern.

    Each of subject, predicate and object is either a term, compared by
    term equality, or None, matching anything. The graph component is not
    constrained.
    """

    def __init__(self, source: Optional[QuadStream] = None, subject: Optional[Node] = None,
                 predicate: Optional[Node] = None, object: Optional[Node] = None,
                 high_water_mark: Optional[int] = None):
        super().__init__(high_water_mark=high_water_mark)
        self.subject = subject
        self.predicate = predicate
        self.object = object

        if source is not None:
            source.pipe(self)

    def matches(self, quad) -> bool:
        return ((self.subject is None or quad[0] == self.subject)
                and (self.predicate is None or quad[1] == self.predicate)
                and (self.object is None or quad[2] == self.object))

    def _transform(self, item):
        return item if self.matches(item) else None
