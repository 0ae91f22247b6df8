"""
RDF Web Store

Store over a collection of named graphs published on the web. Every named
graph is a resource at the IRI of the graph, supporting GET, POST (append),
PUT (replace) and DELETE of the whole graph. Partial removal is done by
fetching the graph, computing the remaining quads and replacing the graph
with them.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from rdflib.term import Node

from ..client.config.client_config_loader import WebStoreClientConfig
from ..client.response.handle_response import handle_response
from ..client.transport import RdfFetch
from ..rdf.dataset import DataFactory, QuadDataset
from ..stream.event_stream import EventStream
from ..stream.filter_stream import PatternFilterStream
from ..stream.quad_stream import QuadStream
from ..stream.triple_to_quad import TripleToQuadTransform

logger = logging.getLogger(__name__)

# (graph, headers of the GET response) -> extra headers for the replacing PUT
Precondition = Callable[[Node, Optional[Mapping[str, str]]], Optional[Dict[str, str]]]


def _get_header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def if_match_precondition(graph: Node, headers: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
    """Make the replace conditional on the ETag the graph had when it was read."""
    etag = _get_header(headers, 'etag')
    if etag is None:
        logger.warning(f"No ETag received for {graph}, replacing unconditionally")
        return None
    return {'If-Match': etag}


class WebStore:
    """
    Quad store backed by named graphs accessible over HTTP.

    ``match`` returns a quad stream, the mutating operations return an
    EventStream. Both are returned immediately, the work runs on the event
    loop the method was called from. Every operation addresses exactly one
    named graph; ``import_`` and ``remove`` take the graph from the first
    quad of their input stream, so the input must not mix graphs.
    """

    def __init__(self, fetch: Optional[Callable[..., Any]] = None,
                 factory: Optional[DataFactory] = None,
                 config: Optional[WebStoreClientConfig] = None,
                 precondition: Optional[Precondition] = None):
        """
        Initialize the store.

        Args:
            fetch: Async callable ``fetch(url, method=..., body=..., headers=...)``
                returning a response; defaults to an RdfFetch built from ``config``
            factory: Term and dataset factory
            config: Client configuration used for the default fetch
            precondition: Called after reading a graph for a partial removal; the
                headers it returns are sent with the replacing PUT
        """
        self.factory = factory or DataFactory()
        self.precondition = precondition

        self._owns_fetch = fetch is None
        self.fetch = fetch or RdfFetch(config=config)

    def match(self, subject: Optional[Node] = None, predicate: Optional[Node] = None,
              object: Optional[Node] = None, graph: Optional[Node] = None) -> QuadStream:
        """
        Stream the quads of ``graph`` matching subject, predicate and object.

        None matches any term. The whole graph is retrieved and filtered
        locally. Request and parse failures destroy the returned stream with
        the cause; destroying the stream aborts the request.
        """
        stream = TripleToQuadTransform(graph)
        task = asyncio.get_running_loop().create_task(
            self._match_into(stream, subject, predicate, object, graph)
        )

        def abort():
            if not task.done():
                task.cancel()

        stream.on_destroy(abort)
        return stream

    async def _match_into(self, stream: TripleToQuadTransform, subject, predicate, object, graph) -> None:
        try:
            response = await self.fetch(str(graph))
            stream.metadata['headers'] = getattr(response, 'headers', None)

            quad_stream = await handle_response(response)
            if quad_stream is None:
                stream.end()
                return

            PatternFilterStream(quad_stream, subject, predicate, object).pipe(stream)
        except Exception as e:
            logger.error(f"Failed to read graph {graph}: {e}")
            stream.destroy(e)

    def import_(self, stream: QuadStream, truncate: bool = False) -> EventStream:
        """
        Write the quads of ``stream`` to their graph.

        Args:
            stream: Quads to write, the graph is taken from the first quad
            truncate: Replace the graph (PUT) instead of appending to it (POST)
        """
        return EventStream(self._import(stream, truncate=truncate))

    import_stream = import_

    def remove(self, stream: QuadStream) -> EventStream:
        """Remove the quads of ``stream`` from their graph."""
        return EventStream(self._remove(stream))

    def remove_matches(self, subject: Optional[Node] = None, predicate: Optional[Node] = None,
                       object: Optional[Node] = None, graph: Optional[Node] = None) -> EventStream:
        """Remove the quads of ``graph`` matching subject, predicate and object."""
        return EventStream(self._remove_matches(subject, predicate, object, graph))

    def delete_graph(self, graph: Node) -> EventStream:
        """Delete the whole graph."""
        return EventStream(self._delete_graph(graph))

    async def _import(self, stream: QuadStream, truncate: bool = False) -> None:
        dataset = await self.factory.dataset().import_stream(stream)

        if dataset.size == 0:
            logger.debug("Nothing to import")
            return

        graph = next(iter(dataset)).graph
        await self._import_graph(graph, dataset, truncate=truncate)

    async def _import_graph(self, graph: Node, dataset: QuadDataset, truncate: bool = False,
                            headers: Optional[Dict[str, str]] = None) -> None:
        method = 'PUT' if truncate else 'POST'
        logger.info(f"Writing {dataset.size} quads to {graph} ({method})")

        body = dataset.to_stream().pipe(TripleToQuadTransform(graph))
        response = await self.fetch(str(graph), method=method, body=body, headers=headers)

        quad_stream = await handle_response(response)
        if quad_stream is not None:
            await quad_stream.drain()

    async def _fetch_existing(self, graph: Node) -> Tuple[QuadDataset, Optional[Mapping[str, str]]]:
        stream = self.match(None, None, None, graph)
        existing = await self.factory.dataset().import_stream(stream)
        return existing, stream.metadata.get('headers')

    def _write_headers(self, graph: Node, headers: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
        if self.precondition is None:
            return None
        return self.precondition(graph, headers)

    async def _remove(self, stream: QuadStream) -> None:
        remove = await self.factory.dataset().import_stream(stream)

        # do nothing if there are no quads
        if remove.size == 0:
            logger.debug("Nothing to remove")
            return

        graph = next(iter(remove)).graph

        existing, headers = await self._fetch_existing(graph)
        updated = existing.difference(remove)

        # don't update if there are no changes
        if updated.size == existing.size:
            logger.debug(f"None of the quads to remove are in {graph}")
            return

        await self._import_graph(graph, updated, truncate=True, headers=self._write_headers(graph, headers))

    async def _remove_matches(self, subject, predicate, object, graph) -> None:
        existing, headers = await self._fetch_existing(graph)
        remove = existing.match(subject, predicate, object)

        # don't update if there are no changes
        if remove.size == 0:
            logger.debug(f"No quads in {graph} match the pattern")
            return

        updated = existing.difference(remove)
        await self._import_graph(graph, updated, truncate=True, headers=self._write_headers(graph, headers))

    async def _delete_graph(self, graph: Node) -> None:
        logger.info(f"Deleting graph {graph}")
        response = await self.fetch(str(graph), method='DELETE')

        quad_stream = await handle_response(response)
        if quad_stream is not None:
            await quad_stream.drain()

    async def aclose(self) -> None:
        """Close the default transport, if the store created it."""
        if self._owns_fetch:
            await self.fetch.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
