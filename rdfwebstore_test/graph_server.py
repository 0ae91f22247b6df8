"""
In-memory named graph server for tests.

Serves one rdflib Graph per URL through httpx.MockTransport and records every
request, so tests can assert the exact sequence of calls a store makes.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

import httpx
from rdflib import Graph

from rdfwebstore.client.transport import RdfFetch
from rdfwebstore.rdf.rdf_utils import format_for_media_type
from rdfwebstore.store.web_store import WebStore

EX = 'http://example.org'


def parse_body(request: httpx.Request) -> Graph:
    """Parse the triples a client sent in a request body."""
    graph = Graph()
    if request.content.strip():
        rdf_format = format_for_media_type(request.headers['content-type'])
        graph.parse(data=request.content, format=rdf_format.value)
    return graph


class MockGraphServer:
    """Graph store protocol server keeping graphs in memory."""

    def __init__(self, echo: bool = False):
        self.graphs: Dict[str, Graph] = {}
        self.versions: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []
        self.overrides: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.echo = echo

    def set_graph(self, url: str, triples: Iterable[tuple]) -> None:
        graph = Graph()
        for triple in triples:
            graph.add(triple)
        self.graphs[url] = graph
        self._bump(url)

    def respond(self, method: str, url: str, status: int = 200, content: bytes = b'',
                content_type: Optional[str] = None) -> None:
        """Answer every ``method`` request on ``url`` with a fixed response."""
        headers = {'Content-Type': content_type} if content_type else {}
        self.overrides[(method, url)] = lambda request: httpx.Response(status, content=content, headers=headers)

    def fail(self, method: str, url: str) -> None:
        """Make ``method`` requests on ``url`` fail to connect."""
        def raise_connect_error(request):
            raise httpx.ConnectError("connection refused", request=request)
        self.overrides[(method, url)] = raise_connect_error

    def requests_for(self, method: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == method]

    @property
    def methods(self) -> List[str]:
        return [request.method for request in self.requests]

    def etag(self, url: str) -> str:
        return f'"{self.versions.get(url, 0)}"'

    def _bump(self, url: str) -> None:
        self.versions[url] = self.versions.get(url, 0) + 1

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        override = self.overrides.get((request.method, url))
        if override is not None:
            return override(request)

        if_match = request.headers.get('if-match')
        if if_match is not None and if_match != self.etag(url):
            return httpx.Response(412)

        if request.method == 'GET':
            graph = self.graphs.get(url)
            if graph is None:
                return httpx.Response(404)
            return self._graph_response(graph, url)

        if request.method in ('PUT', 'POST'):
            received = parse_body(request)
            created = url not in self.graphs
            if request.method == 'PUT' or created:
                self.graphs[url] = received
            else:
                for triple in received:
                    self.graphs[url].add(triple)
            self._bump(url)

            if self.echo:
                return self._graph_response(self.graphs[url], url)
            return httpx.Response(201 if created else 204)

        if request.method == 'DELETE':
            if self.graphs.pop(url, None) is None:
                return httpx.Response(404)
            self._bump(url)
            return httpx.Response(204)

        return httpx.Response(405)

    def _graph_response(self, graph: Graph, url: str) -> httpx.Response:
        return httpx.Response(
            200,
            content=graph.serialize(format='nt', encoding='utf-8'),
            headers={'Content-Type': 'application/n-triples', 'ETag': self.etag(url)}
        )

    def create_fetch(self) -> RdfFetch:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return RdfFetch(client=client)

    def create_store(self, **kwargs) -> WebStore:
        return WebStore(fetch=self.create_fetch(), **kwargs)
