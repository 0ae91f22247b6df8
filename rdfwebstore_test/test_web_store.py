"""
End-to-end tests for WebStore against the in-memory graph server.

Each test drives the store with asyncio.run and asserts the exact HTTP
requests the store sent.
"""

import asyncio

import httpx
import pytest
from rdflib import Literal, URIRef

from rdfwebstore.client.utils.client_utils import HttpError, ParseError, TransportError
from rdfwebstore.rdf.dataset import DataFactory, Quad, QuadDataset
from rdfwebstore.rdf.rdf_utils import build_accept_header
from rdfwebstore.store.web_store import WebStore, if_match_precondition
from rdfwebstore.stream.event_stream import EventStream
from rdfwebstore.stream.quad_stream import QuadStream, StreamState

from graph_server import EX, MockGraphServer, parse_body

factory = DataFactory()

S = factory.named_node(EX + '/subject')
P = factory.named_node(EX + '/predicate')
O1 = factory.literal('object 1')
O2 = factory.literal('object 2')
O3 = factory.literal('object 3')


def graph_iri(path: str) -> URIRef:
    return factory.named_node(EX + path)


def record_events(handle: EventStream) -> list:
    events = []
    handle.on('finish', lambda *args: events.append(('finish', args)))
    handle.on('error', lambda error: events.append(('error', error)))
    return events


async def settle(handle: EventStream) -> None:
    try:
        await handle
    except Exception:
        pass


async def failing_fetch(url, **kwargs):
    raise TransportError("connection refused")


# match

def test_match_uses_get_with_accept_header():
    server = MockGraphServer()
    graph = graph_iri('/get-method')
    server.set_graph(str(graph), [(S, P, O1)])

    async def scenario():
        store = server.create_store()
        return await store.match(None, None, None, graph).collect()

    quads = asyncio.run(scenario())

    assert quads == [Quad(S, P, O1, graph)]
    assert server.methods == ['GET']
    assert server.requests[0].headers['accept'] == build_accept_header()


def test_match_filters_by_pattern():
    server = MockGraphServer()
    graph = graph_iri('/quads')
    server.set_graph(str(graph), [(S, P, O1), (S, P, O2)])

    async def scenario():
        store = server.create_store()
        return await store.match(None, None, O2, graph).collect()

    assert asyncio.run(scenario()) == [Quad(S, P, O2, graph)]


def test_match_uses_graph_iri_as_base_iri():
    server = MockGraphServer()
    graph = graph_iri('/base-iri')
    server.respond('GET', str(graph), content=b'<subject> <predicate> "object".', content_type='text/turtle')

    async def scenario():
        store = server.create_store()
        return await store.match(None, None, None, graph).collect()

    assert asyncio.run(scenario()) == [Quad(S, P, Literal('object'), graph)]


def test_match_error_status_destroys_stream():
    server = MockGraphServer()
    graph = graph_iri('/status-error')
    server.respond('GET', str(graph), status=500)

    async def scenario():
        store = server.create_store()
        stream = store.match(None, None, None, graph)
        quads = []
        with pytest.raises(HttpError) as excinfo:
            async for quad in stream:
                quads.append(quad)
        assert stream.state is StreamState.DESTROYED
        return quads, excinfo.value

    quads, error = asyncio.run(scenario())

    assert quads == []
    assert error.status == 500


def test_match_request_error():
    async def scenario():
        store = WebStore(fetch=failing_fetch)
        with pytest.raises(TransportError):
            await store.match(None, None, None, graph_iri('/client-error')).collect()

    asyncio.run(scenario())


def test_match_connection_error_from_default_transport():
    server = MockGraphServer()
    graph = graph_iri('/connect-error')
    server.fail('GET', str(graph))

    async def scenario():
        store = server.create_store()
        with pytest.raises(TransportError):
            await store.match(None, None, None, graph).collect()

    asyncio.run(scenario())


def test_match_parser_error():
    server = MockGraphServer()
    graph = graph_iri('/parser-error')
    server.respond('GET', str(graph),
                   content=b'1<http://example.org/subject> <http://example.org/predicate> "object".',
                   content_type='text/turtle')

    async def scenario():
        store = server.create_store()
        with pytest.raises(ParseError):
            await store.match(None, None, None, graph).collect()

    asyncio.run(scenario())


def test_match_empty_response_ends_stream():
    server = MockGraphServer()
    graph = graph_iri('/empty')
    server.respond('GET', str(graph), status=204)

    async def scenario():
        store = server.create_store()
        return await store.match(None, None, None, graph).collect()

    assert asyncio.run(scenario()) == []


def test_destroying_match_aborts_pending_request():
    async def scenario():
        started = asyncio.Event()
        aborted = asyncio.Event()

        async def slow_fetch(url, **kwargs):
            started.set()
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                aborted.set()
                raise

        store = WebStore(fetch=slow_fetch)
        stream = store.match(None, None, None, graph_iri('/slow'))
        await started.wait()

        stream.destroy()
        stream.destroy()

        await asyncio.wait_for(aborted.wait(), 1)
        assert stream.state is StreamState.DESTROYED
        assert await stream.collect() == []

    asyncio.run(scenario())


# import

def test_import_uses_post():
    server = MockGraphServer()
    graph = graph_iri('/post-method')
    dataset = QuadDataset([Quad(S, P, O1, graph)])

    async def scenario():
        store = server.create_store()
        handle = store.import_(dataset.to_stream())
        events = record_events(handle)
        await handle
        return events

    events = asyncio.run(scenario())

    assert events == [('finish', ())]
    assert server.methods == ['POST']
    assert set(parse_body(server.requests[0])) == {(S, P, O1)}
    assert server.requests[0].headers['content-type'] == 'application/n-triples'


def test_import_truncate_uses_put():
    server = MockGraphServer()
    graph = graph_iri('/put-method')
    server.set_graph(str(graph), [(S, P, O2)])
    dataset = QuadDataset([Quad(S, P, O1, graph)])

    async def scenario():
        store = server.create_store()
        await store.import_(dataset.to_stream(), truncate=True)

    asyncio.run(scenario())

    assert server.methods == ['PUT']
    assert set(server.graphs[str(graph)]) == {(S, P, O1)}


def test_import_appends_with_post():
    server = MockGraphServer()
    graph = graph_iri('/append')
    server.set_graph(str(graph), [(S, P, O2)])

    async def scenario():
        store = server.create_store()
        await store.import_stream(QuadDataset([Quad(S, P, O1, graph)]).to_stream())

    asyncio.run(scenario())

    assert set(server.graphs[str(graph)]) == {(S, P, O1), (S, P, O2)}


def test_import_empty_stream_sends_nothing():
    server = MockGraphServer()

    async def scenario():
        store = server.create_store()
        handle = store.import_(QuadDataset().to_stream())
        events = record_events(handle)
        await handle
        return events

    assert asyncio.run(scenario()) == [('finish', ())]
    assert server.requests == []


def test_import_takes_graph_from_first_quad():
    server = MockGraphServer()
    first = graph_iri('/first')
    second = graph_iri('/second')

    async def scenario():
        store = server.create_store()
        stream = QuadStream.from_iterable([Quad(S, P, O1, first), Quad(S, P, O2, second)])
        await store.import_(stream)

    asyncio.run(scenario())

    assert [str(request.url) for request in server.requests] == [str(first)]
    assert set(server.graphs[str(first)]) == {(S, P, O1), (S, P, O2)}


def test_import_drains_echoed_response():
    server = MockGraphServer(echo=True)
    graph = graph_iri('/echo')

    async def scenario():
        store = server.create_store()
        await store.import_(QuadDataset([Quad(S, P, O1, graph)]).to_stream())

    asyncio.run(scenario())

    assert server.methods == ['POST']


def test_import_request_error():
    graph = graph_iri('/import-client-error')

    async def scenario():
        store = WebStore(fetch=failing_fetch)
        handle = store.import_(QuadDataset([Quad(S, P, O1, graph)]).to_stream())
        events = record_events(handle)
        await settle(handle)
        return events

    events = asyncio.run(scenario())

    assert len(events) == 1
    assert events[0][0] == 'error'
    assert isinstance(events[0][1], TransportError)


def test_import_error_status():
    server = MockGraphServer()
    graph = graph_iri('/import-status-error')
    server.respond('POST', str(graph), status=500)

    async def scenario():
        store = server.create_store()
        with pytest.raises(HttpError) as excinfo:
            await store.import_(QuadDataset([Quad(S, P, O1, graph)]).to_stream())
        return excinfo.value

    assert asyncio.run(scenario()).status == 500


# remove

def test_remove_fetches_and_replaces():
    server = MockGraphServer()
    graph = graph_iri('/g')
    server.set_graph(str(graph), [(S, P, O1), (S, P, O2)])

    async def scenario():
        store = server.create_store()
        handle = store.remove(QuadDataset([Quad(S, P, O1, graph)]).to_stream())
        events = record_events(handle)
        await handle
        return events

    events = asyncio.run(scenario())

    assert events == [('finish', ())]
    assert server.methods == ['GET', 'PUT']
    assert set(parse_body(server.requests_for('PUT')[0])) == {(S, P, O2)}
    assert 'if-match' not in server.requests_for('PUT')[0].headers


def test_remove_empty_stream_sends_nothing():
    server = MockGraphServer()

    async def scenario():
        store = server.create_store()
        await store.remove(QuadDataset().to_stream())

    asyncio.run(scenario())

    assert server.requests == []


def test_remove_skips_replace_if_nothing_removed():
    server = MockGraphServer()
    graph = graph_iri('/remove-no-changes')
    server.set_graph(str(graph), [(S, P, O1)])

    async def scenario():
        store = server.create_store()
        await store.remove(QuadDataset([Quad(S, P, O2, graph)]).to_stream())

    asyncio.run(scenario())

    assert server.methods == ['GET']


def test_remove_twice_writes_once():
    server = MockGraphServer()
    graph = graph_iri('/remove-twice')
    server.set_graph(str(graph), [(S, P, O1), (S, P, O2)])
    remove = QuadDataset([Quad(S, P, O1, graph)])

    async def scenario():
        store = server.create_store()
        await store.remove(remove.to_stream())
        await store.remove(remove.to_stream())

    asyncio.run(scenario())

    assert server.methods == ['GET', 'PUT', 'GET']
    assert set(server.graphs[str(graph)]) == {(S, P, O2)}


def test_remove_last_quad_replaces_with_empty_graph():
    server = MockGraphServer()
    graph = graph_iri('/remove-all')
    server.set_graph(str(graph), [(S, P, O1)])

    async def scenario():
        store = server.create_store()
        await store.remove(QuadDataset([Quad(S, P, O1, graph)]).to_stream())

    asyncio.run(scenario())

    assert server.methods == ['GET', 'PUT']
    assert len(server.graphs[str(graph)]) == 0


def test_remove_fetch_error():
    server = MockGraphServer()
    graph = graph_iri('/remove-fetch-error')
    server.respond('GET', str(graph), status=500)

    async def scenario():
        store = server.create_store()
        handle = store.remove(QuadDataset([Quad(S, P, O1, graph)]).to_stream())
        events = record_events(handle)
        await settle(handle)
        return events

    events = asyncio.run(scenario())

    assert [event for event, _ in events] == ['error']
    assert events[0][1].status == 500
    assert server.methods == ['GET']


def test_remove_replace_error():
    server = MockGraphServer()
    graph = graph_iri('/remove-replace-error')
    server.set_graph(str(graph), [(S, P, Literal('object'))])
    server.respond('PUT', str(graph), status=500)

    async def scenario():
        store = server.create_store()
        with pytest.raises(HttpError):
            await store.remove(QuadDataset([Quad(S, P, Literal('object'), graph)]).to_stream())

    asyncio.run(scenario())

    assert server.methods == ['GET', 'PUT']


def test_remove_with_if_match_precondition():
    server = MockGraphServer()
    graph = graph_iri('/conditional')
    server.set_graph(str(graph), [(S, P, O1), (S, P, O2)])
    etag = server.etag(str(graph))

    async def scenario():
        store = server.create_store(precondition=if_match_precondition)
        await store.remove(QuadDataset([Quad(S, P, O1, graph)]).to_stream())

    asyncio.run(scenario())

    put = server.requests_for('PUT')[0]
    assert put.headers['if-match'] == etag
    assert set(server.graphs[str(graph)]) == {(S, P, O2)}


def test_concurrent_write_rejected_by_precondition():
    server = MockGraphServer()
    graph = graph_iri('/race')
    server.set_graph(str(graph), [(S, P, O1), (S, P, O2)])

    def racing_precondition(graph_term, headers):
        # another writer replaces the graph between the read and the write
        server.set_graph(str(graph_term), [(S, P, O1), (S, P, O3)])
        return if_match_precondition(graph_term, headers)

    async def scenario():
        store = server.create_store(precondition=racing_precondition)
        with pytest.raises(HttpError) as excinfo:
            await store.remove(QuadDataset([Quad(S, P, O1, graph)]).to_stream())
        return excinfo.value

    assert asyncio.run(scenario()).status == 412
    assert set(server.graphs[str(graph)]) == {(S, P, O1), (S, P, O3)}


# remove_matches

def test_remove_matches_fetches_and_replaces():
    server = MockGraphServer()
    graph = graph_iri('/remove-matches-fetch-replace')
    server.set_graph(str(graph), [(S, P, O1), (S, P, O2)])

    async def scenario():
        store = server.create_store()
        await store.remove_matches(None, None, O1, graph)

    asyncio.run(scenario())

    assert server.methods == ['GET', 'PUT']
    assert set(parse_body(server.requests_for('PUT')[0])) == {(S, P, O2)}


def test_remove_matches_skips_replace_if_nothing_matches():
    server = MockGraphServer()
    graph = graph_iri('/g')
    server.set_graph(str(graph), [(S, P, O1), (S, P, O2)])

    async def scenario():
        store = server.create_store()
        handle = store.remove_matches(None, None, O3, graph)
        events = record_events(handle)
        await handle
        return events

    assert asyncio.run(scenario()) == [('finish', ())]
    assert server.methods == ['GET']


def test_remove_matches_fetch_error():
    server = MockGraphServer()
    graph = graph_iri('/remove-matches-fetch-error')
    server.respond('GET', str(graph), status=500)

    async def scenario():
        store = server.create_store()
        with pytest.raises(HttpError):
            await store.remove_matches(None, None, O1, graph)

    asyncio.run(scenario())

    assert server.methods == ['GET']


def test_remove_matches_replace_error():
    server = MockGraphServer()
    graph = graph_iri('/remove-matches-replace-error')
    server.set_graph(str(graph), [(S, P, Literal('object'))])
    server.respond('PUT', str(graph), status=500)

    async def scenario():
        store = server.create_store()
        with pytest.raises(HttpError):
            await store.remove_matches(None, None, Literal('object'), graph)

    asyncio.run(scenario())

    assert server.methods == ['GET', 'PUT']


# delete_graph

def test_delete_graph_uses_delete():
    server = MockGraphServer()
    graph = graph_iri('/delete-method')
    server.respond('DELETE', str(graph), status=201)

    async def scenario():
        store = server.create_store()
        handle = store.delete_graph(graph)
        events = record_events(handle)
        await handle
        return events

    assert asyncio.run(scenario()) == [('finish', ())]
    assert server.methods == ['DELETE']
    assert server.requests[0].content == b''


def test_delete_graph_error_status():
    server = MockGraphServer()
    graph = graph_iri('/delete-graph-status-error')
    server.respond('DELETE', str(graph), status=500)

    async def scenario():
        store = server.create_store()
        handle = store.delete_graph(graph)
        events = record_events(handle)
        await settle(handle)
        return events

    events = asyncio.run(scenario())

    assert [event for event, _ in events] == ['error']
    assert isinstance(events[0][1], HttpError)
    assert events[0][1].status == 500


def test_delete_graph_request_error():
    async def scenario():
        store = WebStore(fetch=failing_fetch)
        with pytest.raises(TransportError):
            await store.delete_graph(graph_iri('/delete-graph-client-error'))

    asyncio.run(scenario())


# round trip and lifecycle

def test_import_then_match_round_trip():
    server = MockGraphServer()
    graph = graph_iri('/round-trip')
    other = graph_iri('/other')
    dataset = QuadDataset([Quad(S, P, O1, graph), Quad(S, P, O2, other), Quad(S, P, O3, graph)])

    async def scenario():
        store = server.create_store()
        await store.import_(dataset.to_stream())
        return await QuadDataset().import_stream(store.match(None, None, None, graph))

    result = asyncio.run(scenario())

    expected = QuadDataset(Quad(quad.subject, quad.predicate, quad.object, graph) for quad in dataset)
    assert result == expected


def test_store_closes_default_transport():
    async def scenario():
        async with WebStore() as store:
            client = store.fetch.client
        return client.is_closed

    assert asyncio.run(scenario()) is True


def test_store_keeps_injected_fetch_open():
    server = MockGraphServer()

    async def scenario():
        fetch = server.create_fetch()
        async with WebStore(fetch=fetch):
            pass
        closed = fetch.client.is_closed
        await fetch.client.aclose()
        return closed

    assert asyncio.run(scenario()) is False
