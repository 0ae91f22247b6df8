"""
RDF Web Store HTTP Transport

Default fetch implementation on top of httpx.AsyncClient. Requests negotiate
RDF media types, request bodies are quad streams serialized as triples and
responses expose their body as a quad stream.
"""

import asyncio
import logging
from typing import Dict, Optional

import httpx

from .config.client_config_loader import WebStoreClientConfig
from .utils.client_utils import ParseError, TransportError
from ..rdf.dataset import QuadDataset
from ..rdf.rdf_utils import build_accept_header, parse_media_type, parse_triples, serialize_graph
from ..stream.quad_stream import QuadStream, StreamState

logger = logging.getLogger(__name__)


class RdfResponse:
    """
    HTTP response whose body can be read as a quad stream.

    The underlying httpx response is opened in streaming mode; the body is
    only read when ``quad_stream()`` gets consumed, and the connection is
    released once the stream terminates or ``aclose()`` is called.
    """

    def __init__(self, response: httpx.Response, base_iri: Optional[str] = None,
                 high_water_mark: Optional[int] = None):
        self._response = response
        self.base_iri = base_iri
        self.high_water_mark = high_water_mark

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def url(self) -> str:
        return str(self._response.url)

    def quad_stream(self) -> Optional[QuadStream]:
        """
        Materialize the body as a stream of triples.

        Returns:
            QuadStream, or None if the response has no body or no Content-Type
        """
        media_type = parse_media_type(self.headers.get('content-type'))
        if media_type is None or self.status == 204 or self.headers.get('content-length') == '0':
            return None

        stream = QuadStream(high_water_mark=self.high_water_mark)
        task = asyncio.get_running_loop().create_task(self._parse_into(stream, media_type))

        def abort():
            if not task.done():
                task.cancel()

        stream.on_destroy(abort)
        return stream

    async def _parse_into(self, stream: QuadStream, media_type: str) -> None:
        try:
            data = await self._response.aread()
            for triple in parse_triples(data, media_type, base_iri=self.base_iri or self.url):
                await stream.write(triple)
                if stream.state is not StreamState.OPEN:
                    break
        except httpx.HTTPError as e:
            logger.error(f"Failed to read response body from {self.url}: {e}")
            stream.fail(TransportError(f"Failed to read response body: {e}"))
        except ParseError as e:
            logger.error(f"Failed to parse response body from {self.url}: {e}")
            stream.fail(e)
        else:
            stream.end()
        finally:
            await self._response.aclose()

    async def aclose(self) -> None:
        await self._response.aclose()

    def __repr__(self) -> str:
        return f"RdfResponse(status={self.status}, url={self.url})"


class RdfFetch:
    """
    Fetch function for RDF resources.

    Called as ``await fetch(url, method='GET', body=None, headers=None)``.
    A body is a quad stream; its quads are sent as triples since the graph
    is implied by the URL.
    """

    def __init__(self, config: Optional[WebStoreClientConfig] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the transport.

        Args:
            config: Client configuration, loaded from the default locations if None
            client: httpx client to use; created from the configuration if None and
                closed by ``aclose()``
        """
        self.config = config or WebStoreClientConfig()
        self.config.validate_config()

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.get_timeout(),
            follow_redirects=self.config.get_follow_redirects(),
            headers={'User-Agent': self.config.get_user_agent()}
        )

    async def __call__(self, url: str, method: str = 'GET', body: Optional[QuadStream] = None,
                       headers: Optional[Dict[str, str]] = None) -> RdfResponse:
        """
        Send a request.

        Args:
            url: Resource URL
            method: HTTP method
            body: Quads to send, serialized with the configured media type
            headers: Additional request headers

        Returns:
            RdfResponse for the request, whatever its status code

        Raises:
            TransportError: If the request could not be performed
        """
        request_headers = {'Accept': build_accept_header()}
        content = None

        if body is not None:
            media_type = self.config.get_serializer_media_type()
            dataset = await QuadDataset().import_stream(body)
            content = serialize_graph(dataset.to_graph(), media_type)
            request_headers['Content-Type'] = media_type

        if headers:
            request_headers.update(headers)

        method = method.upper()
        logger.info(f"{method} {url}")

        try:
            request = self.client.build_request(method, url, headers=request_headers, content=content)
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"Request failed: {method} {url}: {e}")
            raise TransportError(f"Request failed: {method} {url}: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return RdfResponse(response, base_iri=url, high_water_mark=self.config.get_high_water_mark())

    async def aclose(self) -> None:
        """Close the httpx client if this transport created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
