"""
httpx transports that add the RAW pseudo-method.

A request whose method is ``RAW`` (any case) has its body written verbatim to
a fresh connection and the reply parsed back into an ``httpx.Response``.
Every other request is handed to a conventional httpx transport untouched.

Note that sending a RAW request mutates it: once its body has been captured
the request's stream is replaced by an empty one, so ``request.content`` is
``b''`` afterwards.
"""

from typing import Optional

import httpx

from rawhttp.clients.connection import aprovision, provision
from rawhttp.clients.wire import aexchange, arehydrate, exchange, framing_method, rehydrate
from rawhttp.config import TransportConfiguration
from rawhttp.errors import BodyCloseError, BodyReadError, RawHTTPError
from rawhttp.utils.logging import get_logger, log_raw_request

RAW_METHOD = 'RAW'

# httpx drops a scheme's default port from URLs, put it back for the raw dial
DEFAULT_PORTS = {'http': 80, 'https': 443}


def is_raw(method: str) -> bool:
    """Return whether ``method`` selects the raw wire path."""
    return method.upper() == RAW_METHOD


def raw_authority(url: httpx.URL) -> str:
    """Build the ``host:port`` a raw request dials.

    For schemes without a known default the port must be explicit in the
    URL; without one the authority carries no port and dialing fails.
    """
    host = url.host
    if ':' in host:
        host = f'[{host}]'
    port = url.port or DEFAULT_PORTS.get(url.scheme)
    return f'{host}:{port}' if port else host


def _empty_body(request: httpx.Request) -> None:
    # Leave the request looking already read, with nothing left in it.
    # read() keeps a body httpx already loaded, so the cache is reset here.
    request.stream = httpx.ByteStream(b'')
    request._content = b''


class RawTransport(httpx.BaseTransport):
    """Blocking transport dispatching between the raw path and a delegate.

    Args:
        config: Transport configuration. The raw path uses its TLS settings,
            the delegate is built from the rest.
        delegate: Transport for ordinary requests; defaults to
            ``config.build_delegate()``
    """

    def __init__(
        self,
        config: TransportConfiguration,
        delegate: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        self.delegate = delegate if delegate is not None else config.build_delegate()
        self.logger = get_logger()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if not is_raw(request.method):
            return self.delegate.handle_request(request)

        payload = self._capture_payload(request)
        return self._send_raw(request, payload)

    def _capture_payload(self, request: httpx.Request) -> bytes:
        stream = request.stream
        try:
            payload = request.read()
        except Exception as e:
            raise BodyReadError(f"Error reading raw request body: {e}") from e

        if isinstance(stream, httpx.SyncByteStream):
            try:
                stream.close()
            except Exception as e:
                raise BodyCloseError(f"Error closing raw request body: {e}") from e

        _empty_body(request)
        return payload

    def _send_raw(self, request: httpx.Request, payload: bytes) -> httpx.Response:
        timeouts = request.extensions.get('timeout', {})
        authority = raw_authority(request.url)
        log_raw_request(self.logger, authority, payload)

        try:
            with provision(request.url.scheme, authority, self.config.tls, timeouts.get('connect')) as connection:
                pending = exchange(
                    connection,
                    payload,
                    method=framing_method(payload),
                    write_timeout=timeouts.get('write'),
                    read_timeout=timeouts.get('read'),
                )
                return rehydrate(pending, request, read_timeout=timeouts.get('read'))
        except RawHTTPError as e:
            self.logger.debug(f"Raw request to {authority} failed: {e}")
            raise

    def close(self) -> None:
        self.delegate.close()


class AsyncRawTransport(httpx.AsyncBaseTransport):
    """Asyncio transport dispatching between the raw path and a delegate.

    Args:
        config: Transport configuration
        delegate: Transport for ordinary requests; defaults to
            ``config.build_async_delegate()``
    """

    def __init__(
        self,
        config: TransportConfiguration,
        delegate: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.delegate = delegate if delegate is not None else config.build_async_delegate()
        self.logger = get_logger()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if not is_raw(request.method):
            return await self.delegate.handle_async_request(request)

        payload = await self._capture_payload(request)
        return await self._send_raw(request, payload)

    async def _capture_payload(self, request: httpx.Request) -> bytes:
        stream = request.stream
        try:
            payload = await request.aread()
        except Exception as e:
            raise BodyReadError(f"Error reading raw request body: {e}") from e

        if isinstance(stream, httpx.AsyncByteStream):
            try:
                await stream.aclose()
            except Exception as e:
                raise BodyCloseError(f"Error closing raw request body: {e}") from e

        _empty_body(request)
        return payload

    async def _send_raw(self, request: httpx.Request, payload: bytes) -> httpx.Response:
        timeouts = request.extensions.get('timeout', {})
        authority = raw_authority(request.url)
        log_raw_request(self.logger, authority, payload)

        try:
            connection = await aprovision(request.url.scheme, authority, self.config.tls, timeouts.get('connect'))
            async with connection:
                pending = await aexchange(
                    connection,
                    payload,
                    method=framing_method(payload),
                    write_timeout=timeouts.get('write'),
                    read_timeout=timeouts.get('read'),
                )
                return await arehydrate(pending, request, read_timeout=timeouts.get('read'))
        except RawHTTPError as e:
            self.logger.debug(f"Raw request to {authority} failed: {e}")
            raise

    async def aclose(self) -> None:
        await self.delegate.aclose()
