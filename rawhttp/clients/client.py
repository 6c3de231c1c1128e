"""
Client wrappers around the RAW-capable transports.

:class:`Client` and :class:`AsyncClient` wrap ``httpx.Client`` /
``httpx.AsyncClient`` (timeouts, cookies, redirect policy) and add verb
shortcuts plus :meth:`raw` for sending exact bytes.
"""

from abc import ABC, abstractmethod
from typing import IO, Any, Awaitable, Iterable, Mapping, Optional, Tuple, Union

import httpx

from rawhttp.clients.transport import RAW_METHOD, AsyncRawTransport, RawTransport, is_raw
from rawhttp.config import TransportConfiguration
from rawhttp.errors import BodyReadError, TooManyArgumentsError

DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_REDIRECTS = 10

Body = Union[bytes, str, IO[bytes], Iterable[bytes]]
Headers = Mapping[str, str]
ResponseOrAwaitable = Union[httpx.Response, Awaitable[httpx.Response]]


def _single_header_map(verb: str, headers: Tuple[Headers, ...]) -> Optional[dict]:
    if len(headers) > 1:
        raise TooManyArgumentsError(f"{verb}() takes at most one header map, got {len(headers)}")
    return dict(headers[0]) if headers else None


def _with_content_type(content_type: str, headers: Optional[dict]) -> httpx.Headers:
    # Names compare case-insensitively, so a caller's content-type wins
    merged = httpx.Headers({'Content-Type': content_type})
    if headers:
        merged.update(headers)
    return merged


def _send_options(request: httpx.Request) -> dict:
    # A RAW request's body is gone once sent, so it is never redirected
    return {'follow_redirects': False} if is_raw(request.method) else {}


class _VerbMethods(ABC):
    """Verb shortcuts shared by the blocking and the asyncio client.

    Each shortcut returns whatever :meth:`request` returns, i.e. a response
    for :class:`Client` and an awaitable for :class:`AsyncClient`.
    """

    @abstractmethod
    def request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        body: Optional[Body] = None,
        headers: Optional[Headers] = None,
    ) -> ResponseOrAwaitable:
        """Send a request; implemented by each client."""
        pass

    def get(self, url: Union[str, httpx.URL], *headers: Headers) -> ResponseOrAwaitable:
        return self.request('GET', url, headers=_single_header_map('get', headers))

    def head(self, url: Union[str, httpx.URL], *headers: Headers) -> ResponseOrAwaitable:
        return self.request('HEAD', url, headers=_single_header_map('head', headers))

    def options(self, url: Union[str, httpx.URL], *headers: Headers) -> ResponseOrAwaitable:
        return self.request('OPTIONS', url, headers=_single_header_map('options', headers))

    def delete(self, url: Union[str, httpx.URL], *headers: Headers) -> ResponseOrAwaitable:
        return self.request('DELETE', url, headers=_single_header_map('delete', headers))

    def trace(self, url: Union[str, httpx.URL], *headers: Headers) -> ResponseOrAwaitable:
        return self.request('TRACE', url, headers=_single_header_map('trace', headers))

    def post(
        self,
        url: Union[str, httpx.URL],
        content_type: str,
        body: Optional[Body] = None,
        *headers: Headers,
    ) -> ResponseOrAwaitable:
        merged = _with_content_type(content_type, _single_header_map('post', headers))
        return self.request('POST', url, body, merged)

    def put(
        self,
        url: Union[str, httpx.URL],
        content_type: str,
        body: Optional[Body] = None,
        *headers: Headers,
    ) -> ResponseOrAwaitable:
        merged = _with_content_type(content_type, _single_header_map('put', headers))
        return self.request('PUT', url, body, merged)

    def patch(
        self,
        url: Union[str, httpx.URL],
        content_type: str,
        body: Optional[Body] = None,
        *headers: Headers,
    ) -> ResponseOrAwaitable:
        merged = _with_content_type(content_type, _single_header_map('patch', headers))
        return self.request('PATCH', url, body, merged)

    def connect(self, url: Union[str, httpx.URL]) -> ResponseOrAwaitable:
        return self.request('CONNECT', url)

    def raw(self, url: Union[str, httpx.URL], body: Body) -> ResponseOrAwaitable:
        """Send ``body`` to the host and port of ``url`` exactly as given.

        ``body`` must hold the complete request: request line, headers, the
        blank line and any entity body. Nothing is added or checked. Only the
        scheme, host and port of ``url`` are used.

        httpx drops default ports from URLs, so an ``http`` or ``https`` URL
        without a port dials 80 or 443. Any other scheme needs an explicit
        port, otherwise a :class:`~rawhttp.errors.DialError` is raised.
        """
        return self.request(RAW_METHOD, url, body)


class Client(_VerbMethods):
    """Blocking HTTP client with RAW support.

    Args:
        config: Transport configuration
        transport: Transport to use instead of ``RawTransport(config)``
        timeout: Timeout applied to each request (float or ``httpx.Timeout``)
        follow_redirects: Whether ordinary requests follow redirects
        max_redirects: Redirect limit for ordinary requests
        cookies: Cookie jar applied to ordinary requests
    """

    def __init__(
        self,
        config: TransportConfiguration,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Union[float, httpx.Timeout, None] = DEFAULT_TIMEOUT,
        follow_redirects: bool = False,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        cookies: Optional[httpx.Cookies] = None,
    ) -> None:
        self.config = config
        self.transport = transport if transport is not None else RawTransport(config)
        self._client = httpx.Client(
            transport=self.transport,
            timeout=timeout,
            follow_redirects=follow_redirects,
            max_redirects=max_redirects,
            cookies=cookies,
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def build_request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        body: Optional[Body] = None,
        headers: Optional[Headers] = None,
    ) -> httpx.Request:
        return self._client.build_request(method.upper(), url, content=body, headers=headers)

    def do(self, request: httpx.Request) -> httpx.Response:
        """Send a prepared request."""
        return self._client.send(request, **_send_options(request))

    def request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        body: Optional[Body] = None,
        headers: Optional[Headers] = None,
    ) -> httpx.Response:
        return self.do(self.build_request(method, url, body, headers))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> 'Client':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AsyncClient(_VerbMethods):
    """Asyncio HTTP client with RAW support.

    Takes the same arguments as :class:`Client`. File-like bodies are read
    up front since httpx cannot stream them asynchronously.
    """

    def __init__(
        self,
        config: TransportConfiguration,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Union[float, httpx.Timeout, None] = DEFAULT_TIMEOUT,
        follow_redirects: bool = False,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        cookies: Optional[httpx.Cookies] = None,
    ) -> None:
        self.config = config
        self.transport = transport if transport is not None else AsyncRawTransport(config)
        self._client = httpx.AsyncClient(
            transport=self.transport,
            timeout=timeout,
            follow_redirects=follow_redirects,
            max_redirects=max_redirects,
            cookies=cookies,
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def build_request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        body: Optional[Body] = None,
        headers: Optional[Headers] = None,
    ) -> httpx.Request:
        if hasattr(body, 'read'):
            try:
                body = body.read()
            except Exception as e:
                raise BodyReadError(f"Error reading request body: {e}") from e
        return self._client.build_request(method.upper(), url, content=body, headers=headers)

    async def do(self, request: httpx.Request) -> httpx.Response:
        """Send a prepared request."""
        return await self._client.send(request, **_send_options(request))

    async def request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        body: Optional[Body] = None,
        headers: Optional[Headers] = None,
    ) -> httpx.Response:
        return await self.do(self.build_request(method, url, body, headers))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> 'AsyncClient':
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
