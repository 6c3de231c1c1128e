"""
rawhttp - an HTTP client that can also put exact bytes on the wire.

Ordinary requests go through httpx. A request with the ``RAW`` method has its
body sent verbatim over a fresh connection, which makes the client usable for
protocol-compliance testing, fuzzing and request smuggling research.

    >>> from rawhttp import Client, TransportConfiguration, TLSSettings
    >>> config = TransportConfiguration(tls=TLSSettings(verify=False))
    >>> with Client(config) as client:
    ...     response = client.raw(
    ...         "https://httpbin.org:443/",
    ...         b"GET /get?a=a HTTP/1.1\\r\\nHost: httpbin.org\\r\\n\\r\\n",
    ...     )
"""

from rawhttp.clients.client import AsyncClient, Client
from rawhttp.clients.transport import RAW_METHOD, AsyncRawTransport, RawTransport
from rawhttp.config import TLSSettings, TransportConfiguration
from rawhttp.errors import (
    BodyCloseError,
    BodyReadError,
    DialError,
    RawHTTPError,
    ResponseParseError,
    TooManyArgumentsError,
    WriteError,
)

__version__ = '0.1.0'

__all__ = [
    'AsyncClient',
    'AsyncRawTransport',
    'BodyCloseError',
    'BodyReadError',
    'Client',
    'DialError',
    'RAW_METHOD',
    'RawHTTPError',
    'RawTransport',
    'ResponseParseError',
    'TLSSettings',
    'TooManyArgumentsError',
    'TransportConfiguration',
    'WriteError',
]
