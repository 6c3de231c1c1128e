"""
Transport configuration.

A :class:`TransportConfiguration` is built once by the caller and handed to
the transport. The raw wire path only ever reads :attr:`TransportConfiguration.tls`;
every other field exists to configure the httpx delegate that serves ordinary
requests.
"""

import ssl
from dataclasses import dataclass, field
from typing import Optional, Union

import httpx

from rawhttp.utils import tls


@dataclass(frozen=True)
class TLSSettings:
    """TLS settings shared by the raw path and the delegate.

    Attributes:
        verify: Whether to verify server certificates. Turn this off to talk to
            self-signed or otherwise non-conforming endpoints.
        ca_file: CA bundle used instead of the system trust store
        cert_file: Client certificate (PEM)
        key_file: Private key for ``cert_file``
    """

    verify: bool = True
    ca_file: Optional[str] = None
    cert_file: Optional[str] = None
    key_file: Optional[str] = None

    def ssl_context(self, alpn_protocols: Optional[list[str]] = None) -> ssl.SSLContext:
        """Build a fresh SSL context from these settings."""
        return tls.create_ssl_context(
            alpn_protocols=alpn_protocols,
            verify=self.verify,
            ca_file=self.ca_file,
            cert_file=self.cert_file,
            key_file=self.key_file,
        )

    def raw_ssl_context(self) -> ssl.SSLContext:
        """Build the SSL context used by the raw wire path (HTTP/1.1 only)."""
        return tls.get_http1_ssl_context(
            verify=self.verify,
            ca_file=self.ca_file,
            cert_file=self.cert_file,
            key_file=self.key_file,
        )


@dataclass(frozen=True)
class TransportConfiguration:
    """Immutable transport settings.

    Attributes:
        tls: TLS settings, the only field the raw path reads
        http2: Let the delegate negotiate HTTP/2
        disable_keep_alives: Make the delegate open a new connection per request
        max_connections: Delegate pool size
        max_keepalive_connections: Idle connections the delegate may keep
        keepalive_expiry: Seconds an idle delegate connection is kept
        proxy: Proxy URL or ``httpx.Proxy`` (which carries proxy headers)
        local_address: Local address the delegate binds to
    """

    tls: TLSSettings = field(default_factory=TLSSettings)
    http2: bool = False
    disable_keep_alives: bool = False
    max_connections: Optional[int] = 100
    max_keepalive_connections: Optional[int] = 20
    keepalive_expiry: Optional[float] = 90.0
    proxy: Optional[Union[str, httpx.Proxy]] = None
    local_address: Optional[str] = None

    @property
    def limits(self) -> httpx.Limits:
        """Connection pool limits for the delegate."""
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=0 if self.disable_keep_alives else self.max_keepalive_connections,
            keepalive_expiry=self.keepalive_expiry,
        )

    def _delegate_options(self) -> dict:
        return {
            'verify': self.tls.ssl_context(),
            'http2': self.http2,
            'limits': self.limits,
            'proxy': self.proxy,
            'local_address': self.local_address,
        }

    def build_delegate(self) -> httpx.HTTPTransport:
        """Build the blocking httpx transport used for ordinary requests."""
        return httpx.HTTPTransport(**self._delegate_options())

    def build_async_delegate(self) -> httpx.AsyncHTTPTransport:
        """Build the asyncio httpx transport used for ordinary requests."""
        return httpx.AsyncHTTPTransport(**self._delegate_options())
