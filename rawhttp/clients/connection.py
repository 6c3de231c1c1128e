"""
Connection provisioning for the raw wire path.

Every raw exchange gets its own connection: plain TCP for any scheme but
``https``, TLS for ``https``. Connections are never pooled or reused and are
meant to be used as context managers so they are closed on every exit path.
"""

import asyncio
import socket
import ssl
from typing import Optional, Tuple

from rawhttp.config import TLSSettings
from rawhttp.errors import DialError
from rawhttp.utils import tls
from rawhttp.utils.logging import get_logger

READ_SIZE = 65536

# Raised by the ssl module when the peer closes without a close_notify
_SSL_EOF_ERRORS = (ssl.SSLEOFError, ssl.SSLZeroReturnError)


def split_authority(authority: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6]:port``) into host and port.

    Raises:
        DialError: If the authority has no port or the port is not a number
    """
    host, sep, port_str = authority.rpartition(':')
    if not sep or not host or (host.startswith('[') != host.endswith(']')):
        raise DialError(f"Missing port in address: {authority!r}")
    if host.startswith('['):
        host = host[1:-1]
    elif ':' in host:
        # Bare IPv6 literal without brackets, the last group is not a port
        raise DialError(f"Missing port in address: {authority!r}")
    if not port_str.isdigit() or not 0 < int(port_str) < 65536:
        raise DialError(f"Invalid port in address: {authority!r}")
    return host, int(port_str)


class Connection:
    """A blocking connection owned by exactly one raw exchange."""

    def __init__(self, sock: socket.socket, authority: str) -> None:
        self._sock = sock
        self.authority = authority
        self.closed = False

    @property
    def is_tls(self) -> bool:
        return isinstance(self._sock, ssl.SSLSocket)

    def send(self, data: bytes, timeout: Optional[float] = None) -> int:
        """Write all of ``data`` in one call, or raise.

        A failed or timed-out write is never resumed, so the peer may have
        received a prefix of ``data``.
        """
        self._sock.settimeout(timeout)
        self._sock.sendall(data)
        return len(data)

    def recv(self, max_size: int = READ_SIZE, timeout: Optional[float] = None) -> bytes:
        """Receive up to ``max_size`` bytes; an empty result means EOF."""
        self._sock.settimeout(timeout)
        try:
            return self._sock.recv(max_size)
        except _SSL_EOF_ERRORS:
            return b''

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        get_logger().debug(f"Closing connection to {self.authority}")
        self._sock.close()

    def __enter__(self) -> 'Connection':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AsyncConnection:
    """An asyncio connection owned by exactly one raw exchange."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        authority: str,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self.authority = authority
        self.closed = False

    @property
    def is_tls(self) -> bool:
        return self._writer.get_extra_info('ssl_object') is not None

    async def send(self, data: bytes, timeout: Optional[float] = None) -> int:
        """Write ``data`` and wait for the transport to flush it."""
        self._writer.write(data)
        await asyncio.wait_for(self._writer.drain(), timeout=timeout)
        return len(data)

    async def recv(self, max_size: int = READ_SIZE, timeout: Optional[float] = None) -> bytes:
        """Receive up to ``max_size`` bytes; an empty result means EOF."""
        try:
            return await asyncio.wait_for(self._reader.read(max_size), timeout=timeout)
        except _SSL_EOF_ERRORS:
            return b''

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger = get_logger()
        logger.debug(f"Closing connection to {self.authority}")
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (OSError, ssl.SSLError) as e:
            # The socket is released either way; this is a failed TLS shutdown
            logger.debug(f"Error closing connection to {self.authority}: {e}")

    async def __aenter__(self) -> 'AsyncConnection':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


def provision(
    scheme: str,
    authority: str,
    tls_settings: TLSSettings,
    timeout: Optional[float] = None,
) -> Connection:
    """Open a fresh blocking connection to ``authority``.

    Args:
        scheme: URL scheme; only ``https`` gets TLS
        authority: ``host:port``, the port is mandatory
        tls_settings: TLS settings for ``https``
        timeout: Connect (and handshake) timeout in seconds, None to block

    Raises:
        DialError: If the connection or the TLS handshake fails
    """
    host, port = split_authority(authority)
    logger = get_logger()
    use_tls = scheme == 'https'
    logger.debug(f"Connecting to {authority} ({'HTTPS' if use_tls else 'HTTP'})")

    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as e:
        raise DialError(f"Failed to connect to {authority}: {e}") from e

    if use_tls:
        try:
            sock = tls_settings.raw_ssl_context().wrap_socket(sock, server_hostname=host)
        except (ssl.SSLError, OSError) as e:
            sock.close()
            raise DialError(f"TLS handshake with {authority} failed: {e}") from e

        protocol = tls.get_negotiated_protocol(sock)
        if protocol:
            logger.debug(f"Negotiated protocol: {protocol}")

    logger.debug("Connection established")
    return Connection(sock, authority)


async def aprovision(
    scheme: str,
    authority: str,
    tls_settings: TLSSettings,
    timeout: Optional[float] = None,
) -> AsyncConnection:
    """Open a fresh asyncio connection to ``authority``.

    Same contract as :func:`provision`.
    """
    host, port = split_authority(authority)
    logger = get_logger()
    use_tls = scheme == 'https'
    logger.debug(f"Connecting to {authority} ({'HTTPS' if use_tls else 'HTTP'})")

    try:
        connect_task = asyncio.open_connection(
            host,
            port,
            ssl=tls_settings.raw_ssl_context() if use_tls else None,
            server_hostname=host if use_tls else None,
        )
        reader, writer = await asyncio.wait_for(connect_task, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise DialError(f"Connection to {authority} timed out") from e
    except (ssl.SSLError, OSError) as e:
        raise DialError(f"Failed to connect to {authority}: {e}") from e

    if use_tls:
        protocol = tls.get_negotiated_protocol(writer.get_extra_info('ssl_object'))
        if protocol:
            logger.debug(f"Negotiated protocol: {protocol}")

    logger.debug("Connection established")
    return AsyncConnection(reader, writer, authority)
