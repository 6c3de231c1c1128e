"""Shared fixtures: canned HTTP/1.x servers over plain TCP and TLS."""

import socket
import ssl
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

import pytest

DATA_DIR = Path(__file__).parent / 'data'
CERT_FILE = DATA_DIR / 'server.crt'
KEY_FILE = DATA_DIR / 'server.key'


def pytest_configure(config):
    config.addinivalue_line('markers', 'network: test talks to the public internet')


def read_request(conn: socket.socket, timeout: float) -> bytes:
    """Read one request: up to the blank line, plus a Content-Length body."""
    conn.settimeout(timeout)
    data = bytearray()
    try:
        while b'\r\n\r\n' not in data:
            chunk = conn.recv(65536)
            if not chunk:
                return bytes(data)
            data += chunk

        head, _, body = bytes(data).partition(b'\r\n\r\n')
        received = len(body)
        length = 0
        for line in head.split(b'\r\n')[1:]:
            name, _, value = line.partition(b':')
            if name.strip().lower() == b'content-length':
                length = int(value.strip())
        while received < length:
            chunk = conn.recv(65536)
            if not chunk:
                break
            received += len(chunk)
            data += chunk
    except socket.timeout:
        pass
    return bytes(data)


def http_response(status: str, body: bytes = b'', headers: Optional[List[str]] = None) -> bytes:
    lines = [f'HTTP/1.1 {status}']
    lines.extend(headers if headers is not None else [f'Content-Length: {len(body)}'])
    return ('\r\n'.join(lines) + '\r\n\r\n').encode('latin-1') + body


def echo_target(request: bytes) -> bytes:
    """Answer with the request target, so responses can be told apart."""
    target = request.split(b' ')[1] if request.count(b' ') >= 2 else b''
    return http_response('200 OK', b'target=' + target)


class CannedServer:
    """Accepts connections, records each request and answers via ``responder``.

    Every connection is handled on its own thread and closed after one
    response. With ``read_delay`` the server sits on a new connection that
    long before reading, like a slow peer.
    """

    def __init__(
        self,
        responder: Callable[[bytes], bytes],
        tls: bool = False,
        read_timeout: float = 2.0,
        read_delay: float = 0.0,
    ) -> None:
        self.responder = responder
        self.read_timeout = read_timeout
        self.read_delay = read_delay
        self.requests: List[bytes] = []
        self.connections = 0
        self._lock = threading.Lock()
        self._tls_context = None
        if tls:
            self._tls_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
            self._tls_context.load_cert_chain(str(CERT_FILE), str(KEY_FILE))

        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(('127.0.0.1', 0))
        self._sock.listen(64)
        self.port = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def authority(self) -> str:
        return f'127.0.0.1:{self.port}'

    def url(self, path: str = '/') -> str:
        scheme = 'https' if self._tls_context else 'http'
        return f'{scheme}://{self.authority}{path}'

    def start(self) -> 'CannedServer':
        self._thread.start()
        return self

    def stop(self) -> None:
        self._sock.close()

    def _serve(self) -> None:
        while True:
            try:
                conn, _ = self._sock.accept()
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        with self._lock:
            self.connections += 1
        try:
            if self._tls_context:
                conn = self._tls_context.wrap_socket(conn, server_side=True)
            if self.read_delay:
                time.sleep(self.read_delay)
            request = read_request(conn, self.read_timeout)
            with self._lock:
                self.requests.append(request)
            response = self.responder(request)
            if response:
                conn.sendall(response)
        except OSError:
            # Clients that reject the certificate end up here
            pass
        finally:
            conn.close()


@pytest.fixture
def canned_server():
    """Factory starting CannedServer instances, all stopped on teardown."""
    servers = []

    def start(
        responder: Callable[[bytes], bytes],
        tls: bool = False,
        read_timeout: float = 2.0,
        read_delay: float = 0.0,
    ) -> CannedServer:
        server = CannedServer(responder, tls=tls, read_timeout=read_timeout, read_delay=read_delay).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()


@pytest.fixture
def unused_port() -> int:
    """A port nothing listens on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
