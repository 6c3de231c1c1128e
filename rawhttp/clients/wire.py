"""
HTTP/1.x response framing for the raw wire path.

:class:`ResponseParser` is fed whatever bytes come off the connection and
turns them into a status line, a header block and a body, applying the usual
HTTP/1.x body-length rules. It does no I/O itself; :func:`exchange` and
:func:`rehydrate` (and their asyncio twins) drive it over a connection.
"""

import asyncio
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from rawhttp.clients.connection import AsyncConnection, Connection
from rawhttp.errors import BodyReadError, ResponseParseError, WriteError
from rawhttp.utils.logging import get_logger, log_response

MAX_HEADER_BYTES = 10 * 1024 * 1024

_STATUS_LINE = re.compile(rb'(HTTP/\d\.\d) +(\d{3})(?: (.*))?')
_TOKEN = re.compile(rb"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_REQUEST_METHOD = re.compile(rb'([!#$%&\'*+\-.^_`|~0-9A-Za-z]+) ')

# Body framing modes
NO_BODY = 'none'
CHUNKED = 'chunked'
CONTENT_LENGTH = 'content-length'
UNTIL_CLOSE = 'until-close'

# Chunked decoder states
_CHUNK_SIZE = 'size'
_CHUNK_DATA = 'data'
_CHUNK_END = 'data-end'
_TRAILER = 'trailer'


@dataclass
class ResponseHead:
    """Status line and header block of a response."""

    http_version: bytes
    status_code: int
    reason_phrase: bytes
    headers: List[Tuple[bytes, bytes]]

    def get_all(self, name: bytes) -> List[bytes]:
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]


def framing_method(payload: bytes) -> Optional[str]:
    """Return the method token of the payload's request line, if it has one.

    The raw payload is never validated; this is only a peek so that e.g. a
    ``HEAD`` sent raw gets a bodiless response.
    """
    match = _REQUEST_METHOD.match(payload)
    if not match:
        return None
    return match.group(1).decode('ascii').upper()


class ResponseParser:
    """Incremental HTTP/1.x response parser.

    Feed it bytes with :meth:`feed` and signal EOF with :meth:`feed_eof`
    (or ``feed(b'')``). :attr:`head` is set once the header block is complete
    and :attr:`done` once the body has been read according to its framing.

    Args:
        method: Method of the request the response answers. ``HEAD`` responses
            have no body whatever their headers say.
        max_header_bytes: Largest header block accepted
    """

    def __init__(self, method: Optional[str] = None, max_header_bytes: int = MAX_HEADER_BYTES) -> None:
        self.method = method.upper() if method else None
        self.max_header_bytes = max_header_bytes
        self.head: Optional[ResponseHead] = None
        self.framing: Optional[str] = None
        self.done = False
        self._buffer = bytearray()
        self._body = bytearray()
        self._eof = False
        self._scan_pos = 0
        self._remaining = 0
        self._chunk_state = _CHUNK_SIZE

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def feed(self, data: bytes) -> None:
        if not data:
            self.feed_eof()
            return
        if self._eof:
            raise RuntimeError("Cannot feed data after EOF")
        self._buffer.extend(data)
        self._advance()

    def feed_eof(self) -> None:
        self._eof = True
        self._advance()

    def _advance(self) -> None:
        if self.head is None:
            self._parse_head()
            if self.head is None:
                return
        if not self.done:
            self._parse_body()

    def _take_line(self) -> Optional[bytes]:
        """Pop one line off the buffer, without its CRLF or LF."""
        end = self._buffer.find(b'\n')
        if end == -1:
            return None
        line = bytes(self._buffer[:end])
        del self._buffer[:end + 1]
        return line[:-1] if line.endswith(b'\r') else line

    # Header block

    def _parse_head(self) -> None:
        block_end = self._find_block_end()
        if block_end is None:
            if len(self._buffer) > self.max_header_bytes:
                raise ResponseParseError(f"Response header block exceeds {self.max_header_bytes} bytes")
            if self._eof:
                if not self._buffer:
                    raise ResponseParseError("Connection closed before a status line was received")
                raise ResponseParseError("Connection closed inside the response header block")
            return

        block = bytes(self._buffer[:block_end])
        del self._buffer[:block_end]
        lines = block.split(b'\n')
        lines = [line[:-1] if line.endswith(b'\r') else line for line in lines]
        # The block ends with two terminators, leaving two empty entries
        self.head = self._build_head(lines[0], lines[1:-2])
        self.framing = self._body_framing()

    def _find_block_end(self) -> Optional[int]:
        """Offset just past the blank line that ends the header block."""
        start = self._scan_pos
        while True:
            end = self._buffer.find(b'\n', start)
            if end == -1:
                # Resume from the incomplete line on the next feed
                self._scan_pos = start
                return None
            if self._buffer[start:end] in (b'', b'\r'):
                if start == 0:
                    raise ResponseParseError("Empty status line")
                return end + 1
            start = end + 1

    def _build_head(self, status_line: bytes, header_lines: List[bytes]) -> ResponseHead:
        match = _STATUS_LINE.fullmatch(status_line)
        if not match:
            raise ResponseParseError(f"Malformed status line: {status_line[:128]!r}")

        headers: List[Tuple[bytes, bytes]] = []
        for line in header_lines:
            if line[:1] in (b' ', b'\t'):
                # Obsolete line folding continues the previous value
                if not headers:
                    raise ResponseParseError(f"Continuation line before any header: {line[:128]!r}")
                name, value = headers[-1]
                headers[-1] = (name, (value + b' ' + line.strip(b' \t')).strip(b' \t'))
                continue
            name, sep, value = line.partition(b':')
            if not sep or not _TOKEN.fullmatch(name):
                raise ResponseParseError(f"Malformed header line: {line[:128]!r}")
            headers.append((name, value.strip(b' \t')))

        return ResponseHead(
            http_version=match.group(1),
            status_code=int(match.group(2)),
            reason_phrase=match.group(3) or b'',
            headers=headers,
        )

    def _body_framing(self) -> str:
        status_code = self.head.status_code
        if self.method == 'HEAD' or 100 <= status_code < 200 or status_code in (204, 304):
            return NO_BODY

        transfer_encoding = b','.join(self.head.get_all(b'transfer-encoding'))
        if transfer_encoding.strip():
            codings = [c.strip().lower() for c in transfer_encoding.split(b',') if c.strip()]
            return CHUNKED if codings and codings[-1] == b'chunked' else UNTIL_CLOSE

        lengths = set()
        for value in self.head.get_all(b'content-length'):
            for part in value.split(b','):
                part = part.strip()
                if not part.isdigit():
                    raise ResponseParseError(f"Invalid Content-Length: {value!r}")
                lengths.add(int(part))
        if len(lengths) > 1:
            raise ResponseParseError(f"Conflicting Content-Length values: {sorted(lengths)}")
        if lengths:
            self._remaining = lengths.pop()
            return CONTENT_LENGTH

        return UNTIL_CLOSE

    # Body

    def _parse_body(self) -> None:
        if self.framing == NO_BODY:
            self.done = True
        elif self.framing == CONTENT_LENGTH:
            self._parse_fixed_length()
        elif self.framing == CHUNKED:
            self._parse_chunked()
        else:
            self._body.extend(self._buffer)
            self._buffer.clear()
            self.done = self._eof

    def _parse_fixed_length(self) -> None:
        taken = self._buffer[:self._remaining]
        self._body.extend(taken)
        del self._buffer[:len(taken)]
        self._remaining -= len(taken)
        if self._remaining == 0:
            self.done = True
        elif self._eof:
            raise BodyReadError(
                f"Connection closed with {self._remaining} bytes of the body outstanding"
            )

    def _parse_chunked(self) -> None:
        while not self.done:
            if self._chunk_state == _CHUNK_DATA:
                taken = self._buffer[:self._remaining]
                self._body.extend(taken)
                del self._buffer[:len(taken)]
                self._remaining -= len(taken)
                if self._remaining:
                    break
                self._chunk_state = _CHUNK_END
                continue

            line = self._take_line()
            if line is None:
                break

            if self._chunk_state == _CHUNK_SIZE:
                size = line.split(b';', 1)[0].strip()
                try:
                    self._remaining = int(size, 16)
                except ValueError:
                    raise BodyReadError(f"Invalid chunk size line: {line[:64]!r}") from None
                if self._remaining < 0:
                    raise BodyReadError(f"Invalid chunk size line: {line[:64]!r}")
                self._chunk_state = _TRAILER if self._remaining == 0 else _CHUNK_DATA
            elif self._chunk_state == _CHUNK_END:
                if line:
                    raise BodyReadError("Malformed chunked encoding: missing CRLF after chunk data")
                self._chunk_state = _CHUNK_SIZE
            elif not line:
                # Trailer fields are read and dropped
                self.done = True

        if not self.done and self._eof:
            raise BodyReadError("Connection closed inside the chunked body")


@dataclass
class PendingResponse:
    """A response whose head has been read but whose body is still on the wire."""

    connection: Connection
    parser: ResponseParser


@dataclass
class AsyncPendingResponse:
    connection: AsyncConnection
    parser: ResponseParser


def exchange(
    connection: Connection,
    payload: bytes,
    method: Optional[str] = None,
    write_timeout: Optional[float] = None,
    read_timeout: Optional[float] = None,
) -> PendingResponse:
    """Write ``payload`` in one write and read back a response head.

    No ``100 Continue`` handshake is performed: the first head read is the
    response. The payload goes out in one all-or-error write; a write that
    fails or times out is never retried.

    Args:
        connection: Freshly provisioned connection
        payload: Exact bytes to put on the wire
        method: Method used for body-length rules (see :func:`framing_method`)
        write_timeout: Seconds the write may block
        read_timeout: Seconds each read may block

    Raises:
        WriteError: If the write fails or times out
        ResponseParseError: If no valid status line and header block arrives
    """
    try:
        sent = connection.send(payload, timeout=write_timeout)
    except OSError as e:
        raise WriteError(f"Error sending raw request to {connection.authority}: {e}") from e
    get_logger().debug(f"Sent {sent} bytes")

    parser = ResponseParser(method)
    while parser.head is None:
        try:
            data = connection.recv(timeout=read_timeout)
        except OSError as e:
            raise ResponseParseError(f"Error reading response from {connection.authority}: {e}") from e
        parser.feed(data)
    return PendingResponse(connection, parser)


async def aexchange(
    connection: AsyncConnection,
    payload: bytes,
    method: Optional[str] = None,
    write_timeout: Optional[float] = None,
    read_timeout: Optional[float] = None,
) -> AsyncPendingResponse:
    """Asyncio version of :func:`exchange`."""
    try:
        sent = await connection.send(payload, timeout=write_timeout)
    except (OSError, asyncio.TimeoutError) as e:
        raise WriteError(f"Error sending raw request to {connection.authority}: {e}") from e
    get_logger().debug(f"Sent {sent} bytes")

    parser = ResponseParser(method)
    while parser.head is None:
        try:
            data = await connection.recv(timeout=read_timeout)
        except (OSError, asyncio.TimeoutError) as e:
            raise ResponseParseError(f"Error reading response from {connection.authority}: {e}") from e
        parser.feed(data)
    return AsyncPendingResponse(connection, parser)


def _build_response(parser: ResponseParser, request: Optional[httpx.Request]) -> httpx.Response:
    head = parser.head
    body = parser.body
    log_response(get_logger(), head.status_code, head.headers, body)
    # A bare ByteStream keeps the headers exactly as received and can be read
    # any number of times
    return httpx.Response(
        head.status_code,
        headers=head.headers,
        stream=httpx.ByteStream(body),
        request=request,
        extensions={
            'http_version': head.http_version,
            'reason_phrase': head.reason_phrase,
        },
    )


def rehydrate(
    pending: PendingResponse,
    request: Optional[httpx.Request] = None,
    read_timeout: Optional[float] = None,
) -> httpx.Response:
    """Read the body to completion, close the connection, return the response.

    The returned response is backed by memory only; its body stays readable
    after the connection is gone.

    Raises:
        BodyReadError: If the body cannot be read to completion
    """
    connection, parser = pending.connection, pending.parser
    while not parser.done:
        try:
            data = connection.recv(timeout=read_timeout)
        except OSError as e:
            raise BodyReadError(f"Error reading response body from {connection.authority}: {e}") from e
        parser.feed(data)
    connection.close()
    return _build_response(parser, request)


async def arehydrate(
    pending: AsyncPendingResponse,
    request: Optional[httpx.Request] = None,
    read_timeout: Optional[float] = None,
) -> httpx.Response:
    """Asyncio version of :func:`rehydrate`."""
    connection, parser = pending.connection, pending.parser
    while not parser.done:
        try:
            data = await connection.recv(timeout=read_timeout)
        except (OSError, asyncio.TimeoutError) as e:
            raise BodyReadError(f"Error reading response body from {connection.authority}: {e}") from e
        parser.feed(data)
    await connection.close()
    return _build_response(parser, request)
