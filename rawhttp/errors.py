"""
Error kinds raised by rawhttp.

Every failure on the raw path is raised to the caller as one of these, with
the underlying exception chained as ``__cause__``. Where a kind has a natural
httpx counterpart it also subclasses it, so code that already catches
``httpx.TransportError`` keeps working when a request goes out raw.
"""

import httpx


class RawHTTPError(Exception):
    """Base class for all rawhttp errors."""


class BodyReadError(RawHTTPError, httpx.ReadError):
    """A body could not be read to completion.

    Raised both for an unreadable caller-supplied request body and for a
    response body that breaks off before its framing says it should.
    """


class BodyCloseError(RawHTTPError):
    """Releasing the caller-supplied request body failed."""


class DialError(RawHTTPError, httpx.ConnectError):
    """A connection could not be established.

    Covers unreachable hosts, refused connections, TLS handshake failures,
    connect timeouts and authorities without a port.
    """


class WriteError(RawHTTPError, httpx.WriteError):
    """The raw payload could not be written in a single write."""


class ResponseParseError(RawHTTPError, httpx.RemoteProtocolError):
    """The bytes read back are not a valid status line and header block."""


class TooManyArgumentsError(RawHTTPError, TypeError):
    """A convenience method received more header maps than it accepts."""
