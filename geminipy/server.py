import logging
import socket
import ssl
from concurrent.futures import Executor
from enum import Enum
from typing import Callable

from .connection import ServerConnection, read_line
from .errors import (
    GeminiError,
    SocketAcceptError,
    TlsHandshakeError,
    UnsupportedProtocolError,
    UrlParseError,
)
from .header import ResponseHeader, proxy_request_refused, success
from .tls import TLSConfig, server_context
from .url import MAX_URL_LENGTH, GeminiURL, parse_url, require_gemini

logger = logging.getLogger(__name__)

DEFAULT_HANDSHAKE_TIMEOUT = 30.0

Handler = Callable[[ServerConnection, GeminiURL], None]


class HeaderState(Enum):
    NOT_STARTED = "not started"
    HEADER_SENT = "header sent"


class ResponseWriter:
    """Writes one response, sending the header at most once.

    Writing body bytes before a header sends ``20 text/gemini`` first.
    """

    def __init__(self, conn: ServerConnection) -> None:
        self._conn = conn
        self._state = HeaderState.NOT_STARTED

    @property
    def header_state(self) -> HeaderState:
        return self._state

    def write_header(self, header: ResponseHeader) -> None:
        if self._state is HeaderState.HEADER_SENT:
            raise RuntimeError("Header already written")
        self._state = HeaderState.HEADER_SENT
        self._conn.write(header.encode())

    def write(self, data: bytes) -> int:
        if self._state is HeaderState.NOT_STARTED:
            self.write_header(success())
        return self._conn.write(data)

    def finish(self) -> None:
        self._conn.finish()

    def close(self) -> None:
        self._conn.close()


def server_handshake(
    raw: socket.socket,
    context: ssl.SSLContext,
    timeout: float | None = DEFAULT_HANDSHAKE_TIMEOUT,
) -> tuple[ServerConnection, GeminiURL]:
    """Run the TLS handshake and read the request line of an accepted socket.

    ``timeout`` bounds the handshake and the request read; the returned
    connection has no timeout.  The socket is closed on failure; a request
    for another scheme is first answered with 53 (proxy request refused).
    """
    raw.settimeout(timeout)
    try:
        tls = context.wrap_socket(raw, server_side=True)
    except OSError as e:
        raw.close()
        raise TlsHandshakeError(f"TLS handshake failed: {e}") from e

    try:
        line = read_line(tls, bytearray(), MAX_URL_LENGTH)
        try:
            raw_url = line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UrlParseError("Request line is not valid UTF-8") from e

        url = parse_url(raw_url)
        try:
            require_gemini(url)
        except UnsupportedProtocolError:
            proxy_request_refused().finish_to(ServerConnection(tls))
            raise
        tls.settimeout(None)
        return ServerConnection(tls), url
    except Exception:
        tls.close()
        raise


def listen(
    listener: socket.socket,
    config: TLSConfig | ssl.SSLContext | None,
    handler: Handler,
    *,
    executor: Executor | None = None,
    handshake_timeout: float | None = DEFAULT_HANDSHAKE_TIMEOUT,
) -> None:
    """Serve Gemini requests on a bound, listening socket.

    Each accepted socket goes through ``server_handshake`` and then
    ``handler(conn, url)``; the handler must finish or close ``conn``.
    Without an executor both run on the calling thread, otherwise each
    connection is submitted to the executor.

    Only a failing ``accept`` ends the loop, raised as SocketAcceptError.
    A failed handshake is logged and that client dropped.
    """
    context = server_context(config)
    logger.info("Serving Gemini on %s", listener.getsockname())

    while True:
        try:
            raw, address = listener.accept()
        except OSError as e:
            raise SocketAcceptError(f"Accept failed: {e}") from e

        if executor is None:
            _serve(raw, address, context, handler, handshake_timeout)
        else:
            executor.submit(_serve, raw, address, context, handler, handshake_timeout)


def _serve(
    raw: socket.socket,
    address,
    context: ssl.SSLContext,
    handler: Handler,
    handshake_timeout: float | None,
) -> None:
    try:
        conn, url = server_handshake(raw, context, handshake_timeout)
    except GeminiError as e:
        logger.warning("%s: %s", address, e)
        return

    logger.debug("%s: %s", address, url)
    try:
        handler(conn, url)
    except Exception:
        logger.exception("%s: handler failed for %s", address, url)
        conn.close()
