import select
import ssl
from dataclasses import dataclass

from cryptography import x509

from .errors import (
    ConnectionClosedError,
    InvalidHeaderError,
    SocketReadError,
    SocketWriteError,
    TruncatedResponseError,
)

READ_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class ConnectionState:
    version: str | None
    cipher: str | None
    peer_certificate: x509.Certificate | None
    server_hostname: str | None


def connection_state(tls: ssl.SSLSocket) -> ConnectionState:
    cipher = tls.cipher()
    der = tls.getpeercert(binary_form=True)
    return ConnectionState(
        version=tls.version(),
        cipher=cipher[0] if cipher else None,
        peer_certificate=x509.load_der_x509_certificate(der) if der else None,
        server_hostname=tls.server_hostname,
    )


def recv_chunk(tls: ssl.SSLSocket, size: int = READ_CHUNK_SIZE) -> bytes:
    """Read whatever is available; b"" only after a clean TLS close."""
    try:
        return tls.recv(size)
    except ssl.SSLEOFError as e:
        raise TruncatedResponseError("Connection closed without close_notify") from e
    except OSError as e:
        raise SocketReadError(f"Socket read failed: {e}") from e


def read_line(tls: ssl.SSLSocket, buffer: bytearray, limit: int) -> bytes:
    """Read one CRLF-terminated line of at most ``limit`` bytes.

    The line is returned without its terminator.  Bytes that arrived after
    the line stay in ``buffer``.
    """
    while True:
        end = buffer.find(b"\n")
        if end != -1:
            if end == 0 or buffer[end - 1] != ord("\r"):
                raise InvalidHeaderError("Line is not terminated by CRLF")
            if end - 1 > limit:
                raise InvalidHeaderError(f"Line exceeds {limit} bytes")
            line = bytes(buffer[:end - 1])
            del buffer[:end + 1]
            return line

        if len(buffer) > limit + 1:
            raise InvalidHeaderError(f"Line exceeds {limit} bytes")

        chunk = recv_chunk(tls)
        if not chunk:
            raise InvalidHeaderError("Connection closed before end of line")
        buffer += chunk


def _send_close_notify(tls: ssl.SSLSocket, timeout: float | None) -> None:
    """Shut TLS down on a non-blocking socket without awaiting the peer."""
    while True:
        try:
            tls.unwrap()
            return
        except ssl.SSLWantReadError:
            # close_notify went out; the peer's reply is not awaited.
            return
        except ssl.SSLWantWriteError:
            _, writable, _ = select.select([], [tls], [], timeout)
            if not writable:
                raise SocketWriteError("TLS shutdown timed out")
        except OSError as e:
            raise SocketWriteError(f"TLS shutdown failed: {e}") from e


class _TlsConnection:
    def __init__(self, tls: ssl.SSLSocket) -> None:
        self._tls: ssl.SSLSocket | None = tls
        self._local_address = tls.getsockname()
        self._remote_address = tls.getpeername()
        self._state = connection_state(tls)

    @property
    def closed(self) -> bool:
        return self._tls is None

    @property
    def local_address(self):
        return self._local_address

    @property
    def remote_address(self):
        return self._remote_address

    def connection_state(self) -> ConnectionState:
        return self._state

    def _set_timeout(self, timeout: float | None) -> None:
        self._open_tls().settimeout(timeout)

    def _open_tls(self) -> ssl.SSLSocket:
        if self._tls is None:
            raise ConnectionClosedError("Connection is closed.")
        return self._tls

    def close(self) -> None:
        """Drop the transport without a TLS shutdown exchange."""
        if self._tls is not None:
            tls, self._tls = self._tls, None
            tls.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ServerConnection(_TlsConnection):
    """The server's side of one exchange, after the request line.

    Exactly one of ``finish`` or ``close`` ends the response.  ``close``
    may follow ``finish``; ``finish`` after either is a RuntimeError.
    """

    def write(self, data: bytes) -> int:
        if self._tls is None:
            raise ConnectionClosedError("Cannot write on a closed connection.")

        try:
            self._tls.sendall(data)
        except OSError as e:
            raise SocketWriteError(f"Socket write failed: {e}") from e
        return len(data)

    def set_write_timeout(self, timeout: float | None) -> None:
        self._set_timeout(timeout)

    def finish(self) -> None:
        """Send close_notify and release the transport."""
        if self._tls is None:
            raise RuntimeError("Connection already closed")

        tls, self._tls = self._tls, None
        timeout = tls.gettimeout()
        try:
            tls.setblocking(False)
            _send_close_notify(tls, timeout)
        finally:
            tls.close()


class ClientConnection(_TlsConnection):
    """The client's side of one exchange, positioned at the response body.

    Reads return b"" once the server has finished cleanly; an abrupt close
    by the server raises TruncatedResponseError.
    """

    def __init__(
        self,
        tls: ssl.SSLSocket,
        buffer: bytearray | None = None,
        read_size: int = READ_CHUNK_SIZE,
    ) -> None:
        super().__init__(tls)
        self._buffer = buffer if buffer is not None else bytearray()
        self._read_size = read_size

    def read(self, size: int = -1) -> bytes:
        if self._tls is None:
            raise ConnectionClosedError("Cannot read from a closed connection.")

        if size < 0:
            while self._fill():
                pass
            return self._take(len(self._buffer))

        if size and not self._buffer:
            self._fill()
        return self._take(min(size, len(self._buffer)))

    def read_into(self, buffer: bytearray | memoryview) -> int:
        if self._tls is None:
            raise ConnectionClosedError("Cannot read from a closed connection.")

        if len(buffer) and not self._buffer:
            self._fill()
        n = min(len(buffer), len(self._buffer))
        buffer[:n] = self._buffer[:n]
        del self._buffer[:n]
        return n

    def set_read_timeout(self, timeout: float | None) -> None:
        self._set_timeout(timeout)

    def _fill(self) -> int:
        chunk = recv_chunk(self._open_tls(), self._read_size)
        self._buffer += chunk
        return len(chunk)

    def _take(self, n: int) -> bytes:
        data = bytes(self._buffer[:n])
        del self._buffer[:n]
        return data
