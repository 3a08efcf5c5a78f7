import ssl
import threading
from dataclasses import dataclass

from .connection import READ_CHUNK_SIZE, ClientConnection, read_line
from .errors import SocketWriteError, TlsHandshakeError
from .header import MAX_HEADER_LINE_LENGTH, ResponseHeader
from .tls import TLSConfig, client_context
from .transport import connect_tcp
from .url import GeminiURL, parse_url, require_gemini


@dataclass
class Dialer:
    """Reusable dial settings.

    ``address`` connects somewhere other than the URL's host and port,
    e.g. a proxy; the URL still decides SNI and the request line.
    ``timeout`` bounds each step up to and including the header read.
    """

    tls_config: TLSConfig | ssl.SSLContext | None = None
    address: tuple[str, int] | None = None
    read_size: int = READ_CHUNK_SIZE
    timeout: float | None = None

    def dial(
        self,
        url: str | GeminiURL,
        cancel: threading.Event | None = None,
    ) -> tuple[ClientConnection, ResponseHeader]:
        if isinstance(url, str):
            url = parse_url(url)
        url = require_gemini(url).with_default_path()
        request = f"{url}\r\n".encode("utf-8")

        context = client_context(self.tls_config)
        host, port = self.address or url.address

        sock = connect_tcp(host, port, self.timeout, cancel)
        try:
            tls = context.wrap_socket(sock, server_hostname=url.host, suppress_ragged_eofs=False)
        except OSError as e:
            sock.close()
            raise TlsHandshakeError(f"TLS handshake failed: {e}") from e

        try:
            try:
                tls.sendall(request)
            except OSError as e:
                raise SocketWriteError(f"Socket write failed: {e}") from e

            buffer = bytearray()
            header = ResponseHeader.decode(read_line(tls, buffer, MAX_HEADER_LINE_LENGTH))
            tls.settimeout(None)
            return ClientConnection(tls, buffer, self.read_size), header
        except Exception:
            tls.close()
            raise


def dial(
    url: str | GeminiURL,
    tls_config: TLSConfig | ssl.SSLContext | None = None,
    *,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> tuple[ClientConnection, ResponseHeader]:
    """Send one request and return the connection positioned at the body.

    A URL whose scheme is not ``gemini`` fails with
    UnsupportedProtocolError before any connection is attempted.
    """
    return Dialer(tls_config=tls_config, timeout=timeout).dial(url, cancel)
