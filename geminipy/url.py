from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from .errors import UnsupportedProtocolError, UrlParseError

SCHEME = "gemini"
DEFAULT_PORT = 1965
MAX_URL_LENGTH = 1024


@dataclass(frozen=True)
class GeminiURL:
    """A parsed absolute request target.

    ``port`` is None when the URL did not name one; ``address`` applies
    the default port.  ``str()`` gives the absolute URL sent on the wire.
    """

    scheme: str
    host: str
    port: int | None = None
    path: str = ""
    query: str = ""

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None:
            return host
        return f"{host}:{self.port}"

    @property
    def address(self) -> tuple[str, int]:
        return self.host, self.port if self.port is not None else DEFAULT_PORT

    def with_default_path(self) -> "GeminiURL":
        if self.path:
            return self
        return GeminiURL(self.scheme, self.host, self.port, "/", self.query)

    def __str__(self) -> str:
        return urlunsplit((self.scheme, self.netloc, self.path, self.query, ""))


def parse_url(raw: str) -> GeminiURL:
    """Parse an absolute URL, dropping any fragment.

    Raises UrlParseError for relative or malformed URLs.  The scheme is
    not checked here; see ``require_gemini``.
    """
    if any(c in raw for c in "\r\n\t"):
        raise UrlParseError(f"Invalid URL {raw!r}: control characters are not allowed")

    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as e:
        raise UrlParseError(f"Invalid URL {raw!r}: {e}") from e

    if not parts.scheme:
        raise UrlParseError(f"Invalid URL {raw!r}: missing scheme")
    if not parts.hostname:
        raise UrlParseError(f"Invalid URL {raw!r}: missing host")

    return GeminiURL(
        scheme=parts.scheme.lower(),
        host=parts.hostname,
        port=port,
        path=parts.path,
        query=parts.query,
    )


def require_gemini(url: GeminiURL) -> GeminiURL:
    if url.scheme != SCHEME:
        raise UnsupportedProtocolError(f"Unsupported protocol: {url.scheme!r}")
    return url
