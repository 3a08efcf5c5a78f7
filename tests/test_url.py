import pytest

from geminipy.errors import UnsupportedProtocolError, UrlParseError
from geminipy.url import DEFAULT_PORT, GeminiURL, parse_url, require_gemini


def test_parse_full_url():
    url = parse_url("gemini://example.org:1966/docs/index.gmi?q=1")

    assert url.scheme == "gemini"
    assert url.host == "example.org"
    assert url.port == 1966
    assert url.path == "/docs/index.gmi"
    assert url.query == "q=1"
    assert url.address == ("example.org", 1966)


def test_missing_port_defaults_in_address_only():
    url = parse_url("gemini://example.org/")

    assert url.port is None
    assert url.address == ("example.org", DEFAULT_PORT)
    assert str(url) == "gemini://example.org/"


def test_default_path_is_slash():
    url = parse_url("gemini://example.org").with_default_path()
    assert str(url) == "gemini://example.org/"


def test_explicit_port_is_kept_on_the_wire():
    assert str(parse_url("gemini://example.org:1965/a")) == "gemini://example.org:1965/a"


def test_fragment_is_dropped():
    assert str(parse_url("gemini://example.org/a?b#frag")) == "gemini://example.org/a?b"


def test_scheme_and_host_are_normalised():
    assert str(parse_url("GEMINI://Example.ORG/Path")) == "gemini://example.org/Path"


def test_ipv6_host_is_bracketed():
    url = parse_url("gemini://[::1]:1965/")
    assert url.host == "::1"
    assert url.netloc == "[::1]:1965"
    assert str(url) == "gemini://[::1]:1965/"


@pytest.mark.parametrize("raw", [
    "example.org/page",
    "/relative/path",
    "gemini:///no-host",
    "gemini://example.org:notaport/",
    "gemini://example.org:99999/",
    "gemini://example.org/\r\n",
    "",
])
def test_invalid_urls_are_rejected(raw):
    with pytest.raises(UrlParseError):
        parse_url(raw)


def test_require_gemini_rejects_other_schemes():
    with pytest.raises(UnsupportedProtocolError, match="'http'"):
        require_gemini(parse_url("http://example.org/"))


def test_require_gemini_returns_url():
    url = GeminiURL("gemini", "example.org")
    assert require_gemini(url) is url
