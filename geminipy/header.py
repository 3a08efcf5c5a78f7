import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from .errors import InvalidHeaderError, InvalidStatusError
from .status import (
    Status,
    StatusClass,
    classify,
    describe,
    is_client_certificate_required,
    is_input,
    is_permanent_failure,
    is_redirect,
    is_success,
    is_temporary_failure,
    is_valid,
)

MAX_META_LENGTH = 1024
# "NN " + meta, without the CRLF
MAX_HEADER_LINE_LENGTH = 3 + MAX_META_LENGTH

DEFAULT_CONTENT_TYPE = "text/gemini"

_STATUS_DIGITS = re.compile(r"[0-9]+")


class WriteFinisher(Protocol):
    def write(self, data: bytes) -> int:
        ...

    def finish(self) -> None:
        ...


@dataclass(frozen=True)
class ResponseHeader:
    """A response header line: two-digit status plus free-text meta.

    Construction fails with ValueError when the status does not fit the
    two-digit field or the meta would break the single-line framing.
    """

    status: int
    meta: str = ""

    def __post_init__(self) -> None:
        if not is_valid(self.status):
            raise ValueError(f"Invalid status code: {self.status!r}")
        if "\n" in self.meta or "\r" in self.meta:
            raise ValueError("Invalid meta string: line terminators are not allowed")
        if len(self.meta.encode("utf-8")) > MAX_META_LENGTH:
            raise ValueError(f"Invalid meta string: longer than {MAX_META_LENGTH} bytes")
        object.__setattr__(self, "status", int(self.status))

    @property
    def status_class(self) -> StatusClass:
        return classify(self.status)

    @property
    def is_input(self) -> bool:
        return is_input(self.status)

    @property
    def is_success(self) -> bool:
        return is_success(self.status)

    @property
    def is_redirect(self) -> bool:
        return is_redirect(self.status)

    @property
    def is_temporary_failure(self) -> bool:
        return is_temporary_failure(self.status)

    @property
    def is_permanent_failure(self) -> bool:
        return is_permanent_failure(self.status)

    @property
    def is_client_certificate_required(self) -> bool:
        return is_client_certificate_required(self.status)

    def describe(self) -> str:
        """Return the meta if present, else the status name, else the number."""
        return self.meta or describe(self.status) or str(self.status)

    def encode(self) -> bytes:
        return f"{self.status:02d} {self.meta}\r\n".encode("utf-8")

    def finish_to(self, conn: WriteFinisher) -> None:
        """Send this header as the whole response and finish cleanly."""
        conn.write(self.encode())
        conn.finish()

    @classmethod
    def decode(cls, line: str | bytes) -> "ResponseHeader":
        """Parse a header line that has already lost its trailing CRLF.

        The status is returned as parsed; it is not checked against any
        status class.
        """
        if isinstance(line, (bytes, bytearray, memoryview)):
            try:
                line = bytes(line).decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidHeaderError("Response header is not valid UTF-8") from e

        code, sep, meta = line.partition(" ")
        if not sep:
            raise InvalidHeaderError("Invalid response header: missing separator")

        if not _STATUS_DIGITS.fullmatch(code):
            raise InvalidStatusError(f"Invalid status code: {code!r}")
        status = int(code)
        if status > 99:
            raise InvalidStatusError(f"Invalid status code: {code!r}")

        try:
            return cls(status, meta)
        except ValueError as e:
            raise InvalidHeaderError(str(e)) from e


# --- Class constructors ---

def _checked(status: int, meta: str, predicate, name: str) -> ResponseHeader:
    if not predicate(status):
        raise ValueError(f"Status {status} is not a {name} status")
    return ResponseHeader(status, meta)


def input_header(status: int, prompt: str) -> ResponseHeader:
    return _checked(status, prompt, is_input, "input")


def success_header(status: int, content_type: str) -> ResponseHeader:
    return _checked(status, content_type, is_success, "success")


def redirect_header(status: int, location: str) -> ResponseHeader:
    return _checked(status, location, is_redirect, "redirect")


def temporary_failure_header(status: int, reason: str) -> ResponseHeader:
    return _checked(status, reason, is_temporary_failure, "temporary failure")


def permanent_failure_header(status: int, reason: str) -> ResponseHeader:
    return _checked(status, reason, is_permanent_failure, "permanent failure")


def client_certificate_required_header(status: int, reason: str) -> ResponseHeader:
    return _checked(status, reason, is_client_certificate_required, "client certificate required")


def header_for(status: int) -> ResponseHeader:
    """A header whose meta is the status's own description."""
    return ResponseHeader(status, describe(status))


# --- Convenience values ---

def request_input(prompt: str) -> ResponseHeader:
    return input_header(Status.INPUT, prompt)


def request_sensitive_input(prompt: str) -> ResponseHeader:
    return input_header(Status.SENSITIVE_INPUT, prompt)


def success(content_type: str = DEFAULT_CONTENT_TYPE) -> ResponseHeader:
    return success_header(Status.SUCCESS, content_type)


def temporary_redirect(location: str) -> ResponseHeader:
    return redirect_header(Status.TEMPORARY_REDIRECT, location)


def permanent_redirect(location: str) -> ResponseHeader:
    return redirect_header(Status.PERMANENT_REDIRECT, location)


def temporary_failure(reason: str) -> ResponseHeader:
    return temporary_failure_header(Status.TEMPORARY_FAILURE, reason)


def server_unavailable() -> ResponseHeader:
    return header_for(Status.SERVER_UNAVAILABLE)


def cgi_error() -> ResponseHeader:
    return header_for(Status.CGI_ERROR)


def proxy_error() -> ResponseHeader:
    return header_for(Status.PROXY_ERROR)


def slow_down(wait: float | timedelta) -> ResponseHeader:
    """Ask the client to wait; the meta is whole seconds, at least 1."""
    if isinstance(wait, timedelta):
        wait = wait.total_seconds()
    seconds = max(int(wait), 1)
    return temporary_failure_header(Status.SLOW_DOWN, str(seconds))


def permanent_failure(reason: str) -> ResponseHeader:
    return permanent_failure_header(Status.PERMANENT_FAILURE, reason)


def not_found() -> ResponseHeader:
    return header_for(Status.NOT_FOUND)


def gone() -> ResponseHeader:
    return header_for(Status.GONE)


def proxy_request_refused() -> ResponseHeader:
    return header_for(Status.PROXY_REQUEST_REFUSED)


def bad_request() -> ResponseHeader:
    return header_for(Status.BAD_REQUEST)


def client_certificate_required() -> ResponseHeader:
    return header_for(Status.CLIENT_CERTIFICATE_REQUIRED)


def certificate_not_authorized() -> ResponseHeader:
    return header_for(Status.CERTIFICATE_NOT_AUTHORIZED)


def certificate_not_valid() -> ResponseHeader:
    return header_for(Status.CERTIFICATE_NOT_VALID)
