from enum import Enum, IntEnum


MAX_STATUS = 99


class Status(IntEnum):
    INPUT = 10
    SENSITIVE_INPUT = 11
    SUCCESS = 20
    TEMPORARY_REDIRECT = 30
    PERMANENT_REDIRECT = 31
    TEMPORARY_FAILURE = 40
    SERVER_UNAVAILABLE = 41
    CGI_ERROR = 42
    PROXY_ERROR = 43
    SLOW_DOWN = 44
    PERMANENT_FAILURE = 50
    NOT_FOUND = 51
    GONE = 52
    PROXY_REQUEST_REFUSED = 53
    BAD_REQUEST = 59
    CLIENT_CERTIFICATE_REQUIRED = 60
    CERTIFICATE_NOT_AUTHORIZED = 61
    CERTIFICATE_NOT_VALID = 62


class StatusClass(Enum):
    INPUT = "input"
    SUCCESS = "success"
    REDIRECT = "redirect"
    TEMPORARY_FAILURE = "temporary failure"
    PERMANENT_FAILURE = "permanent failure"
    CLIENT_CERTIFICATE_REQUIRED = "client certificate required"
    INVALID = "invalid"


# Each class owns one ten-wide block; the first digit selects it.
_CLASS_BY_TENS: dict[int, StatusClass] = {
    1: StatusClass.INPUT,
    2: StatusClass.SUCCESS,
    3: StatusClass.REDIRECT,
    4: StatusClass.TEMPORARY_FAILURE,
    5: StatusClass.PERMANENT_FAILURE,
    6: StatusClass.CLIENT_CERTIFICATE_REQUIRED,
}

_DESCRIPTIONS: dict[int, str] = {
    Status.INPUT: "input",
    Status.SENSITIVE_INPUT: "sensitive input",
    Status.SUCCESS: "success",
    Status.TEMPORARY_REDIRECT: "temporary redirect",
    Status.PERMANENT_REDIRECT: "permanent redirect",
    Status.TEMPORARY_FAILURE: "temporary failure",
    Status.SERVER_UNAVAILABLE: "server unavailable",
    Status.CGI_ERROR: "CGI error",
    Status.PROXY_ERROR: "proxy error",
    Status.SLOW_DOWN: "slow down",
    Status.PERMANENT_FAILURE: "permanent failure",
    Status.NOT_FOUND: "not found",
    Status.GONE: "gone",
    Status.PROXY_REQUEST_REFUSED: "proxy request refused",
    Status.BAD_REQUEST: "bad request",
    Status.CLIENT_CERTIFICATE_REQUIRED: "client certificate required",
    Status.CERTIFICATE_NOT_AUTHORIZED: "certificate not authorized",
    Status.CERTIFICATE_NOT_VALID: "certificate not valid",
}


def is_valid(status: int) -> bool:
    """Return True if the status fits the two-digit wire field."""
    return 0 <= status <= MAX_STATUS


def classify(status: int) -> StatusClass:
    """Map a status code to its ten-wide semantic class.

    Codes inside [0, 99] that belong to no class (0-9, 70-99) and codes
    outside that range both classify as ``StatusClass.INVALID``.
    """
    if not is_valid(status):
        return StatusClass.INVALID
    return _CLASS_BY_TENS.get(status // 10, StatusClass.INVALID)


def is_input(status: int) -> bool:
    return 10 <= status <= 19


def is_success(status: int) -> bool:
    return 20 <= status <= 29


def is_redirect(status: int) -> bool:
    return 30 <= status <= 39


def is_temporary_failure(status: int) -> bool:
    return 40 <= status <= 49


def is_permanent_failure(status: int) -> bool:
    return 50 <= status <= 59


def is_client_certificate_required(status: int) -> bool:
    return 60 <= status <= 69


def describe(status: int) -> str:
    """Return the human-readable name of a well-known status, or ""."""
    return _DESCRIPTIONS.get(status, "")
