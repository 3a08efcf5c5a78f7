import errno
import os
import select
import socket
import threading
import time

from .errors import DialCancelledError, DnsFailureError, SocketConnectError

# How often an in-flight connect checks its cancel event.
CANCEL_POLL_INTERVAL = 0.05


def connect_tcp(
    host: str,
    port: int,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> socket.socket:
    """Open a TCP connection, trying each resolved address in turn.

    ``timeout`` bounds the whole attempt and is left on the returned
    socket as its remaining budget.  Setting ``cancel`` aborts the attempt
    with DialCancelledError.
    """
    deadline = None if timeout is None else time.monotonic() + timeout

    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise DnsFailureError(f"DNS Failure for host '{host}'") from e

    last_error: OSError | None = None
    for family, type_, proto, _, sockaddr in infos:
        sock = socket.socket(family, type_, proto)
        try:
            _connect(sock, sockaddr, deadline, cancel)
        except DialCancelledError:
            sock.close()
            raise
        except OSError as e:
            sock.close()
            last_error = e
            continue

        remaining = _remaining(deadline)
        if remaining is not None and remaining <= 0:
            sock.close()
            raise SocketConnectError("Socket connection failed: timed out")

        sock.settimeout(remaining)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return sock

    raise SocketConnectError(f"Socket connection failed: {last_error}") from last_error


def _connect(
    sock: socket.socket,
    sockaddr,
    deadline: float | None,
    cancel: threading.Event | None,
) -> None:
    if cancel is not None and cancel.is_set():
        raise DialCancelledError("Dial cancelled")

    sock.setblocking(False)
    err = sock.connect_ex(sockaddr)
    if err not in (0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY):
        raise OSError(err, os.strerror(err))

    while err != 0:
        if cancel is not None and cancel.is_set():
            raise DialCancelledError("Dial cancelled")

        remaining = _remaining(deadline)
        if remaining is not None and remaining <= 0:
            raise TimeoutError("Connect timed out")

        wait = CANCEL_POLL_INTERVAL if cancel is not None else remaining
        if wait is not None and remaining is not None:
            wait = min(wait, remaining)

        _, writable, _ = select.select([], [sock], [], wait)
        if writable:
            err = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
            if err != 0:
                raise OSError(err, os.strerror(err))
            break


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return deadline - time.monotonic()
