"""Local TCP port allocation."""

from __future__ import annotations

import socket

from .errors import ServerBindError


def _family(host: str) -> socket.AddressFamily:
    return socket.AF_INET6 if ":" in host else socket.AF_INET


def bind_ephemeral(host: str = "127.0.0.1", port: int = 0, backlog: int = 128) -> socket.socket:
    """
    Bind and listen on (host, port), returning the socket.

    With port 0 the OS assigns a free port; read it back with socket_address().
    The socket is already listening, so connections queue up before the server
    starts accepting them.
    """
    sock = socket.socket(_family(host), socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as e:
        sock.close()
        raise ServerBindError(e.errno, f"could not bind {host}:{port}: {e.strerror or e}") from e
    return sock


def find_free_port(host: str = "127.0.0.1") -> int:
    """Return a port that was free at the time of the call."""
    with socket.socket(_family(host), socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return s.getsockname()[1]


def socket_address(sock: socket.socket) -> tuple[str, int]:
    """(host, port) a socket is bound to."""
    name = sock.getsockname()
    return name[0], name[1]
