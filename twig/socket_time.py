"""Ask a remote host for the time with the UDP time protocol."""

from __future__ import annotations

import os
import socket
import sys

TIME_PORT = 37
REQUEST = b"What time is it???\x00"
_REPLY_SIZE = 4


def query_time(host: str, port: int = TIME_PORT, timeout: float | None = None) -> int:
    """Send one request to ``host`` and return the 32-bit time value it sends back.

    The value is the number of seconds since 1900-01-01, as carried on the
    wire in network byte order.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP) as sock:
        sock.settimeout(timeout)
        sock.connect((host, port))
        sock.send(REQUEST)
        reply = sock.recv(64)
    if len(reply) < _REPLY_SIZE:
        raise ValueError(f"short time reply: {len(reply)} bytes")
    return int.from_bytes(reply[:_REPLY_SIZE], "big")


def main(argv: list[str] | None = None) -> int:
    """Print the time reported by the host named on the command line."""
    program = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "socket_time"
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print(f"Usage: {program} IP address (e.g. 192.0.2.1)", file=sys.stderr)
        raise SystemExit(1)

    host = args[0]
    try:
        value = query_time(host)
    except OSError as exc:
        print(f"{host}: {exc.strerror or exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    except ValueError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(2) from exc

    print(f"The time on {host} is 0x{value:08x}")
    return 0