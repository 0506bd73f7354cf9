"""Socket helpers: resolving services and opening UDP or TCP sockets."""

from __future__ import annotations

import re
import socket

from twig.output import FatalError

_KNOWN_PROTOCOLS = {"tcp": socket.IPPROTO_TCP, "udp": socket.IPPROTO_UDP}


def _leading_int(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def resolve_port(service: str, protocol: str = "udp") -> int:
    """Map a service name or decimal port to a port number."""
    try:
        return socket.getservbyname(service, protocol)
    except OSError:
        pass
    port = _leading_int(service) & 0xFFFF
    if port == 0:
        raise FatalError(f'can\'t get "{service}" service entry')
    return port


def _protocol_number(protocol: str) -> int:
    try:
        return socket.getprotobyname(protocol)
    except OSError:
        if protocol in _KNOWN_PROTOCOLS:
            return _KNOWN_PROTOCOLS[protocol]
        raise FatalError(f'can\'t get "{protocol}" protocol entry') from None


def connect_socket(host: str, service: str, protocol: str) -> socket.socket:
    """Open a socket to ``service`` on ``host`` using "tcp" or "udp"."""
    port = resolve_port(service, protocol)
    try:
        address = socket.gethostbyname(host)
    except OSError:
        raise FatalError(f'can\'t get "{host}" host entry') from None
    proto = _protocol_number(protocol)
    sock_type = socket.SOCK_DGRAM if protocol == "udp" else socket.SOCK_STREAM

    try:
        sock = socket.socket(socket.AF_INET, sock_type, proto)
    except OSError as exc:
        raise FatalError(f"can't create socket: {exc.strerror or exc}") from exc
    try:
        sock.connect((address, port))
    except OSError as exc:
        sock.close()
        raise FatalError(f"can't connect to {host}.{service}: {exc.strerror or exc}") from exc
    return sock


def connect_udp(host: str, service: str) -> socket.socket:
    """Open a connected UDP socket to ``service`` on ``host``."""
    return connect_socket(host, service, "udp")


def open_udp_port(ip_version: int) -> socket.socket:
    """Bind a UDP socket to any local address and an ephemeral port."""
    if ip_version == 4:
        family, address = socket.AF_INET, ("0.0.0.0", 0)
    elif ip_version == 6:
        family, address = socket.AF_INET6, ("::", 0)
    else:
        raise ValueError(f"Wow, IP version {ip_version}, never thought I'd live to see that!")

    try:
        sock = socket.socket(family, socket.SOCK_DGRAM)
    except OSError as exc:
        raise FatalError(f"socket ({exc.strerror or exc})") from exc
    try:
        sock.bind(address)
    except OSError as exc:
        sock.close()
        raise FatalError(f"bind ({exc.strerror or exc})") from exc
    return sock