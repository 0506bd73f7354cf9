import socket

import pytest

from twig.netutils import connect_socket, connect_udp, open_udp_port, resolve_port
from twig.output import FatalError


def test_numeric_service_is_its_port():
    assert resolve_port("12345", "udp") == 12345


def test_service_with_trailing_text_uses_leading_number():
    assert resolve_port("7abc", "udp") == 7


def test_zero_port_is_fatal():
    with pytest.raises(FatalError) as info:
        resolve_port("0", "udp")
    assert 'can\'t get "0" service entry' in str(info.value)


def test_port_wrapping_to_zero_is_fatal():
    with pytest.raises(FatalError):
        resolve_port("65536", "udp")


def test_connect_udp_reaches_local_server():
    server = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    server.bind(("127.0.0.1", 0))
    server.settimeout(5)
    port = server.getsockname()[1]
    try:
        with connect_udp("127.0.0.1", str(port)) as client:
            assert client.type == socket.SOCK_DGRAM
            assert client.getpeername() == ("127.0.0.1", port)
            client.send(b"ping")
            data, _peer = server.recvfrom(64)
        assert data == b"ping"
    finally:
        server.close()


def test_connect_tcp_reaches_listener():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]
    try:
        with connect_socket("127.0.0.1", str(port), "tcp") as client:
            assert client.type == socket.SOCK_STREAM
            assert client.getpeername() == ("127.0.0.1", port)
    finally:
        listener.close()


def test_unknown_protocol_is_fatal():
    with pytest.raises(FatalError) as info:
        connect_socket("127.0.0.1", "12345", "nosuchproto")
    assert "nosuchproto" in str(info.value)


def test_open_udp_port_binds_ephemeral_port():
    with open_udp_port(4) as sock:
        assert sock.family == socket.AF_INET
        assert sock.type == socket.SOCK_DGRAM
        assert sock.getsockname()[1] > 0


def test_open_udp_port_rejects_unknown_version():
    with pytest.raises(ValueError) as info:
        open_udp_port(5)
    assert "IP version 5" in str(info.value)