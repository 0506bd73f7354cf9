import socket
import struct
import threading

import pytest

from twig.socket_time import REQUEST, main, query_time


def _serve_once(reply: bytes):
    server = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    server.bind(("127.0.0.1", 0))
    server.settimeout(5)
    received = []

    def run():
        try:
            data, peer = server.recvfrom(1024)
            received.append(data)
            server.sendto(reply, peer)
        finally:
            server.close()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return server.getsockname()[1], received, thread


def test_query_time_decodes_network_order_value():
    port, received, thread = _serve_once(struct.pack(">I", 0x12345678))
    value = query_time("127.0.0.1", port, timeout=5)
    thread.join(5)
    assert value == 0x12345678


def test_query_time_sends_request_text():
    port, received, thread = _serve_once(struct.pack(">I", 1))
    value = query_time("127.0.0.1", port, timeout=5)
    thread.join(5)
    assert value == 1
    assert received == [b"What time is it???\x00"]
    assert received == [REQUEST]


def test_query_time_short_reply_raises():
    port, _received, thread = _serve_once(b"\x01\x02")
    with pytest.raises(ValueError):
        query_time("127.0.0.1", port, timeout=5)
    thread.join(5)


def test_query_time_no_answer_raises_oserror():
    silent = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    silent.bind(("127.0.0.1", 0))
    port = silent.getsockname()[1]
    try:
        with pytest.raises(OSError):
            query_time("127.0.0.1", port, timeout=0.2)
    finally:
        silent.close()


def test_main_without_host_is_usage_error(capsys):
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 1
    assert "Usage" in capsys.readouterr().err


def test_main_with_extra_arguments_is_usage_error():
    with pytest.raises(SystemExit) as info:
        main(["127.0.0.1", "extra"])
    assert info.value.code == 1