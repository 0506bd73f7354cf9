import socket
from unittest import mock

import pytest

from twig.utils import (
    InterfaceSpec,
    format_ipv4,
    format_mac,
    in_cksum,
    ip_string_to_int,
    lookup_hostname,
    parse_interface,
    verify_checksum,
)


def test_in_cksum_worked_example():
    data = bytes([0x00, 0x01, 0xF2, 0x03, 0xF4, 0xF5, 0xF6, 0xF7])
    assert in_cksum(data) == 0x220D


def test_checksum_inserted_verifies():
    header = bytearray(b"\x45\x00\x00\x1c\x12\x34\x00\x00\x40\x01\x00\x00\x0a\x00\x00\x01\x0a\x00\x00\x02")
    checksum = in_cksum(bytes(header))
    header[10:12] = checksum.to_bytes(2, "big")
    assert in_cksum(bytes(header)) == 0
    assert verify_checksum(bytes(header)) is True


def test_corrupted_data_fails_verification():
    header = bytearray(b"\x45\x00\x00\x1c\x12\x34\x00\x00\x40\x01\x00\x00\x0a\x00\x00\x01\x0a\x00\x00\x02")
    header[10:12] = in_cksum(bytes(header)).to_bytes(2, "big")
    header[0] ^= 0x01
    assert verify_checksum(bytes(header)) is False


def test_odd_length_is_zero_padded():
    assert in_cksum(b"\x01\x02\x03") == in_cksum(b"\x01\x02\x03\x00")


def test_initial_value_is_added():
    assert in_cksum(b"\x00\x05", 0) == in_cksum(b"", 5)


def test_format_mac():
    assert format_mac(bytes([0xDE, 0xAD, 0xBE, 0xEF, 0x00, 0x01])) == "de:ad:be:ef:00:01"


def test_format_ipv4():
    assert format_ipv4(bytes([192, 168, 1, 10])) == "192.168.1.10"


def test_ip_string_to_int():
    assert ip_string_to_int("192.168.1.10") == int.from_bytes(bytes([192, 168, 1, 10]), "big")


@pytest.mark.parametrize("text", ["999.1.1.1", "1.2.3", "not an address", ""])
def test_ip_string_to_int_rejects_invalid(text):
    with pytest.raises(ValueError):
        ip_string_to_int(text)


def test_parse_interface():
    spec = parse_interface("192.168.1.10_24")
    assert spec == InterfaceSpec(
        address=ip_string_to_int("192.168.1.10"),
        mask_length=24,
        filename="192.168.1.0_24.dmp",
    )


def test_parse_interface_requires_mask():
    with pytest.raises(ValueError):
        parse_interface("192.168.1.10")


def test_parse_interface_rejects_bad_address():
    with pytest.raises(ValueError):
        parse_interface("300.168.1.10_24")


def test_lookup_hostname_success():
    with mock.patch("socket.getnameinfo", return_value=("host.example.com", "0")) as fake:
        assert lookup_hostname(bytes([10, 0, 0, 1])) == "host.example.com"
    assert fake.call_args[0][0] == ("10.0.0.1", 0)


def test_lookup_hostname_failure():
    with mock.patch("socket.getnameinfo", side_effect=socket.gaierror("no name")):
        assert lookup_hostname(bytes([10, 0, 0, 1])) is None