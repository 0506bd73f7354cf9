"""Shared helpers: protocol constants, checksums, address formatting."""

from __future__ import annotations

import re
import socket
import struct
from dataclasses import dataclass

PCAP_MAGIC_LITTLE = 0xA1B2C3D4
PCAP_MAGIC_BIG = 0xD4C3B2A1
PCAP_VERSION_MAJOR = 2
PCAP_VERSION_MINOR = 4
ETHERTYPE_IPV4 = 0x0800
ETHERTYPE_ARP = 0x0806
IPV4_TYPE_TCP = 0x6
IPV4_TYPE_UDP = 0x11
IPV4_TYPE_ICMP = 0x1
ICMP_TYPE_ECHO = 0x8
ICMP_TYPE_ECHO_REPLY = 0x0
UDP_PORT_ECHO = 7
UDP_PORT_TIME = 37
UNIX_TO_1900_EPOCH_OFFSET = 2208988800

_WORD = struct.Struct(">H")


class PacketError(Exception):
    """A packet could not be processed or answered."""


class ChecksumError(PacketError):
    """A packet carried an invalid checksum."""


@dataclass(frozen=True)
class InterfaceSpec:
    """Our IPv4 address, the mask length and the capture file to use."""

    address: int
    mask_length: int
    filename: str


def in_cksum(data: bytes, initial: int = 0) -> int:
    """Return the Internet checksum of ``data`` as a network-order integer.

    An odd trailing byte is padded with zero. A buffer that already holds
    a correct checksum yields 0.
    """
    data = bytes(data)
    if len(data) % 2:
        data += b"\x00"
    total = initial + sum(word for (word,) in _WORD.iter_unpack(data))
    while total >> 16:
        total = (total >> 16) + (total & 0xFFFF)
    return ~total & 0xFFFF


def verify_checksum(data: bytes) -> bool:
    """Return True when ``data`` (checksum field included) sums correctly."""
    return in_cksum(data) == 0


def format_mac(addr: bytes) -> str:
    """Format a six-byte hardware address as colon-separated hex."""
    return ":".join(f"{byte:02x}" for byte in bytes(addr)[:6])


def format_ipv4(addr: bytes) -> str:
    """Format a four-byte IPv4 address in dotted-decimal form."""
    return ".".join(str(byte) for byte in bytes(addr)[:4])


def ip_string_to_int(text: str) -> int:
    """Convert a dotted-decimal IPv4 address to a host-order integer."""
    try:
        packed = socket.inet_pton(socket.AF_INET, text)
    except (OSError, ValueError) as exc:
        raise ValueError(f"invalid IPv4 address: {text!r}") from exc
    return int.from_bytes(packed, "big")


def parse_interface(spec: str) -> InterfaceSpec:
    """Parse ``X.X.X.Y_mask`` into our address and the ``X.X.X.0_mask.dmp`` file."""
    address_text, separator, mask_text = spec.partition("_")
    if not separator:
        raise ValueError(f"interface must look like ADDRESS_MASKLENGTH: {spec!r}")
    address = ip_string_to_int(address_text)
    match = re.match(r"\s*([+-]?\d+)", mask_text)
    mask_length = int(match.group(1)) if match else 0
    network_prefix = address_text.rpartition(".")[0]
    filename = f"{network_prefix}.0_{mask_length}.dmp"
    return InterfaceSpec(address=address, mask_length=mask_length, filename=filename)


def lookup_hostname(addr: bytes) -> str | None:
    """Reverse-resolve a four-byte IPv4 address; None when the lookup fails."""
    try:
        host, _service = socket.getnameinfo((format_ipv4(addr), 0), 0)
    except OSError:
        return None
    return host