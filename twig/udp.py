"""UDP echo (port 7) and time (port 37) services."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass, replace

from twig.utils import (
    IPV4_TYPE_UDP,
    UDP_PORT_ECHO,
    UDP_PORT_TIME,
    UNIX_TO_1900_EPOCH_OFFSET,
    ChecksumError,
    PacketError,
    in_cksum,
)

_FORMAT = struct.Struct(">HHHH")
_TIME = struct.Struct(">I")


@dataclass(frozen=True)
class UdpHeader:
    """A UDP header, in host byte order."""

    src_port: int
    dst_port: int
    length: int
    checksum: int

    @classmethod
    def parse(cls, data: bytes) -> UdpHeader:
        """Decode the first 8 bytes of ``data``."""
        if len(data) < _FORMAT.size:
            raise PacketError(f"truncated UDP header: {len(data)} bytes")
        return cls(*_FORMAT.unpack_from(data))

    def pack(self) -> bytes:
        """Encode the header in wire format."""
        return _FORMAT.pack(self.src_port, self.dst_port, self.length, self.checksum)

    def describe(self) -> str:
        """Return the human-readable summary."""
        return (
            f"\tUDP:\tSport:\t{self.src_port}\n"
            f"\t\tDport:\t{self.dst_port}\n"
            f"\t\tDGlen:\t{self.length}\n"
            f"\t\tCSum:\t{self.checksum}"
        )


def time_protocol_now(now: float | None = None) -> int:
    """Seconds since 1900-01-01, truncated to 32 bits as the time protocol sends."""
    if now is None:
        now = time.time()
    return (int(now) + UNIX_TO_1900_EPOCH_OFFSET) & 0xFFFFFFFF


def udp_checksum(
    datagram: bytes, src_addr: bytes, dst_addr: bytes, length: int | None = None
) -> int:
    """Checksum of a UDP datagram over the IPv4 pseudo-header.

    ``length`` defaults to the size of ``datagram``. A datagram whose
    checksum field is correct yields 0.
    """
    if length is None:
        length = len(datagram)
    pseudo = bytes(src_addr[:4]) + bytes(dst_addr[:4]) + struct.pack(">BBH", 0, IPV4_TYPE_UDP, length)
    return in_cksum(pseudo + bytes(datagram[:length]))


def process_udp(
    datagram: bytes, src_addr: bytes, dst_addr: bytes, now: float | None = None
) -> bytes:
    """Build the reply to a UDP request addressed to the echo or time service."""
    header = UdpHeader.parse(datagram)
    computed = udp_checksum(datagram, src_addr, dst_addr)
    if computed != 0:
        raise ChecksumError(f"invalid UDP checksum: {computed}")

    if header.dst_port == UDP_PORT_ECHO:
        body = bytes(datagram[_FORMAT.size:])
        reply = UdpHeader(UDP_PORT_ECHO, header.src_port, len(datagram), 0)
    elif header.dst_port == UDP_PORT_TIME:
        body = _TIME.pack(time_protocol_now(now))
        reply = UdpHeader(UDP_PORT_TIME, header.src_port, _FORMAT.size + len(body), 0)
    else:
        raise PacketError(
            f"Received port {header.dst_port}... Only support UDP echo at this time..."
        )

    reply = replace(reply, checksum=udp_checksum(reply.pack() + body, src_addr, dst_addr))
    return reply.pack() + body