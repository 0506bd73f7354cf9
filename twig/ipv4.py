"""IPv4 packet handling: answers UDP and ICMP requests addressed to us."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace

from twig.icmp import process_icmp
from twig.tcp import process_tcp
from twig.udp import process_udp
from twig.utils import (
    IPV4_TYPE_ICMP,
    IPV4_TYPE_TCP,
    IPV4_TYPE_UDP,
    ChecksumError,
    PacketError,
    in_cksum,
    verify_checksum,
)

_FORMAT = struct.Struct(">BBHHHBBH4s4s")
REPLY_TTL = 64


@dataclass(frozen=True)
class Ipv4Header:
    """The fixed 20-byte part of an IPv4 header, in host byte order."""

    version_ihl: int
    tos: int
    total_length: int
    ident: int
    fragment_offset: int
    ttl: int
    protocol: int
    checksum: int
    src: bytes
    dst: bytes

    @property
    def header_length(self) -> int:
        """Header length in bytes, taken from the IHL field."""
        return (self.version_ihl & 0x0F) << 2

    @classmethod
    def parse(cls, data: bytes) -> Ipv4Header:
        """Decode the first 20 bytes of ``data``."""
        if len(data) < _FORMAT.size:
            raise PacketError(f"truncated IPv4 header: {len(data)} bytes")
        return cls(*_FORMAT.unpack_from(data))

    def pack(self) -> bytes:
        """Encode the header in wire format."""
        return _FORMAT.pack(
            self.version_ihl,
            self.tos,
            self.total_length,
            self.ident,
            self.fragment_offset,
            self.ttl,
            self.protocol,
            self.checksum,
            bytes(self.src),
            bytes(self.dst),
        )


def process_ipv4(packet: bytes, my_address: int, now: float | None = None) -> bytes | None:
    """Build the IPv4 reply to ``packet``.

    Returns None when the packet is not addressed to ``my_address``.
    Raises PacketError (or ChecksumError) when the packet cannot be answered.
    """
    header = Ipv4Header.parse(packet)
    if int.from_bytes(header.dst, "big") != my_address:
        print("process_ipv4: Not for us...")
        return None

    header_length = header.header_length
    if header_length < _FORMAT.size or len(packet) < header_length:
        raise PacketError(f"bad IPv4 header length: {header_length}")
    if not verify_checksum(packet[:header_length]):
        raise ChecksumError("invalid IPv4 checksum")

    payload = bytes(packet[header_length:header.total_length])

    if header.protocol == IPV4_TYPE_TCP:
        print("(TCP)")
        process_tcp(payload)
        raise PacketError("TCP segments are not answered")
    if header.protocol == IPV4_TYPE_UDP:
        print("(UDP)")
        body = process_udp(payload, header.src, header.dst, now)
    elif header.protocol == IPV4_TYPE_ICMP:
        print("(ICMP)")
        body = process_icmp(payload)
    else:
        print()
        raise PacketError(f"unsupported IPv4 protocol {header.protocol}")

    reply = Ipv4Header(
        version_ihl=header.version_ihl,
        tos=header.tos,
        total_length=_FORMAT.size + len(body),
        ident=(header.ident + 1) & 0xFFFF,
        fragment_offset=0,
        ttl=REPLY_TTL,
        protocol=header.protocol,
        checksum=0,
        src=header.dst,
        dst=header.src,
    )
    reply = replace(reply, checksum=in_cksum(reply.pack()))
    return reply.pack() + body