"""Ethernet frame handling, including ARP display."""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass

from twig.ipv4 import process_ipv4
from twig.utils import (
    ETHERTYPE_ARP,
    ETHERTYPE_IPV4,
    PacketError,
    format_ipv4,
    format_mac,
)

_FORMAT = struct.Struct(">6s6sH")
_ARP_FORMAT = struct.Struct(">HHBBH6s4s6s4s")


@dataclass(frozen=True)
class EthernetHeader:
    """An Ethernet II header."""

    dest: bytes
    source: bytes
    ethertype: int

    @classmethod
    def parse(cls, data: bytes) -> EthernetHeader:
        """Decode the first 14 bytes of ``data``."""
        if len(data) < _FORMAT.size:
            raise PacketError(f"truncated Ethernet header: {len(data)} bytes")
        return cls(*_FORMAT.unpack_from(data))

    def pack(self) -> bytes:
        """Encode the header in wire format."""
        return _FORMAT.pack(bytes(self.dest), bytes(self.source), self.ethertype)

    def describe(self) -> str:
        """Return destination, source and type on one line."""
        return f"{format_mac(self.dest)}\t{format_mac(self.source)}\t0x{self.ethertype:04x}"


@dataclass(frozen=True)
class ArpPacket:
    """An ARP packet for IPv4 over Ethernet."""

    hw_type: int
    proto_type: int
    hlen: int
    plen: int
    op: int
    sha: bytes
    spa: bytes
    tha: bytes
    tpa: bytes

    @classmethod
    def parse(cls, data: bytes) -> ArpPacket:
        """Decode the first 28 bytes of ``data``."""
        if len(data) < _ARP_FORMAT.size:
            raise PacketError(f"truncated ARP packet: {len(data)} bytes")
        return cls(*_ARP_FORMAT.unpack_from(data))

    def _protocol_address(self, addr: bytes) -> str:
        return format_ipv4(addr) if self.plen == 4 else format_mac(addr)

    def describe(self) -> str:
        """Return the multi-line human-readable summary."""
        kind = "(ARP request)" if self.op == 1 else "(ARP reply)"
        return (
            f"\tARP:\tHWtype:\t{self.hw_type}\n"
            f"\t\thlen:\t{self.hlen}\n"
            f"\t\tplen:\t{self.plen}\n"
            f"\t\tOP:\t{self.op} {kind}\n"
            f"\t\tHardware:\t{format_mac(self.sha)}\n"
            f"\t\t\t==>\t{format_mac(self.tha)}\n"
            f"\t\tProtocol:\t{self._protocol_address(self.spa)}\t\n"
            f"\t\t\t==>\t{self._protocol_address(self.tpa)}\t"
        )


def process_ethernet(frame: bytes, my_address: int, now: float | None = None) -> bytes | None:
    """Build the Ethernet reply frame to ``frame``.

    Returns None when the enclosed IPv4 packet is not for us. ARP frames are
    printed, and they and any other unanswerable frame raise PacketError.
    """
    header = EthernetHeader.parse(frame)
    print(header.describe())
    payload = bytes(frame[_FORMAT.size:])

    if header.ethertype == ETHERTYPE_IPV4:
        try:
            reply = process_ipv4(payload, my_address, now)
        except PacketError:
            print("process_ipv4 failed.", file=sys.stderr)
            raise
        if reply is None:
            print("process_ipv4 returned with 0.", file=sys.stderr)
            return None
        return EthernetHeader(header.source, header.dest, ETHERTYPE_IPV4).pack() + reply

    if header.ethertype == ETHERTYPE_ARP:
        print(ArpPacket.parse(payload).describe())
        raise PacketError("ARP frames are not answered")

    raise PacketError(f"unsupported ethertype 0x{header.ethertype:04x}")