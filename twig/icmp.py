"""ICMP echo handling."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace

from twig.utils import (
    ICMP_TYPE_ECHO,
    ICMP_TYPE_ECHO_REPLY,
    ChecksumError,
    PacketError,
    in_cksum,
    verify_checksum,
)

_FORMAT = struct.Struct(">BBHHH")


@dataclass(frozen=True)
class IcmpHeader:
    """An ICMP echo-style header, in host byte order."""

    icmp_type: int
    code: int
    checksum: int
    ident: int
    seq: int

    @classmethod
    def parse(cls, data: bytes) -> IcmpHeader:
        """Decode the first 8 bytes of ``data``."""
        if len(data) < _FORMAT.size:
            raise PacketError(f"truncated ICMP header: {len(data)} bytes")
        return cls(*_FORMAT.unpack_from(data))

    def pack(self) -> bytes:
        """Encode the header in wire format."""
        return _FORMAT.pack(self.icmp_type, self.code, self.checksum, self.ident, self.seq)

    def describe(self) -> str:
        """Return the human-readable summary."""
        return (
            f"\tICMP\tType:\t{self.icmp_type}\n"
            f"\t\tCode:\t{self.code}\n"
            f"\t\tCSum:\t{self.checksum}\n"
            f"\t\tIdent:\t{self.ident}"
            f"\t\tSeq Num:\t{self.seq}"
        )


def process_icmp(packet: bytes) -> bytes:
    """Answer an ICMP echo request with its echo reply.

    The reply mirrors the identifier, sequence number and data of the
    request. Anything other than a valid echo request raises PacketError.
    """
    header = IcmpHeader.parse(packet)
    print(header.describe())

    if header.icmp_type == ICMP_TYPE_ECHO:
        if not verify_checksum(packet):
            raise ChecksumError("invalid ICMP checksum")
        body = bytes(packet[_FORMAT.size:])
        reply = IcmpHeader(ICMP_TYPE_ECHO_REPLY, 0, 0, header.ident, header.seq)
        reply = replace(reply, checksum=in_cksum(reply.pack() + body))
        return reply.pack() + body

    if header.icmp_type == ICMP_TYPE_ECHO_REPLY:
        print("Received ICMP reply: ")
        print(header.describe())
        raise PacketError("received an ICMP echo reply; nothing to answer")

    print("Sorry, we only support ICMP echo and echo replies right now :(")
    raise PacketError(f"unsupported ICMP type {header.icmp_type}")