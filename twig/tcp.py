"""TCP segment header decoding and display."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from twig.utils import PacketError

TCP_FLAG_NAMES = "FSRPAU"

_FORMAT = struct.Struct(">HHIIBBHHH")


def format_tcp_flags(flags: int) -> str:
    """Render the six classic TCP flags, '-' for each one that is clear."""
    return "".join(
        name if flags & (1 << bit) else "-" for bit, name in enumerate(TCP_FLAG_NAMES)
    )


@dataclass(frozen=True)
class TcpHeader:
    """The fixed part of a TCP header, in host byte order."""

    src_port: int
    dst_port: int
    seq: int
    ack: int
    data_offset: int
    flags: int
    window: int
    checksum: int
    urgent: int

    @classmethod
    def parse(cls, data: bytes) -> TcpHeader:
        """Decode the first 20 bytes of ``data``."""
        if len(data) < _FORMAT.size:
            raise PacketError(f"truncated TCP header: {len(data)} bytes")
        return cls(*_FORMAT.unpack_from(data))

    def describe(self) -> str:
        """Return the multi-line human-readable summary."""
        return (
            f"\tTCP:\tSport:\t{self.src_port}\n"
            f"\t\tDport:\t{self.dst_port}\n"
            f"\t\tFlags:\t{format_tcp_flags(self.flags)}\n"
            f"\t\tSeq:\t{self.seq}\n"
            f"\t\tACK:\t{self.ack}\n"
            f"\t\tWin:\t{self.window}\n"
            f"\t\tCSum:\t{self.checksum}"
        )


def process_tcp(segment: bytes) -> TcpHeader:
    """Decode and print a TCP segment header; TCP is never answered."""
    header = TcpHeader.parse(segment)
    print(header.describe())
    return header