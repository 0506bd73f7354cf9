"""Reading and appending records of a pcap capture file."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import BinaryIO

from twig.utils import (
    PCAP_MAGIC_BIG,
    PCAP_MAGIC_LITTLE,
    PCAP_VERSION_MAJOR,
    PCAP_VERSION_MINOR,
)

FILE_HEADER_SIZE = 24
RECORD_HEADER_SIZE = 16
_FILE_FIELDS = "IHHiIII"
_RECORD_FIELDS = "IIII"


class PcapError(Exception):
    """The capture file is malformed or truncated."""


@dataclass(frozen=True)
class PcapFileHeader:
    """The global header at the start of every capture file."""

    version_major: int = PCAP_VERSION_MAJOR
    version_minor: int = PCAP_VERSION_MINOR
    thiszone: int = 0
    sigfigs: int = 0
    snaplen: int = 65535
    linktype: int = 1
    big_endian: bool = False

    @property
    def byte_order(self) -> str:
        """The struct byte-order prefix of the file."""
        return ">" if self.big_endian else "<"

    def pack(self) -> bytes:
        """Encode the header in the file's byte order."""
        return struct.pack(
            self.byte_order + _FILE_FIELDS,
            PCAP_MAGIC_LITTLE,
            self.version_major,
            self.version_minor,
            self.thiszone,
            self.sigfigs,
            self.snaplen,
            self.linktype,
        )


@dataclass(frozen=True)
class PcapRecord:
    """One captured packet and its per-packet header."""

    ts_secs: int
    ts_usecs: int
    caplen: int
    length: int
    data: bytes


def read_file_header(stream: BinaryIO) -> PcapFileHeader:
    """Read and validate the global header."""
    data = stream.read(FILE_HEADER_SIZE)
    if not data:
        raise PcapError("read: empty pcap file")
    if len(data) < FILE_HEADER_SIZE:
        raise PcapError(f"truncated pcap header: only {len(data)} bytes")

    (magic,) = struct.unpack_from("<I", data)
    if magic == PCAP_MAGIC_LITTLE:
        big_endian = False
    elif magic == PCAP_MAGIC_BIG:
        big_endian = True
    else:
        raise PcapError(f"invalid magic number: 0x{magic:08x}")

    order = ">" if big_endian else "<"
    _magic, *fields = struct.unpack(order + _FILE_FIELDS, data)
    header = PcapFileHeader(*fields, big_endian=big_endian)
    if (header.version_major, header.version_minor) != (PCAP_VERSION_MAJOR, PCAP_VERSION_MINOR):
        raise PcapError(f"invalid pcap version: {header.version_major}.{header.version_minor}")
    return header


def read_record(stream: BinaryIO, header: PcapFileHeader) -> PcapRecord | None:
    """Read the next record; None when the end of the file has been reached."""
    raw = stream.read(RECORD_HEADER_SIZE)
    if not raw:
        return None
    if len(raw) < RECORD_HEADER_SIZE:
        raise PcapError(f"truncated packet header: only {len(raw)} bytes")
    ts_secs, ts_usecs, caplen, length = struct.unpack(header.byte_order + _RECORD_FIELDS, raw)
    data = stream.read(caplen) if caplen else b""
    if len(data) < caplen:
        raise PcapError(f"truncated packet: only {len(data)} bytes")
    return PcapRecord(ts_secs, ts_usecs, caplen, length, data)


def write_record(stream: BinaryIO, data: bytes, timestamp: float | None = None) -> int:
    """Append ``data`` as one record; return the number of bytes written."""
    if timestamp is None:
        timestamp = time.time()
    seconds, micros = divmod(round(timestamp * 1_000_000), 1_000_000)
    record = struct.pack(
        "<" + _RECORD_FIELDS, seconds & 0xFFFFFFFF, micros, len(data), len(data)
    ) + bytes(data)
    written = stream.write(record)
    stream.flush()
    if written is not None and written != len(record):
        raise OSError(f"short write: {written} of {len(record)} bytes")
    return len(record)


def format_timestamp(seconds: int, microseconds: int) -> str:
    """Render a record timestamp with nine decimal places."""
    value = Decimal(seconds) + Decimal(microseconds) / Decimal(1_000_000)
    return f"{value:.9f}"