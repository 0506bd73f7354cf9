"""Command line entry point: answer packets appearing in a capture file."""

from __future__ import annotations

import argparse
import sys
import time

from twig.ethernet import process_ethernet
from twig.pcap import (
    PcapError,
    PcapRecord,
    format_timestamp,
    read_file_header,
    read_record,
    write_record,
)
from twig.utils import PCAP_MAGIC_LITTLE, PacketError, parse_interface

LINKTYPE_ETHERNET = 1
EXIT_USAGE = 99
EXIT_BAD_INTERFACE = 123

_HELP = (
    "Usage: ./twig [-d] [-d] [-d] [-i] IPv4addr_masklength\n"
    "\t-i:\t{IPv4addr}_{mask length} e.g. 192.168.1.10_24.\n"
    "\t\tTwig should assume that it has IP address 192.168.1.10/24 on that interface "
    "and that it should use the following file for reading and writing packets: "
    "192.168.1.0 24.dmp\n"
    "\t-d:\tDebugging flag. Can be used up to 3 times to increase verbosity. "
    "e.g. ./twig -d -d -d -i 192.168.1.10_24.\n"
    "\t-h:\tPrint this help message."
)


def _usage_error(message: str) -> SystemExit:
    print(message, file=sys.stderr)
    print(_HELP)
    return SystemExit(EXIT_USAGE)


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse ``-d``, ``-i SPEC`` and ``-h``; exits on bad usage."""
    debug = 0
    interface = None
    args = iter(argv)
    for arg in args:
        if arg == "-d":
            debug += 1
        elif arg == "-i":
            interface = next(args, None)
        elif arg == "-h":
            print(_HELP)
            raise SystemExit(0)
        else:
            raise _usage_error(f"Unknown argument: {arg}")
    if interface is None:
        raise _usage_error("No interface provided. Check -i option.")
    return argparse.Namespace(debug=debug, interface=interface)


def handle_record(
    record: PcapRecord, linktype: int, my_address: int, now: float | None = None
) -> bytes | None:
    """Print a record summary and return the reply frame, if any."""
    stamp = format_timestamp(record.ts_secs, record.ts_usecs)
    print(f"{stamp:>20}\t{record.caplen}\t{record.length}\t", end="")
    if linktype != LINKTYPE_ETHERNET:
        return None
    return process_ethernet(record.data, my_address, now)


def serve(
    path: str,
    my_address: int,
    poll_interval: float = 0.01,
    max_idle: float | None = None,
) -> int:
    """Answer packets appended to ``path`` and append the replies.

    Polls for new records until a packet cannot be processed, or until
    no record has arrived for ``max_idle`` seconds when that is given.
    Returns the number of replies written.
    """
    written = 0
    with open(path, "rb") as reader, open(path, "ab") as writer:
        header = read_file_header(reader)
        print(f"header magic: {PCAP_MAGIC_LITTLE:x}")
        print(f"header version: {header.version_major} {header.version_minor}")
        print(f"header linktype: {header.linktype}\n")

        idle_since = None
        while True:
            record = read_record(reader, header)
            if record is None:
                moment = time.monotonic()
                if idle_since is None:
                    idle_since = moment
                if max_idle is not None and moment - idle_since >= max_idle:
                    return written
                time.sleep(poll_interval)
                continue
            idle_since = None

            try:
                reply = handle_record(record, header.linktype, my_address)
            except PacketError as exc:
                print(exc, file=sys.stderr)
                print("process_ethernet failed.", file=sys.stderr)
                return written
            if reply is None:
                if header.linktype == LINKTYPE_ETHERNET:
                    print("process_ethernet returned with 0.", file=sys.stderr)
                continue
            write_record(writer, reply)
            written += 1


def main(argv: list[str] | None = None) -> int:
    """Run the responder on the capture file named by ``-i``."""
    options = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        spec = parse_interface(options.interface)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(EXIT_BAD_INTERFACE) from exc
    try:
        serve(spec.filename, spec.address)
    except OSError as exc:
        print(f"{spec.filename}: {exc.strerror or exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except PcapError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(1) from exc
    return 0