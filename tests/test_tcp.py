import struct

import pytest

from twig.tcp import TcpHeader, format_tcp_flags, process_tcp
from twig.utils import PacketError


def make_segment(src=1234, dst=80, seq=1000, ack=2000, flags=0x12, window=512, checksum=77):
    return struct.pack(">HHIIBBHHH", src, dst, seq, ack, 0x50, flags, window, checksum, 0)


def test_flags_none_set():
    assert format_tcp_flags(0) == "------"


def test_flags_all_set():
    assert format_tcp_flags(0x3F) == "FSRPAU"


def test_flags_syn_ack():
    assert format_tcp_flags(0x12) == "-S--A-"


def test_parse_fields():
    header = TcpHeader.parse(make_segment())
    assert header == TcpHeader(1234, 80, 1000, 2000, 0x50, 0x12, 512, 77, 0)


def test_parse_ignores_trailing_payload():
    header = TcpHeader.parse(make_segment() + b"payload")
    assert header.dst_port == 80


def test_parse_truncated():
    with pytest.raises(PacketError):
        TcpHeader.parse(make_segment()[:19])


def test_describe_lines():
    lines = TcpHeader.parse(make_segment()).describe().split("\n")
    assert lines[0] == "\tTCP:\tSport:\t1234"
    assert lines[1] == "\t\tDport:\t80"
    assert lines[2] == "\t\tFlags:\t" + format_tcp_flags(0x12)
    assert lines[3] == "\t\tSeq:\t1000"
    assert lines[6] == "\t\tCSum:\t77"


def test_process_tcp_prints_and_returns(capsys):
    header = process_tcp(make_segment(src=4321))
    assert header.src_port == 4321
    assert capsys.readouterr().out == header.describe() + "\n"