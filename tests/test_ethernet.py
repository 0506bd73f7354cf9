import struct
from dataclasses import replace

import pytest

from twig.ethernet import ArpPacket, EthernetHeader, process_ethernet
from twig.icmp import IcmpHeader
from twig.ipv4 import Ipv4Header, process_ipv4
from twig.utils import ETHERTYPE_ARP, ETHERTYPE_IPV4, PacketError, in_cksum, ip_string_to_int

MAC_A = bytes([0x02, 0, 0, 0, 0, 0x01])
MAC_B = bytes([0x02, 0, 0, 0, 0, 0x02])
MY_ADDR = bytes([10, 0, 0, 5])
PEER_ADDR = bytes([10, 0, 0, 9])
MY_INT = ip_string_to_int("10.0.0.5")


def build_icmp_packet(dst=MY_ADDR):
    data = b"payload!"
    raw = IcmpHeader(8, 0, 0, 5, 1).pack() + data
    icmp = IcmpHeader(8, 0, in_cksum(raw), 5, 1).pack() + data
    header = Ipv4Header(0x45, 0, 20 + len(icmp), 1, 0, 64, 1, 0, PEER_ADDR, dst)
    header = replace(header, checksum=in_cksum(header.pack()))
    return header.pack() + icmp


def build_frame(payload, ethertype=ETHERTYPE_IPV4):
    return EthernetHeader(MAC_B, MAC_A, ethertype).pack() + payload


def build_arp(op=1):
    return struct.pack(">HHBBH6s4s6s4s", 1, 0x0800, 6, 4, op, MAC_A, PEER_ADDR, bytes(6), MY_ADDR)


def test_header_round_trip():
    header = EthernetHeader(MAC_A, MAC_B, ETHERTYPE_IPV4)
    assert EthernetHeader.parse(header.pack()) == header
    assert len(header.pack()) == 14


def test_header_describe():
    header = EthernetHeader(MAC_A, MAC_B, ETHERTYPE_IPV4)
    assert header.describe() == "02:00:00:00:00:01\t02:00:00:00:00:02\t0x0800"


def test_parse_truncated():
    with pytest.raises(PacketError):
        EthernetHeader.parse(b"\x00" * 10)


def test_arp_parse_and_describe():
    arp = ArpPacket.parse(build_arp(op=1))
    assert arp.op == 1
    assert arp.plen == 4
    assert arp.spa == PEER_ADDR
    text = arp.describe()
    assert "(ARP request)" in text
    assert "10.0.0.9" in text
    assert "02:00:00:00:00:01" in text


def test_arp_reply_describe():
    assert "(ARP reply)" in ArpPacket.parse(build_arp(op=2)).describe()


def test_arp_truncated():
    with pytest.raises(PacketError):
        ArpPacket.parse(b"\x00" * 20)


def test_icmp_frame_reply():
    packet = build_icmp_packet()
    reply = process_ethernet(build_frame(packet), MY_INT)
    header = EthernetHeader.parse(reply)
    assert header.dest == MAC_A
    assert header.source == MAC_B
    assert header.ethertype == ETHERTYPE_IPV4
    assert reply[14:] == process_ipv4(packet, MY_INT)


def test_not_for_us_returns_none():
    frame = build_frame(build_icmp_packet(dst=bytes([10, 0, 0, 7])))
    assert process_ethernet(frame, MY_INT) is None


def test_arp_frame_is_not_answered(capsys):
    with pytest.raises(PacketError):
        process_ethernet(build_frame(build_arp(), ETHERTYPE_ARP), MY_INT)
    assert "ARP:" in capsys.readouterr().out


def test_unknown_ethertype():
    with pytest.raises(PacketError):
        process_ethernet(build_frame(b"\x00" * 30, 0x86DD), MY_INT)


def test_ipv4_failure_propagates():
    packet = bytearray(build_icmp_packet())
    packet[10] ^= 0xFF
    with pytest.raises(PacketError):
        process_ethernet(build_frame(bytes(packet)), MY_INT)