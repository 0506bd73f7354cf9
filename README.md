# twig

`twig` is a small user-space IPv4 host. It does not use a real network
interface: it follows a pcap capture file, reads each Ethernet frame that
is appended to it, and appends its reply frames to the same file. It
answers:

- ICMP echo requests (ping), mirroring the request's identifier, sequence
  number and data;
- UDP echo (port 7), returning the datagram's data to the sender;
- UDP time (port 37, RFC 868), returning seconds since 1900 as 32 bits.

Checksums of incoming IPv4, ICMP and UDP packets are verified, and IPv4
packets not addressed to twig's own address are ignored. ARP and TCP
headers are decoded and printed, but not answered.

The package also ships two clients: `udpping`, which measures round-trip
times to a UDP echo service, and `socket-time`, which queries a UDP time
service.

## Installation

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Running twig

```
twig -i 192.168.1.10_24
```

The `-i` argument is `{IPv4 address}_{mask length}`. Twig takes
`192.168.1.10` as its address and uses the capture file named after the
network, here `192.168.1.0_24.dmp`, for reading and writing packets. The
file must already exist and start with a pcap file header (version 2.4,
either byte order). Reply records are appended in little-endian order
with the current time as their timestamp.

Options:

- `-i SPEC` interface specification, as above (required)
- `-d` debugging flag; may be repeated. It is accepted but does not
  currently change the output
- `-h` print help and exit

For every packet twig prints its timestamp, captured length and wire
length, followed by the decoded headers. When the end of the file is
reached it waits and keeps reading as new packets are appended.

Twig stops at the first frame it cannot answer: an ARP frame, a TCP
segment, an unsupported protocol, ICMP type or UDP port, or a bad
checksum. Frames whose IPv4 packet is addressed elsewhere are skipped.
Usage errors exit with status 99, a malformed `-i` value with 123, and a
missing or malformed capture file with 1.

## Querying a time server

```
socket-time 192.168.1.10
```

Sends one datagram to UDP port 37 of the given address, waits for the
reply and prints the 32-bit time value it receives, in hexadecimal.

## Measuring UDP round trips

```
udpping [-s] [-4|-6] [-p N] [-P port] [-m MSECS] [-B N] [-b N] [-t N] [-v] host
```

- `-s` stop at the first lost packet or bad reply
- `-4` / `-6` use IPv4 (default) or IPv6
- `-p N` number of packets to send (default 1000)
- `-P port` port number or service name (default `echo`)
- `-m MSECS` how long to wait for each reply (default 500)
- `-B N` packets sent per burst (default 1)
- `-b N` payload bytes per packet (default 50, at most 10000)
- `-t N` print a progress tick every N packets (default 100)
- `-v` verify the data in each reply

Each request carries a sequence number followed by the payload bytes.
While running, `X` marks a timeout and `R` a refused connection. At the
end `udpping` prints the number of packets sent, received and received
late, the total, minimum, maximum and average round-trip times in
milliseconds, and the packet loss. The statistics are also printed when
the run is interrupted with Ctrl-C, SIGTERM or SIGQUIT.

## Library use

The protocol handlers work on bytes, without any files or sockets:

- `twig.utils.in_cksum` and `twig.utils.verify_checksum` compute and check
  the Internet checksum; `twig.utils.parse_interface` turns
  `192.168.1.10_24` into an `InterfaceSpec`.
- `twig.icmp.process_icmp` builds an echo reply from an echo request.
- `twig.udp.process_udp` answers the echo and time services;
  `twig.udp.udp_checksum` computes the pseudo-header checksum.
- `twig.ipv4.process_ipv4` and `twig.ethernet.process_ethernet` turn a
  whole incoming packet or frame into the reply, or return `None` when it
  is not for the given address.
- Packets that cannot be answered raise `twig.utils.PacketError`, and bad
  checksums its subclass `ChecksumError`.

`twig.pcap.read_file_header`, `twig.pcap.read_record` and
`twig.pcap.write_record` read and write pcap data on any binary stream,
raising `twig.pcap.PcapError` for malformed input.
`twig.histogram.render_histogram` draws a text histogram of round-trip
times, and `twig.udpping.UdpPinger` runs a ping session from a
`PingConfig`.

## What twig does not do

Twig never opens a network interface or captures live traffic; it only
reads and appends to a capture file. It does not answer ARP requests or
TCP segments, keeps no ARP cache, handles IPv4 only, and supports no link
type other than Ethernet.