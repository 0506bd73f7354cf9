"""Send UDP echo requests to a host and report round-trip statistics."""

from __future__ import annotations

import os
import re
import select
import signal
import socket
import struct
import sys
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from twig.netutils import open_udp_port, resolve_port
from twig.output import FatalError, LineOutput

VERSION = "Udpping version 2.2 - Tue May 27, 2008"

DEFAULT_NUM_PACKETS = 1000
DEFAULT_DATA_SIZE = 50
DEFAULT_BURST_SIZE = 1
DEFAULT_TICK_INTERVAL = 100
DEFAULT_MAX_WAIT_MSECS = 500
DEFAULT_IP_VERSION = 4
DEFAULT_SERVICE = "echo"
MAX_DATA = 10000
EXIT_FAILURE = 255

_SEQ = struct.Struct(">i")

_USAGE = (
    VERSION + "\n"
    "usage: {program} [-s] [-4|6] [-p N] [-P port] [-m MSECS] [-B N] [-b N] [-t N] [-c] [-v] host\n"
    "       -s  stop when you lose a packet\n"
    f"       -p  number of packets to send, default {DEFAULT_NUM_PACKETS}\n"
    f"       -b  number of bytes per packet, default {DEFAULT_DATA_SIZE}\n"
    f"       -B  number of packets per write (burst), default {DEFAULT_BURST_SIZE}\n"
    f"       -m  packet timeout in milliseconds, default {DEFAULT_MAX_WAIT_MSECS}\n"
    f"       -t  distance between 'ticks', default is {DEFAULT_TICK_INTERVAL}\n"
    "       -P  port (or service name), default is port 7\n"
    "       -v  verify data on receipt"
)


class UsageError(Exception):
    """The command line could not be understood."""


class _PacketMissed(FatalError):
    """A reply was lost while stopping on the first error; already reported."""


@dataclass
class PingConfig:
    """Settings of one ping run."""

    host: str
    service: str = DEFAULT_SERVICE
    num_packets: int = DEFAULT_NUM_PACKETS
    data_size: int = DEFAULT_DATA_SIZE
    burst_size: int = DEFAULT_BURST_SIZE
    max_wait_msecs: int = DEFAULT_MAX_WAIT_MSECS
    tick_interval: int = DEFAULT_TICK_INTERVAL
    verify: bool = False
    stop_on_error: bool = False
    ip_version: int = DEFAULT_IP_VERSION


@dataclass
class PacketTime:
    """Send and receive times of one request, in milliseconds."""

    send_t: float | None = None
    recv_t: float | None = None
    timed_out: bool = False

    @property
    def completed(self) -> bool:
        """True when a reply arrived in time for this request."""
        return self.send_t is not None and self.recv_t is not None and not self.timed_out

    @property
    def rtt(self) -> float | None:
        """Round-trip time in milliseconds, None when there was no timely reply."""
        if not self.completed:
            return None
        return self.recv_t - self.send_t


@dataclass(frozen=True)
class PingResults:
    """Summary statistics of a ping run; times in milliseconds."""

    sent: int
    received: int
    late: int
    total: float
    minimum: float
    maximum: float

    @property
    def average(self) -> float:
        """Mean round-trip time of the replies received."""
        return self.total / self.received if self.received else 0.0

    @property
    def loss_percent(self) -> float:
        """Share of requests without a timely reply, in percent."""
        return 100.0 * (self.sent - self.received) / self.sent if self.sent else 0.0


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def parse_args(argv: Iterable[str]) -> PingConfig:
    """Build a PingConfig from command-line arguments.

    Raises UsageError for malformed arguments and FatalError when the
    requested data size is too large.
    """
    settings: dict[str, object] = {}
    host: str | None = None
    args = iter(argv)

    def value(flag: str) -> str:
        item = next(args, None)
        if item is None:
            raise UsageError(f"option {flag} needs a value")
        return item

    numeric = {"-p": "num_packets", "-B": "burst_size", "-m": "max_wait_msecs", "-t": "tick_interval"}
    for arg in args:
        if arg in numeric:
            settings[numeric[arg]] = _atoi(value(arg))
        elif arg == "-b":
            size = _atoi(value(arg))
            if size > MAX_DATA:
                raise FatalError(f"max data size is {MAX_DATA}")
            settings["data_size"] = size
        elif arg == "-s":
            settings["stop_on_error"] = True
        elif arg == "-v":
            settings["verify"] = True
        elif arg == "-P":
            settings["service"] = value(arg)
        elif arg == "-4":
            settings["ip_version"] = 4
        elif arg == "-6":
            settings["ip_version"] = 6
        elif arg.startswith("-"):
            raise UsageError(f"unknown option {arg}")
        elif host is None:
            host = arg
        else:
            raise UsageError(f"unexpected argument {arg}")

    if not host:
        raise UsageError("no host given")
    return PingConfig(host=host, **settings)


def _pattern(size: int) -> bytes:
    return bytes(index & 0xFF for index in range(size))


def make_payload(seq: int, size: int) -> bytes:
    """Encode a request: the sequence number followed by ``size`` pattern bytes."""
    if not 0 <= size <= MAX_DATA:
        raise ValueError(f"data size must be between 0 and {MAX_DATA}: {size}")
    return _SEQ.pack(seq) + _pattern(size)


def parse_reply(data: bytes) -> tuple[int, bytes]:
    """Split a reply into its sequence number and its data."""
    if len(data) < _SEQ.size:
        raise ValueError(f"short reply: {len(data)} bytes")
    (seq,) = _SEQ.unpack_from(data)
    return seq, bytes(data[_SEQ.size:])


def _first_mismatch(data: bytes, size: int) -> int | None:
    expected = _pattern(size)
    for offset, want in enumerate(expected):
        if offset >= len(data) or data[offset] != want:
            return offset
    return None


def verify_payload(data: bytes, size: int) -> bool:
    """True when the first ``size`` bytes of ``data`` match what was sent."""
    return _first_mismatch(data, size) is None


def summarize(times: Iterable[PacketTime], sent: int, received: int, late: int) -> PingResults:
    """Compute totals and extremes over the requests that got a timely reply."""
    rtts = [entry.rtt for entry in times if entry.completed]
    return PingResults(
        sent=sent,
        received=received,
        late=late,
        total=sum(rtts),
        minimum=min(rtts, default=0.0),
        maximum=max(rtts, default=0.0),
    )


def _result_pieces(results: PingResults) -> list[str]:
    if results.received == 0:
        return []
    return [
        "\n\ntime spent waiting for echos to return (in milliseconds):\n",
        "# sent  # rcvd  # late       total        min       max       avg\n",
        "------  ------  ------  -----------  --------  --------  --------\n",
        f"{results.sent:6d}  {results.received:6d}  {results.late:6d}  "
        f"{results.total:11.3f}  {results.minimum:8.3f}  {results.maximum:8.3f}  "
        f"{results.average:8.3f} \n",
        f"{results.loss_percent:.2f}% packet loss\n",
    ]


def format_results(results: PingResults) -> str:
    """Render the statistics table; empty when no reply was received."""
    return "".join(_result_pieces(results))


class UdpPinger:
    """Sends numbered echo requests and times the replies."""

    def __init__(
        self,
        config: PingConfig,
        output: LineOutput | None = None,
        sock: socket.socket | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self.output = output if output is not None else LineOutput()
        self._port = resolve_port(config.service, "udp")
        self._owns_socket = sock is None
        self._sock = sock if sock is not None else open_udp_port(config.ip_version)
        self._clock = clock if clock is not None else self._elapsed_msecs
        self._start: float | None = None
        self._destination: tuple | None = None
        self.times = {seq: PacketTime() for seq in range(1, config.num_packets + 1)}
        self.sent = 0
        self.received = 0
        self.late = 0
        self._last_seq = 0
        self._next_tick = config.tick_interval

    def __enter__(self) -> UdpPinger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._owns_socket:
            self._sock.close()

    def _elapsed_msecs(self) -> float:
        now = time.monotonic()
        if self._start is None:
            self._start = now
        return (now - self._start) * 1000.0

    def _resolve_destination(self) -> tuple:
        host, port = self.config.host, self._port
        if self.config.ip_version == 4:
            try:
                return (socket.gethostbyname(host), port)
            except OSError:
                raise FatalError(f"unknown IPv4 host: {host}") from None
        if self.config.ip_version == 6:
            try:
                socket.inet_pton(socket.AF_INET6, host)
                return (host, port, 0, 0)
            except OSError:
                pass
            try:
                infos = socket.getaddrinfo(host, port, socket.AF_INET6, socket.SOCK_DGRAM)
            except OSError:
                raise FatalError(f"unknown IPv6 host: {host}") from None
            return infos[0][4]
        raise ValueError(
            f"Wow, IP version {self.config.ip_version}, never thought I'd live to see that!"
        )

    def _send(self, data: bytes) -> None:
        if self._destination is None:
            self._destination = self._resolve_destination()
        try:
            written = self._sock.sendto(data, self._destination)
        except OSError as exc:
            raise FatalError(f"sendto ({exc.strerror or exc})") from exc
        if written != len(data):
            raise FatalError("sendto")

    def _receive(self) -> bytes | None:
        """Wait for a reply; None on timeout. Raises ConnectionRefusedError."""
        timeout = max(self.config.max_wait_msecs, 0) / 1000.0
        try:
            ready, _, _ = select.select([self._sock], [], [], timeout)
        except OSError as exc:
            raise FatalError(f"select ({exc.strerror or exc})") from exc
        if not ready:
            return None
        try:
            data = self._sock.recv(_SEQ.size + MAX_DATA)
        except ConnectionRefusedError:
            raise
        except OSError as exc:
            raise FatalError(f"read ({exc.strerror or exc})") from exc
        if not data:
            raise FatalError("read (empty datagram)")
        return data

    def _tick(self) -> None:
        interval = self.config.tick_interval
        seq = self._last_seq
        if interval > 0 and seq > 0 and seq >= self._next_tick:
            self.output.write(f" {self._next_tick}")
            self._next_tick = (seq + interval) // interval * interval

    def _results(self) -> PingResults:
        return summarize(self.times.values(), self.sent, self.received, self.late)

    def _report(self) -> None:
        for piece in _result_pieces(self._results()):
            self.output.write(piece)

    def _accept(self, data: bytes) -> None:
        try:
            seq, payload = parse_reply(data)
        except ValueError as exc:
            raise FatalError(str(exc)) from exc
        self._last_seq = seq
        entry = self.times.get(seq)
        if entry is None or entry.send_t is None:
            raise FatalError(f"bad sequence, received seq {seq} not yet sent")
        if entry.timed_out:
            self.late += 1
            return
        if entry.recv_t is not None:
            raise FatalError(f"duplicate response, seq {seq}")
        entry.recv_t = self._clock()
        self.received += 1

        if self.config.verify:
            offset = _first_mismatch(payload, self.config.data_size)
            if offset is not None:
                wanted = _pattern(self.config.data_size)[offset]
                saw = f"{payload[offset]:x}" if offset < len(payload) else "nothing"
                self.output.write(
                    f"\nError in response {seq} at location {offset}, saw {saw}, wanted {wanted:x}\n"
                )
                if self.config.stop_on_error:
                    raise FatalError(f"bad data received in packet {seq}")

    def _missed(self, seq: int) -> None:
        message = f"Missed a packet (seq: {seq})"
        print(f"\n{message}", file=sys.stderr)
        self._report()
        raise _PacketMissed(message)

    def _loop(self) -> None:
        config = self.config
        next_seq = 1
        last_sent = 0
        while self.sent < config.num_packets:
            burst = min(max(config.burst_size, 1), config.num_packets - next_seq + 1)
            for _ in range(burst):
                self._send(make_payload(next_seq, config.data_size))
                self.times[next_seq].send_t = self._clock()
                last_sent = next_seq
                self.sent += 1
                next_seq += 1

            for _ in range(burst):
                self._tick()
                try:
                    data = self._receive()
                    marker = "X"
                except ConnectionRefusedError:
                    data, marker = None, "R"
                if data is None:
                    if config.stop_on_error:
                        self._missed(last_sent)
                    self.output.write(marker)
                    if burst == 1:
                        self.times[last_sent].timed_out = True
                    continue
                self._accept(data)

    def run(self) -> PingResults:
        """Send every request, collect the replies, print and return the statistics."""
        config = self.config
        self.output.write(
            f"Sending {config.num_packets} udp echo requests of size {config.data_size} "
            f"to {config.host} on port {config.service}"
        )
        if config.burst_size != 1:
            self.output.write(f" (burst = {config.burst_size})")
        self.output.write("\n")

        try:
            self._loop()
        except KeyboardInterrupt:
            self._report()
            raise
        self._report()
        return self._results()


def main(argv: list[str] | None = None) -> int:
    """Ping the host named on the command line with UDP echo requests."""
    program = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "udpping"
    args = sys.argv[1:] if argv is None else list(argv)

    try:
        config = parse_args(args)
    except UsageError:
        print(_USAGE.format(program=program), file=sys.stderr)
        raise SystemExit(EXIT_FAILURE) from None
    except FatalError as exc:
        print(f"\n{program}: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_FAILURE) from None

    # SIGTERM and SIGQUIT stop the run like Ctrl-C, so the statistics are still printed.
    previous = {}
    for name in ("SIGTERM", "SIGQUIT"):
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        try:
            previous[signum] = signal.signal(signum, signal.default_int_handler)
        except ValueError:
            pass

    try:
        with UdpPinger(config) as pinger:
            pinger.run()
    except _PacketMissed:
        raise SystemExit(EXIT_FAILURE) from None
    except (FatalError, ValueError) as exc:
        print(f"\n{program}: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_FAILURE) from None
    except KeyboardInterrupt:
        raise SystemExit(EXIT_FAILURE) from None
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
    return 0