"""Histogram of packet round-trip times."""

from __future__ import annotations

import io
from collections.abc import Iterable

from twig.output import LineOutput

MAX_HIST_HEIGHT = 45
DEFAULT_HIST_BUCKETS = 50


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def _bucket_size(min_rtt_usecs: int, max_rtt_usecs: int, buckets: int) -> int:
    if buckets < 2:
        raise ValueError("a histogram needs at least two buckets")
    size = _trunc_div(int(max_rtt_usecs) - int(min_rtt_usecs), buckets - 1)
    if size == 0:
        raise ValueError("round-trip range is too small for the number of buckets")
    return size


def bucket_counts(
    rtts: Iterable[float],
    min_rtt_usecs: int,
    max_rtt_usecs: int,
    buckets: int = DEFAULT_HIST_BUCKETS,
) -> list[int]:
    """Count round-trip times (in microseconds) into equal-width buckets."""
    size = _bucket_size(min_rtt_usecs, max_rtt_usecs, buckets)
    counts = [0] * buckets
    for rtt in rtts:
        index = _trunc_div(int(rtt - min_rtt_usecs), size)
        if 0 <= index < buckets:
            counts[index] += 1
    return counts


def render_histogram(
    rtts: Iterable[float],
    min_rtt_usecs: int,
    max_rtt_usecs: int,
    buckets: int = DEFAULT_HIST_BUCKETS,
) -> str:
    """Render the arrival-time histogram as text, one bar per bucket.

    Runs of empty buckets are collapsed into a single "zero" line.
    """
    size = _bucket_size(min_rtt_usecs, max_rtt_usecs, buckets)
    counts = bucket_counts(rtts, min_rtt_usecs, max_rtt_usecs, buckets)
    scale = max(counts) / MAX_HIST_HEIGHT

    buffer = io.StringIO()
    out = LineOutput(buffer)
    out.write("\n\nPacket Arrival Time Histogram")
    out.write(f" (times in milliseconds, {size / 1000:.3f} ms per bar)\n\n")

    empty_run = 0
    for index, count in enumerate(counts):
        if count == 0:
            empty_run += 1
            if empty_run == 1:
                out.write("      ... zero ...\n")
            continue
        empty_run = 0

        low = (index * size + min_rtt_usecs) / 1000
        high = ((index + 1) * size + min_rtt_usecs) / 1000
        span = f"{low:.3f} - {high:.3f}"
        out.write(f"{span:>18} ({count:4d}) ")
        bar = max(int(count / scale), 1)
        for _ in range(bar):
            out.write("=")
        out.write("\n")
    return buffer.getvalue()