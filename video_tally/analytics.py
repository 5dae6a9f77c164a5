# video_tally/analytics.py
from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List

from .domain import Annotation, EventType
from .errors import InvalidBinWidth
from .timecodec import format_clock


@dataclass(frozen=True)
class RangeCounts:
    per_type: Dict[int, int]
    total: int

    def get(self, event_id: int) -> int:
        return self.per_type.get(event_id, 0)


@dataclass(frozen=True)
class Bin:
    start: float
    end: float
    count: int

    @property
    def label(self) -> str:
        return f"{format_clock(self.start)} - {format_clock(self.end)}"


def count_in_range(
    annotations: Iterable[Annotation],
    event_types: Iterable[EventType],
    start: float,
    end: float,
) -> RangeCounts:
    """
    Per-type counts of annotations with start <= at_global <= end (closed on
    both ends). start > end gives all zeros.
    """
    per_type: Dict[int, int] = {int(et.event_id): 0 for et in event_types}
    if start <= end:
        for a in annotations:
            if a.event_id in per_type and start <= a.at_global <= end:
                per_type[a.event_id] += 1
    return RangeCounts(per_type=per_type, total=sum(per_type.values()))


class Histogram:
    """
    Fixed-width bins over [start, end) for one event type.

    Lazy and restartable: each iteration re-reads the annotation source, so a
    Histogram kept around reflects later edits. Bins are half-open
    [bin_start, bin_end); the final bin is truncated at end.
    """

    def __init__(
        self,
        annotations: Iterable[Annotation],
        event_id: int,
        start: float,
        end: float,
        bin_width: float,
    ):
        if bin_width is None or not bin_width > 0:
            raise InvalidBinWidth(bin_width)
        self._source = annotations
        self.event_id = int(event_id)
        self.start = float(start)
        self.end = float(end)
        self.bin_width = float(bin_width)

    def __iter__(self) -> Iterator[Bin]:
        times: List[float] = sorted(
            a.at_global for a in self._source if a.event_id == self.event_id
        )
        i = 0
        bin_start = self.start
        while bin_start < self.end:
            # index-based edges so float steps don't drift
            bin_end = min(self.start + (i + 1) * self.bin_width, self.end)
            lo = bisect.bisect_left(times, bin_start)
            hi = bisect.bisect_left(times, bin_end)
            yield Bin(start=bin_start, end=bin_end, count=hi - lo)
            i += 1
            bin_start = bin_end

    def bins(self) -> List[Bin]:
        return list(self)

    def max_count(self) -> int:
        return max((b.count for b in self), default=0)


def histogram(
    annotations: Iterable[Annotation],
    start: float,
    end: float,
    bin_width: float,
    event_id: int,
) -> Histogram:
    return Histogram(annotations, event_id, start, end, bin_width)
