# video_tally/segments.py
from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from .domain import Segment, palette_color
from .errors import DecodeFailure, ReferencedByAnnotation
from .timecodec import format_clock, infer_start_time, normalize_clock, parse_clock


_SEGMENT_ID_RE = re.compile(r"^video-(\d+)$")


def next_segment_id(serial: int) -> str:
    return f"video-{serial}"


class SegmentRegistry:
    """
    Ordered list of video segments laid end to end.

    Only the first segment's real_start is an input; every later real_start and
    every start_offset is re-derived after each structural change.

    Reference checks are injected so the registry stays independent of the
    annotation store:
      - is_referenced(segment_id): blocks remove()
      - has_annotations(): blocks reorder()
    """

    def __init__(self):
        self._segments: List[Segment] = []
        self._total: float = 0.0
        self._serial: int = 0
        self._is_referenced: Callable[[str], bool] = lambda _sid: False
        self._has_annotations: Callable[[], bool] = lambda: False

    def set_reference_checks(
        self,
        is_referenced: Optional[Callable[[str], bool]] = None,
        has_annotations: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._is_referenced = is_referenced or (lambda _sid: False)
        self._has_annotations = has_annotations or (lambda: False)

    # ---------------- Read API ----------------

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self._segments)

    def __getitem__(self, index: int) -> Segment:
        return self._segments[index]

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return tuple(self._segments)

    @property
    def first(self) -> Optional[Segment]:
        return self._segments[0] if self._segments else None

    def is_empty(self) -> bool:
        return not self._segments

    def total_duration(self) -> float:
        return self._total

    def get(self, segment_id: str) -> Optional[Segment]:
        for seg in self._segments:
            if seg.segment_id == segment_id:
                return seg
        return None

    def index_of(self, segment_id: str) -> int:
        for i, seg in enumerate(self._segments):
            if seg.segment_id == segment_id:
                return i
        return -1

    def anchor(self) -> str:
        """Real-world start of the whole observation (first segment)."""
        first = self.first
        return first.real_start if first is not None else format_clock(0)

    def end_wall_clock(self, seg: Segment) -> str:
        return format_clock(parse_clock(seg.real_start) + seg.duration)

    # ---------------- Mutations ----------------

    def append(self, name: str, duration: float, modified: Optional[datetime] = None) -> Segment:
        """
        Add a decoded segment at the end.

        The first segment's start is inferred from its name / mtime; later ones
        continue from the previous segment's end.
        """
        try:
            dur = float(duration)
        except (TypeError, ValueError):
            dur = 0.0
        if not math.isfinite(dur) or dur <= 0:
            raise DecodeFailure(name)

        if self._segments:
            prev = self._segments[-1]
            real_start = format_clock(parse_clock(prev.real_start) + prev.duration)
        else:
            real_start = infer_start_time(name, modified)

        self._serial += 1
        seg = Segment(
            segment_id=next_segment_id(self._serial),
            name=name,
            duration=dur,
            real_start=real_start,
            start_offset=self._total,
            color=palette_color(len(self._segments)),
        )
        self._segments.append(seg)
        self._total += dur
        return seg

    def remove(self, segment_id: str) -> Optional[Segment]:
        idx = self.index_of(segment_id)
        if idx < 0:
            return None
        if self._is_referenced(segment_id):
            raise ReferencedByAnnotation(
                "Cannot remove video: annotations exist for this video. "
                "Delete those annotations first.",
                segment_id=segment_id,
            )
        removed = self._segments.pop(idx)
        self._relayout()
        return removed

    def reorder(self, segment_id: str, new_index: int) -> Optional[Segment]:
        idx = self.index_of(segment_id)
        if idx < 0:
            return None
        # any annotation pins every captured segment index, not just this one's
        if self._has_annotations():
            raise ReferencedByAnnotation(
                "Cannot reorder videos: annotations exist. Delete all annotations first.",
                segment_id=segment_id,
            )
        target = max(0, min(int(new_index), len(self._segments) - 1))
        seg = self._segments.pop(idx)
        self._segments.insert(target, seg)
        self._relayout()
        return seg

    def set_first_segment_start(self, text: str) -> Optional[Segment]:
        """
        Re-anchor the timeline. Raises InvalidFormat on bad input.
        Annotation wall-clock strings must be refreshed by the caller.
        """
        clock = normalize_clock(text)
        if not self._segments:
            return None
        self._segments[0].real_start = clock
        self._relayout()
        return self._segments[0]

    def restore(self, segments: Iterable[Segment]) -> None:
        """
        Replace contents with persisted segments. Only the first start time is
        trusted; offsets, later starts and the total are re-derived.
        """
        items: List[Segment] = []
        for seg in segments:
            if not math.isfinite(float(seg.duration)) or float(seg.duration) <= 0:
                raise DecodeFailure(seg.name)
            items.append(seg)

        serial = 0
        for seg in items:
            m = _SEGMENT_ID_RE.match(seg.segment_id or "")
            if m:
                serial = max(serial, int(m.group(1)))
        for seg in items:
            if not seg.segment_id:
                serial += 1
                seg.segment_id = next_segment_id(serial)
        if items:
            items[0].real_start = format_clock(parse_clock(items[0].real_start))

        self._segments = items
        self._serial = serial
        self._relayout()

    # ---------------- Derived layout ----------------

    def _relayout(self) -> None:
        total = 0.0
        for i, seg in enumerate(self._segments):
            seg.start_offset = total
            if i > 0:
                prev = self._segments[i - 1]
                seg.real_start = format_clock(parse_clock(prev.real_start) + prev.duration)
            total += seg.duration
        self._total = total
