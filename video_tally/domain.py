# video_tally/domain.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from .timecodec import ZERO_CLOCK


# -----------------------------
# Colors
# -----------------------------

# High-contrast colors used for event buttons and segment chips. Assigned sequentially.
COLOR_PALETTE: List[str] = [
    "#DC2626",  # red
    "#059669",  # green
    "#2563EB",  # blue
    "#7C3AED",  # purple
    "#EA580C",  # orange
    "#BE185D",  # pink
    "#0891B2",  # cyan
    "#65A30D",  # lime
    "#7C2D12",  # brown
    "#1F2937",  # dark gray
]

FALLBACK_COLOR = "#6C757D"


def palette_color(index: int) -> str:
    """Deterministic palette pick; wraps after the last color."""
    if index is None or index < 0:
        return FALLBACK_COLOR
    return COLOR_PALETTE[int(index) % len(COLOR_PALETTE)]


# -----------------------------
# Core Dataclasses
# -----------------------------

@dataclass
class Segment:
    """
    One decoded video file contributing a contiguous slice of the timeline.

    start_offset and real_start are derived by the registry; only the first
    segment's real_start is ever an input.
    """
    segment_id: str
    name: str
    duration: float           # seconds, > 0
    real_start: str = ZERO_CLOCK
    start_offset: float = 0.0
    color: str = FALLBACK_COLOR

    @property
    def end_offset(self) -> float:
        return self.start_offset + self.duration

    def to_dict(self) -> Dict:
        return {
            "id": self.segment_id,
            "name": self.name,
            "duration": float(self.duration),
            "start_time": self.real_start,
            "color": self.color,
        }

    @staticmethod
    def from_dict(d: Dict) -> "Segment":
        return Segment(
            segment_id=str(d.get("id", "")),
            name=str(d["name"]),
            duration=float(d.get("duration", 0.0)),
            real_start=str(d.get("start_time") or ZERO_CLOCK),
            color=str(d.get("color") or FALLBACK_COLOR),
        )


@dataclass
class EventType:
    """Catalog entry. count is a cache owned by the annotation store."""
    event_id: int
    name: str
    color: str = FALLBACK_COLOR
    count: int = 0

    def to_dict(self) -> Dict:
        return {
            "id": int(self.event_id),
            "name": self.name,
            "color": self.color,
            "count": int(self.count),
        }

    @staticmethod
    def from_dict(d: Dict) -> "EventType":
        # count is deliberately not trusted; the store recounts after restore
        return EventType(
            event_id=int(d["id"]),
            name=str(d.get("name", "")),
            color=str(d.get("color") or FALLBACK_COLOR),
        )


@dataclass
class Annotation:
    """
    One recorded occurrence.

    event_name and segment_name are denormalized copies so that the history
    still reads correctly after a rename or after the segment is gone.
    """
    annotation_id: str
    event_id: int
    event_name: str
    at_global: float      # seconds from the start of the first segment
    at_segment: float     # seconds into segment_id at record time
    wall_clock: str       # HH:MM:SS
    segment_id: str
    segment_name: str
    note: str = ""

    def to_dict(self) -> Dict:
        return {
            "id": self.annotation_id,
            "event_id": int(self.event_id),
            "event_name": self.event_name,
            "at_second_first": float(self.at_global),
            "at_second_current": float(self.at_segment),
            "time_hhmmss": self.wall_clock,
            "video_id": self.segment_id,
            "video_name": self.segment_name,
            "note": self.note or "",
        }

    @staticmethod
    def from_dict(d: Dict) -> "Annotation":
        return Annotation(
            annotation_id=str(d["id"]),
            event_id=int(d.get("event_id", 0)),
            event_name=str(d.get("event_name", "")),
            at_global=float(d.get("at_second_first", 0.0)),
            at_segment=float(d.get("at_second_current", 0.0)),
            wall_clock=str(d.get("time_hhmmss") or ZERO_CLOCK),
            segment_id=str(d.get("video_id", "")),
            segment_name=str(d.get("video_name", "")),
            note=str(d.get("note", "") or ""),
        )


class Position(NamedTuple):
    """(segment index, seconds into that segment)."""
    index: int
    offset: float


EMPTY_POSITION = Position(0, 0.0)


@dataclass(frozen=True)
class PlaybackState:
    """
    Immutable playback snapshot. The sign of rate is the direction.
    position == segments[segment_index].start_offset + segment_offset.
    """
    position: float = 0.0
    segment_index: int = 0
    segment_offset: float = 0.0
    playing: bool = False
    muted: bool = True
    rate: float = 1.0
    total_duration: float = 0.0

    @property
    def reversed(self) -> bool:
        return self.rate < 0

    @property
    def speed(self) -> float:
        return abs(self.rate)


# -----------------------------
# Config payload
# -----------------------------

@dataclass
class Settings:
    """
    Engine tunables. Stored in config.json and inside every session snapshot.
    """
    seek_seconds: float = 1.0
    seek_seconds_shift: float = 10.0
    min_rate: float = 0.1
    max_rate: float = 20.0
    rate_step: float = 1.0
    sync_tolerance: float = 0.5
    tick_interval_ms: int = 40
    default_event_count: int = 5

    def to_dict(self) -> Dict:
        return {
            "seek_seconds": float(self.seek_seconds),
            "seek_seconds_shift": float(self.seek_seconds_shift),
            "min_rate": float(self.min_rate),
            "max_rate": float(self.max_rate),
            "rate_step": float(self.rate_step),
            "sync_tolerance": float(self.sync_tolerance),
            "tick_interval_ms": int(self.tick_interval_ms),
            "default_event_count": int(self.default_event_count),
        }

    @staticmethod
    def from_dict(d: Optional[Dict]) -> "Settings":
        d = d or {}
        if not isinstance(d, dict):
            raise ValueError("settings must be a JSON object")
        base = Settings()
        out = Settings(
            seek_seconds=float(d.get("seek_seconds", base.seek_seconds)),
            seek_seconds_shift=float(d.get("seek_seconds_shift", base.seek_seconds_shift)),
            min_rate=float(d.get("min_rate", base.min_rate)),
            max_rate=float(d.get("max_rate", base.max_rate)),
            rate_step=float(d.get("rate_step", base.rate_step)),
            sync_tolerance=float(d.get("sync_tolerance", base.sync_tolerance)),
            tick_interval_ms=int(d.get("tick_interval_ms", base.tick_interval_ms)),
            default_event_count=int(d.get("default_event_count", base.default_event_count)),
        )
        out.validate()
        return out

    def validate(self) -> None:
        if self.seek_seconds <= 0 or self.seek_seconds_shift <= 0:
            raise ValueError("seek steps must be > 0")
        if not (0 < self.min_rate <= self.max_rate):
            raise ValueError("rate bounds must satisfy 0 < min_rate <= max_rate")
        if self.sync_tolerance < 0:
            raise ValueError("sync_tolerance must be >= 0")
        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be > 0")
        if self.default_event_count < 0:
            raise ValueError("default_event_count must be >= 0")


def default_event_types(count: int = 5) -> List[EventType]:
    """The stock catalog: "Event 1".."Event N", bound to number keys 1..N."""
    return [
        EventType(event_id=i + 1, name=f"Event {i + 1}", color=palette_color(i))
        for i in range(max(0, int(count)))
    ]


@dataclass
class SegmentSource:
    """What a decoder collaborator hands over for one selected file."""
    name: str
    duration: float
    modified: Optional[datetime] = None
    path: str = ""
