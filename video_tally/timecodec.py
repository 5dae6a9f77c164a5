# video_tally/timecodec.py
from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Optional

from .errors import InvalidFormat


ZERO_CLOCK = "00:00:00"

_STRICT_CLOCK_RE = re.compile(r"^\s*(\d+):([0-5]\d):([0-5]\d)\s*$")
_DATETIME_IN_NAME_RE = re.compile(r"(\d{8})_(\d{6})")
_TIME_IN_NAME_RE = re.compile(r"(\d{2})[-_](\d{2})[-_](\d{2})")


# -----------------------------
# Time formatting / conversion
# -----------------------------

def format_clock(seconds: float) -> str:
    """Seconds -> "HH:MM:SS" (floor per field; hours are not wrapped at 24)."""
    if seconds is None:
        seconds = 0.0
    sec = float(seconds)
    if not math.isfinite(sec) or sec < 0:
        sec = 0.0
    hours = int(sec // 3600)
    minutes = int((sec % 3600) // 60)
    secs = int(sec % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_clock(text: str) -> float:
    """
    "HH:MM:SS" -> seconds.

    Best-effort: anything that is not three numeric fields returns 0.
    """
    if not text:
        return 0.0
    parts = str(text).strip().split(":")
    if len(parts) != 3:
        return 0.0
    try:
        h, m, s = (float(p) for p in parts)
    except ValueError:
        return 0.0
    total = h * 3600.0 + m * 60.0 + s
    if not math.isfinite(total) or total < 0:
        return 0.0
    return total


def is_valid_clock(text: str) -> bool:
    return bool(text) and _STRICT_CLOCK_RE.match(str(text)) is not None


def parse_clock_strict(text: str) -> float:
    """Like parse_clock, but raises InvalidFormat instead of returning 0."""
    m = _STRICT_CLOCK_RE.match(str(text or ""))
    if m is None:
        raise InvalidFormat(text)
    h, mi, s = (int(g) for g in m.groups())
    return float(h * 3600 + mi * 60 + s)


def normalize_clock(text: str) -> str:
    """Validate and re-pad ("9:05:00" -> "09:05:00")."""
    return format_clock(parse_clock_strict(text))


def wall_clock_at(anchor: str, offset_seconds: float) -> str:
    """Real-world time-of-day at a global offset from the anchor."""
    return format_clock(parse_clock(anchor) + max(0.0, float(offset_seconds or 0.0)))


# -----------------------------
# Start time inference
# -----------------------------

def _clock_from_fields(h: str, mi: str, s: str) -> str:
    # out-of-range fields carry over ("25-61-99" -> "26:02:39")
    return format_clock(int(h) * 3600 + int(mi) * 60 + int(s))


def infer_start_time(name: str, modified: Optional[datetime] = None) -> str:
    """
    Guess the real-world start of a recording:
      - "YYYYMMDD_HHMMSS" anywhere in the name (dashcam/phone style)
      - "HH-MM-SS" or "HH_MM_SS" anywhere in the name
      - time-of-day of the file modification timestamp
      - "00:00:00"
    """
    name = name or ""

    m = _DATETIME_IN_NAME_RE.search(name)
    if m:
        t = m.group(2)
        return _clock_from_fields(t[0:2], t[2:4], t[4:6])

    m = _TIME_IN_NAME_RE.search(name)
    if m:
        return _clock_from_fields(m.group(1), m.group(2), m.group(3))

    if modified is not None:
        return format_clock(modified.hour * 3600 + modified.minute * 60 + modified.second)

    return ZERO_CLOCK
