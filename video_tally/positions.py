# video_tally/positions.py
from __future__ import annotations

from typing import Sequence

from .domain import EMPTY_POSITION, Position, Segment


# Discrepancy (seconds) between a player's reported offset and the mapped one
# above which the mapped value wins.
SYNC_TOLERANCE = 0.5


def locate(segments: Sequence[Segment], global_seconds: float) -> Position:
    """
    Global seconds -> (segment index, offset into segment).

    The first segment whose cumulative end is >= the target wins, so an exact
    boundary maps to the end of the earlier segment. Past the end clamps to the
    last segment at its full duration; an empty list maps to (0, 0.0).
    """
    if not segments:
        return EMPTY_POSITION

    target = max(0.0, float(global_seconds or 0.0))
    accumulated = 0.0
    for i, seg in enumerate(segments):
        if target <= accumulated + seg.duration:
            return Position(i, target - accumulated)
        accumulated += seg.duration

    last = len(segments) - 1
    return Position(last, float(segments[last].duration))


def global_of(segments: Sequence[Segment], index: int, offset: float) -> float:
    """(segment index, offset) -> global seconds, clamped into the timeline."""
    if not segments:
        return 0.0
    index = max(0, min(int(index), len(segments) - 1))
    accumulated = 0.0
    for seg in segments[:index]:
        accumulated += seg.duration
    seg = segments[index]
    offset = max(0.0, min(float(offset), seg.duration))
    return accumulated + offset


def reconcile_offset(reported: float, derived: float, tolerance: float = SYNC_TOLERANCE) -> float:
    """
    Pick between a player's own position and the mapped one.

    Small drift keeps the reported value (no visible jump); anything larger
    than tolerance snaps to the mapped value.
    """
    if abs(float(reported) - float(derived)) > tolerance:
        return float(derived)
    return float(reported)
