# video_tally/errors.py
from __future__ import annotations


class TallyError(Exception):
    """Base class for recoverable engine conditions. State is never partially mutated."""


class DecodeFailure(TallyError):
    """A segment arrived with a zero (or negative) decoded duration."""

    def __init__(self, name: str):
        super().__init__(f"Could not read a duration for '{name}' (decode failed).")
        self.name = name


class ReferencedByAnnotation(TallyError):
    """A structural segment mutation is blocked by existing annotations."""

    def __init__(self, message: str, segment_id: str = ""):
        super().__init__(message)
        self.segment_id = segment_id


class InvalidFormat(TallyError, ValueError):
    """Wall-clock text is not HH:MM:SS."""

    def __init__(self, text: str):
        super().__init__(f"Invalid time '{text}', expected HH:MM:SS.")
        self.text = text


class UnknownEventType(TallyError):
    def __init__(self, event_id: int):
        super().__init__(f"Unknown event type: {event_id}")
        self.event_id = event_id


class NoActiveSegment(TallyError):
    def __init__(self):
        super().__init__("No video loaded; add a segment before recording events.")


class InvalidBinWidth(TallyError, ValueError):
    def __init__(self, width: float):
        super().__init__(f"Bin width must be > 0 (got {width}).")
        self.width = width
