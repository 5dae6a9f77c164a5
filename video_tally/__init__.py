# video_tally/__init__.py
'''
video_tally/
    __init__.py
    __main__.py

    app.py           # argparse CLI: probe / set-start / report / play / export

    errors.py        # TallyError and the recoverable engine conditions
    timecodec.py     # HH:MM:SS <-> seconds, start time inference
    domain.py        # dataclasses: Segment, EventType, Annotation, PlaybackState, Settings
    segments.py      # SegmentRegistry: ordered segments + derived start offsets / start times
    positions.py     # locate(): global seconds <-> (segment, offset), drift tolerance
    playback.py      # PlaybackMachine: play/pause, signed rate, seek, tick(elapsed_ms)
    annotations.py   # EventCatalog + AnnotationStore (sorted, counts, rename cascade)
    analytics.py     # range counts + lazy fixed-width histogram
    session.py       # Session: the single owner wiring all of the above

    persistence.py   # versioned JSON session snapshot, config.json settings
    export.py        # CSV export
    media_probe.py   # ffprobe duration + mtime for a local video file
    clock.py         # PyQt5 QTimer that drives Session.tick
'''

from __future__ import annotations

__all__ = ["__version__", "Session", "PlaybackClock", "run_app"]

__version__ = "0.1.0"

from .session import Session
from .clock import PlaybackClock
from .app import run_app
