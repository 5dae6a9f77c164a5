# video_tally/app.py
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from PyQt5.QtCore import QCoreApplication, QTimer

from .clock import PlaybackClock
from .domain import PlaybackState
from .errors import NoActiveSegment, TallyError
from .export import default_export_filename, export_csv
from .media_probe import probe_segment
from .persistence import load_session, load_settings, save_session
from .session import Session
from .timecodec import format_clock


logger = logging.getLogger(__name__)


def _open_session(path: str) -> Session:
    session = load_session(path)
    if session is None:
        raise ValueError(f"could not load session file: {path}")
    return session


# -----------------------------
# Commands
# -----------------------------

def cmd_probe(args: argparse.Namespace) -> int:
    settings = load_settings(args.config) if args.config else None
    session = Session(settings=settings)
    for path in args.videos:
        source = probe_segment(path)
        seg = session.add_source(source)
        print(f"{seg.segment_id}  {seg.name}  {format_clock(seg.duration)}  starts {seg.real_start}")
    if args.start:
        session.set_first_segment_start(args.start)
    save_session(args.session, session)
    print(f"Total {format_clock(session.total_duration())} -> {args.session}")
    return 0


def cmd_set_start(args: argparse.Namespace) -> int:
    session = _open_session(args.session)
    session.set_first_segment_start(args.start)
    save_session(args.session, session)
    for seg in session.segments:
        print(f"{seg.segment_id}  {seg.real_start} - {session.registry.end_wall_clock(seg)}  {seg.name}")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    session = _open_session(args.session)
    total = session.total_duration()
    start = 0.0 if args.start is None else args.start
    end = total if args.end is None else args.end

    print(f"Segments: {len(session.segments)}  total {format_clock(total)}  anchor {session.registry.anchor()}")
    counts = session.count_in_range(start, end)
    print(f"Counts {format_clock(max(0.0, start))} - {format_clock(min(end, total))}:")
    for et in session.event_types:
        print(f"  [{et.event_id}] {et.name}: {counts.get(et.event_id)}")
    print(f"  total: {counts.total}")

    if args.event is not None:
        hist = session.histogram(start, end, args.bin_minutes * 60.0, args.event)
        print(f"Histogram for event {args.event} ({args.bin_minutes:g} min bins):")
        for b in hist:
            print(f"  {b.label}  {b.count}")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    session = _open_session(args.session)
    out = args.output or os.path.join(os.path.dirname(os.path.abspath(args.session)), default_export_filename())
    export_csv(out, session.annotations)
    print(out)
    return 0


def cmd_play(args: argparse.Namespace) -> int:
    session = _open_session(args.session)
    if session.registry.is_empty():
        raise NoActiveSegment()

    app = QCoreApplication.instance() or QCoreApplication([])
    session.seek(args.start)
    session.set_rate(args.rate)

    clock = PlaybackClock(session)
    shown = {"segment": None}

    def on_state(state: PlaybackState) -> None:
        if state.segment_index == shown["segment"]:
            return
        shown["segment"] = state.segment_index
        seg = session.registry[state.segment_index]
        print(f"{format_clock(state.position)}  {seg.segment_id}  {seg.name}  {session.wall_clock_now()}")

    clock.state_changed.connect(on_state)
    clock.playback_stopped.connect(app.quit)
    if args.seconds is not None:
        limit = QTimer(clock)
        limit.setSingleShot(True)
        limit.timeout.connect(clock.stop)
        limit.start(int(args.seconds * 1000))

    clock.start()
    if clock.is_running():
        app.exec_()
    clock.stop()

    print(f"Stopped at {format_clock(session.state.position)} ({session.wall_clock_now()})")
    return 0


# -----------------------------
# Entry
# -----------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="video-tally",
        description="Count events across a sequence of video recordings.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("probe", help="Create a session file from video files (in order)")
    p.add_argument("session", help="Session JSON to write")
    p.add_argument("videos", nargs="+", help="Video files in playback order")
    p.add_argument("--start", help="Override first video start time (HH:MM:SS)")
    p.add_argument("--config", help="Settings JSON (seek steps, rate bounds, ...)")
    p.set_defaults(func=cmd_probe)

    p = sub.add_parser("set-start", help="Change the first video's real-world start time")
    p.add_argument("session")
    p.add_argument("start", help="HH:MM:SS")
    p.set_defaults(func=cmd_set_start)

    p = sub.add_parser("report", help="Print counts and a histogram")
    p.add_argument("session")
    p.add_argument("--start", type=float, default=None, help="Range start (seconds)")
    p.add_argument("--end", type=float, default=None, help="Range end (seconds)")
    p.add_argument("--event", type=int, default=None, help="Event type for the histogram")
    p.add_argument("--bin-minutes", type=float, default=5.0)
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("play", help="Play the timeline headless, printing each segment change")
    p.add_argument("session")
    p.add_argument("--start", type=float, default=0.0, help="Start position (seconds)")
    p.add_argument("--rate", type=float, default=1.0, help="Signed playback rate")
    p.add_argument("--seconds", type=float, default=None, help="Stop after this much real time")
    p.set_defaults(func=cmd_play)

    p = sub.add_parser("export", help="Write annotations as CSV")
    p.add_argument("session")
    p.add_argument("output", nargs="?", default=None)
    p.set_defaults(func=cmd_export)

    return parser


def run_app(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return int(args.func(args))
    except (TallyError, ValueError) as e:
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
