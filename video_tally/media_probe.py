# video_tally/media_probe.py
from __future__ import annotations

import logging
import os
import re
import subprocess
from datetime import datetime
from typing import List, Optional, Tuple

from .domain import SegmentSource


logger = logging.getLogger(__name__)

# Allowed local extensions (strict)
ALLOWED_VIDEO_EXTS = {
    ".mp4", ".mov", ".mkv", ".avi", ".m4v", ".webm",
}


def ext_lower(path: str) -> str:
    _, ext = os.path.splitext(path.strip())
    return ext.lower().strip()


def validate_local_video_path(path: str) -> Tuple[bool, str]:
    if not path:
        return (False, "No file selected.")
    if not os.path.exists(path):
        return (False, f"File does not exist: {path}")
    if not os.path.isfile(path):
        return (False, f"Not a file: {path}")
    ext = ext_lower(path)
    if ext not in ALLOWED_VIDEO_EXTS:
        return (False, f"Unsupported file type '{ext}'. Allowed: {sorted(ALLOWED_VIDEO_EXTS)}")
    return (True, "OK")


# -----------------------------
# ffprobe helpers
# -----------------------------

def find_ffprobe() -> str:
    # rely on PATH; allow override via env
    return os.environ.get("FFPROBE_BIN", "ffprobe")


def run_cmd(cmd: List[str]) -> Tuple[int, str]:
    """
    Runs a command and returns (returncode, combined_output).
    """
    proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    out = (proc.stdout or b"") + b"\n" + (proc.stderr or b"")
    return proc.returncode, out.decode("utf-8", errors="ignore")


def parse_duration_output(text: str) -> float:
    """First bare number line of ffprobe's format=duration output, else 0."""
    for line in (text or "").splitlines():
        line = line.strip()
        if re.fullmatch(r"\d+(\.\d+)?", line):
            return float(line)
    return 0.0


def ffprobe_duration(path: str) -> float:
    """
    Duration in seconds for a local file.
    Returns 0.0 if ffprobe is unavailable or the output can't be parsed;
    the engine reports that as a decode failure.
    """
    cmd = [
        find_ffprobe(),
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        path,
    ]
    try:
        code, out = run_cmd(cmd)
    except OSError as e:
        logger.warning("ffprobe not runnable (%s): %s", cmd[0], e)
        return 0.0
    if code != 0:
        logger.warning("ffprobe failed for %s: %s", path, out.strip())
        return 0.0
    return parse_duration_output(out)


def file_modified(path: str) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(os.path.getmtime(path))
    except OSError:
        return None


def probe_segment(path: str) -> SegmentSource:
    """
    Decoder collaborator: name, mtime and duration for one selected file.
    Raises ValueError if the path itself is unusable.
    """
    ok, msg = validate_local_video_path(path)
    if not ok:
        raise ValueError(msg)
    duration = ffprobe_duration(path)
    logger.debug("Probed %s: %.3fs", path, duration)
    return SegmentSource(
        name=os.path.basename(path),
        duration=duration,
        modified=file_modified(path),
        path=path,
    )
