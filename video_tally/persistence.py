# video_tally/persistence.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .domain import Annotation, EventType, Segment, Settings
from .errors import TallyError
from .session import Session


logger = logging.getLogger(__name__)

SESSION_VERSION = 1
CONFIG_FILENAME = "config.json"


# -----------------------------
# Atomic file helpers
# -----------------------------

def atomic_write_text(path: str, text: str, encoding: str = "utf-8") -> None:
    d = os.path.dirname(os.path.abspath(path))
    os.makedirs(d, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=d)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                logger.warning("Could not remove temp file %s", tmp_path)


def _atomic_write_json(path: str, payload: Dict) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    atomic_write_text(path, text + "\n")


def _read_json(path: str) -> Dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# -----------------------------
# Session snapshot
# -----------------------------

def session_to_dict(session: Session) -> Dict:
    """
    Versioned snapshot of everything needed to resume work (video files
    themselves are re-selected by the user).
    """
    return {
        "version": SESSION_VERSION,
        "export_date": datetime.now(timezone.utc).isoformat(),
        "settings": session.settings.to_dict(),
        "event_types": [et.to_dict() for et in session.event_types],
        "annotations": [a.to_dict() for a in session.annotations],
        "segments": [s.to_dict() for s in session.segments],
    }


def _records(d: Dict, key: str) -> List[Dict]:
    items = d.get(key) or []
    if not isinstance(items, list) or not all(isinstance(x, dict) for x in items):
        raise ValueError(f"Malformed session payload: {key!r} must be a list of objects")
    return items


def session_from_dict(d: Dict) -> Session:
    """
    Rebuild a Session. Counts, offsets, later start times, total duration and
    annotation wall clocks are re-derived; persisted copies of them are ignored.

    Raises ValueError for payloads that are not a session snapshot.
    """
    if not isinstance(d, dict):
        raise ValueError("Session payload must be a JSON object")
    version = d.get("version")
    try:
        version_i = int(float(version))
    except (TypeError, ValueError):
        raise ValueError(f"Unsupported session version: {version!r}") from None
    if version_i > SESSION_VERSION:
        raise ValueError(f"Session version {version_i} is newer than supported ({SESSION_VERSION})")

    try:
        settings = Settings.from_dict(d.get("settings"))
        segments = [Segment.from_dict(x) for x in _records(d, "segments")]
        event_types = [EventType.from_dict(x) for x in _records(d, "event_types")]
        annotations = [Annotation.from_dict(x) for x in _records(d, "annotations")]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed session payload: {e}") from e

    session = Session(settings=settings)
    try:
        session.load(segments, event_types, annotations, settings=settings)
    except TallyError as e:
        raise ValueError(f"Malformed session payload: {e}") from e
    return session


def save_session(path: str, session: Session) -> str:
    _atomic_write_json(path, session_to_dict(session))
    logger.info(
        "Saved session to %s (%d segments, %d annotations)",
        path, len(session.segments), len(session.annotations),
    )
    return path


def load_session(path: str) -> Optional[Session]:
    """
    Loads a session snapshot.

    If missing or invalid, returns None (caller decides what to tell the user).
    """
    if not path or not os.path.exists(path):
        return None
    try:
        data = _read_json(path)
        session = session_from_dict(data)
    except (OSError, ValueError) as e:
        logger.warning("Could not load session %s: %s", path, e)
        return None
    logger.debug("Loaded session %s", path)
    return session


# -----------------------------
# Settings (config.json)
# -----------------------------

def config_path(config_dir: str) -> str:
    return os.path.join(config_dir, CONFIG_FILENAME)


def load_settings(path: str) -> Settings:
    """Settings from a JSON file; defaults if missing or invalid."""
    if not path or not os.path.exists(path):
        return Settings()
    try:
        return Settings.from_dict(_read_json(path))
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Ignoring invalid settings file %s: %s", path, e)
        return Settings()


def save_settings(path: str, settings: Settings) -> None:
    settings.validate()
    _atomic_write_json(path, settings.to_dict())
