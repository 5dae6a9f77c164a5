# video_tally/export.py
from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from .domain import Annotation
from .persistence import atomic_write_text


logger = logging.getLogger(__name__)

CSV_HEADER = [
    "event_index",
    "event_name",
    "at_second_first",
    "at_second_current",
    "time_HH:MM:SS",
    "video_id",
    "video_name",
    "note",
    "annotation_id",
]


def default_export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"pedestrian_count_{today.isoformat()}.csv"


def annotation_row(a: Annotation) -> Dict[str, str]:
    return {
        "event_index": str(int(a.event_id)),
        "event_name": a.event_name,
        "at_second_first": f"{float(a.at_global):.3f}",
        "at_second_current": f"{float(a.at_segment):.3f}",
        "time_HH:MM:SS": a.wall_clock,
        "video_id": a.segment_id,
        "video_name": a.segment_name,
        "note": a.note or "",
        "annotation_id": a.annotation_id,
    }


def annotations_to_csv(annotations: Iterable[Annotation]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_HEADER, lineterminator="\n")
    writer.writeheader()
    for a in annotations:
        writer.writerow(annotation_row(a))
    return buf.getvalue()


def export_csv(path: str, annotations: Iterable[Annotation]) -> str:
    """Write annotations (already in time order) to path. Returns the path."""
    rows: List[Annotation] = list(annotations)
    atomic_write_text(path, annotations_to_csv(rows))
    logger.info("Exported %d annotations to %s", len(rows), path)
    return path
