# video_tally/annotations.py
from __future__ import annotations

import bisect
import uuid
from typing import Dict, Iterable, Iterator, List, Optional

from .domain import Annotation, EventType, PlaybackState, default_event_types
from .errors import NoActiveSegment, UnknownEventType
from .segments import SegmentRegistry
from .timecodec import wall_clock_at


def new_annotation_id() -> str:
    return uuid.uuid4().hex


# -----------------------------
# Event type catalog
# -----------------------------

class EventCatalog:
    """
    Event types keyed by their number (the hotkey). Insertion order is the
    display order.
    """

    def __init__(self, event_types: Optional[Iterable[EventType]] = None):
        self._types: Dict[int, EventType] = {}
        self.restore(default_event_types() if event_types is None else event_types)

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[EventType]:
        return iter(self._types.values())

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._types

    def ids(self) -> List[int]:
        return list(self._types.keys())

    def get(self, event_id: int) -> Optional[EventType]:
        return self._types.get(event_id)

    def require(self, event_id: int) -> EventType:
        et = self._types.get(event_id)
        if et is None:
            raise UnknownEventType(event_id)
        return et

    def set_color(self, event_id: int, color: str) -> EventType:
        et = self.require(event_id)
        et.color = str(color)
        return et

    def restore(self, event_types: Iterable[EventType]) -> None:
        types: Dict[int, EventType] = {}
        for et in event_types:
            types[int(et.event_id)] = et
        self._types = types


# -----------------------------
# Annotation store
# -----------------------------

class AnnotationStore:
    """
    Recorded events, always sorted by global time (ties keep record order).

    Owns the count cache on the catalog's event types: every mutation here that
    adds, removes or moves an annotation between types adjusts the counts in
    the same call.
    """

    def __init__(self, catalog: EventCatalog):
        self._catalog = catalog
        self._items: List[Annotation] = []

    @property
    def catalog(self) -> EventCatalog:
        return self._catalog

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self._items)

    @property
    def annotations(self) -> List[Annotation]:
        return list(self._items)

    def get(self, annotation_id: str) -> Optional[Annotation]:
        for a in self._items:
            if a.annotation_id == annotation_id:
                return a
        return None

    def references_segment(self, segment_id: str) -> bool:
        return any(a.segment_id == segment_id for a in self._items)

    def closest_to(self, global_seconds: float) -> Optional[Annotation]:
        """Minimal |at_global - t|; ties go to the earliest stored entry."""
        if not self._items:
            return None
        t = float(global_seconds)
        best = self._items[0]
        best_d = abs(best.at_global - t)
        for a in self._items[1:]:
            d = abs(a.at_global - t)
            if d < best_d:
                best, best_d = a, d
        return best

    # ---------------- Counts ----------------

    def _bump(self, event_id: int, by: int) -> None:
        et = self._catalog.get(event_id)
        if et is not None:
            et.count = max(0, et.count + by)

    def recount(self) -> None:
        """Rebuild every count from the annotations themselves."""
        counts: Dict[int, int] = {}
        for a in self._items:
            counts[a.event_id] = counts.get(a.event_id, 0) + 1
        for et in self._catalog:
            et.count = counts.get(et.event_id, 0)

    # ---------------- Mutations ----------------

    def _insert_sorted(self, ann: Annotation) -> int:
        # after any equal offsets, so record order is kept for ties
        keys = [a.at_global for a in self._items]
        i = bisect.bisect_right(keys, ann.at_global)
        self._items.insert(i, ann)
        return i

    def record(self, event_id: int, state: PlaybackState, registry: SegmentRegistry) -> Annotation:
        et = self._catalog.require(event_id)
        if registry.is_empty():
            raise NoActiveSegment()

        idx = max(0, min(state.segment_index, len(registry) - 1))
        seg = registry[idx]
        ann = Annotation(
            annotation_id=new_annotation_id(),
            event_id=et.event_id,
            event_name=et.name,
            at_global=float(state.position),
            at_segment=float(state.segment_offset),
            wall_clock=wall_clock_at(registry.anchor(), state.position),
            segment_id=seg.segment_id,
            segment_name=seg.name,
        )
        self._insert_sorted(ann)
        et.count += 1
        return ann

    def delete(self, annotation_id: str) -> Optional[Annotation]:
        for i, a in enumerate(self._items):
            if a.annotation_id == annotation_id:
                del self._items[i]
                self._bump(a.event_id, -1)
                return a
        return None

    def delete_closest_to(self, global_seconds: float) -> Optional[Annotation]:
        target = self.closest_to(global_seconds)
        if target is None:
            return None
        return self.delete(target.annotation_id)

    def reassign_event_type(self, annotation_id: str, event_id: int) -> Optional[Annotation]:
        """Move one annotation to another type. Counts move with it."""
        et = self._catalog.require(event_id)
        ann = self.get(annotation_id)
        if ann is None:
            return None
        if ann.event_id != et.event_id:
            self._bump(ann.event_id, -1)
            et.count += 1
        ann.event_id = et.event_id
        ann.event_name = et.name
        return ann

    def rename_event_type(self, event_id: int, name: str) -> EventType:
        """Rename in the catalog and cascade into every annotation of that type."""
        et = self._catalog.require(event_id)
        name = (name or "").strip()
        if not name:
            return et
        et.name = name
        for a in self._items:
            if a.event_id == et.event_id:
                a.event_name = et.name
        return et

    def set_note(self, annotation_id: str, text: str) -> Optional[Annotation]:
        ann = self.get(annotation_id)
        if ann is None:
            return None
        ann.note = text or ""
        return ann

    def refresh_display_times(self, registry: SegmentRegistry) -> None:
        """Recompute wall clocks after the registry's anchor changed."""
        anchor = registry.anchor()
        for a in self._items:
            a.wall_clock = wall_clock_at(anchor, a.at_global)

    def clear(self) -> None:
        self._items = []
        self.recount()

    def restore(self, annotations: Iterable[Annotation]) -> None:
        items = list(annotations)
        # stable, so persisted order decides ties
        items.sort(key=lambda a: a.at_global)
        self._items = items
        self.recount()
