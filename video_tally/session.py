# video_tally/session.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from .analytics import Histogram, RangeCounts, count_in_range, histogram
from .annotations import AnnotationStore, EventCatalog
from .domain import (
    Annotation,
    EventType,
    PlaybackState,
    Segment,
    SegmentSource,
    Settings,
    default_event_types,
)
from .playback import PlaybackMachine
from .segments import SegmentRegistry
from .timecodec import wall_clock_at


class Session:
    """
    One annotation session: segments, event types, annotations and playback.

    This is the single owner of the engine state; all mutations go through it
    so that cross-component follow-ups (playback refresh, display-time refresh,
    reference checks) always happen. Mutating calls return what changed.
    """

    def __init__(self, settings: Optional[Settings] = None, event_types: Optional[Iterable[EventType]] = None):
        self.settings = settings or Settings()
        self.settings.validate()
        if event_types is None:
            event_types = default_event_types(self.settings.default_event_count)

        self.registry = SegmentRegistry()
        self.catalog = EventCatalog(event_types)
        self.store = AnnotationStore(self.catalog)
        self.playback = PlaybackMachine(self.registry, self.settings)

        self._wire()

    def _wire(self) -> None:
        self.registry.set_reference_checks(
            is_referenced=self.store.references_segment,
            has_annotations=lambda: len(self.store) > 0,
        )

    # ---------------- Convenience reads ----------------

    @property
    def state(self) -> PlaybackState:
        return self.playback.state

    @property
    def segments(self) -> List[Segment]:
        return list(self.registry)

    @property
    def annotations(self) -> List[Annotation]:
        return self.store.annotations

    @property
    def event_types(self) -> List[EventType]:
        return list(self.catalog)

    def total_duration(self) -> float:
        return self.registry.total_duration()

    def current_segment(self) -> Optional[Segment]:
        if self.registry.is_empty():
            return None
        return self.registry[min(self.state.segment_index, len(self.registry) - 1)]

    def wall_clock_now(self) -> str:
        return wall_clock_at(self.registry.anchor(), self.state.position)

    # ---------------- Segments ----------------

    def add_segment(self, name: str, duration: float, modified: Optional[datetime] = None) -> Segment:
        seg = self.registry.append(name, duration, modified)
        self.playback.refresh()
        return seg

    def add_source(self, source: SegmentSource) -> Segment:
        return self.add_segment(source.name, source.duration, source.modified)

    def remove_segment(self, segment_id: str) -> Optional[Segment]:
        removed = self.registry.remove(segment_id)
        if removed is not None:
            self.playback.reset()
        return removed

    def reorder_segment(self, segment_id: str, new_index: int) -> Optional[Segment]:
        moved = self.registry.reorder(segment_id, new_index)
        if moved is not None:
            self.playback.reset()
        return moved

    def set_first_segment_start(self, text: str) -> Optional[Segment]:
        first = self.registry.set_first_segment_start(text)
        self.store.refresh_display_times(self.registry)
        return first

    # ---------------- Playback ----------------

    def play(self) -> PlaybackState:
        return self.playback.play()

    def pause(self) -> PlaybackState:
        return self.playback.pause()

    def toggle_play(self) -> PlaybackState:
        return self.playback.toggle()

    def toggle_mute(self) -> PlaybackState:
        return self.playback.toggle_mute()

    def set_rate(self, rate: float) -> PlaybackState:
        return self.playback.set_rate(rate)

    def faster(self) -> PlaybackState:
        return self.playback.nudge_rate(+1)

    def slower(self) -> PlaybackState:
        return self.playback.nudge_rate(-1)

    def reverse_direction(self) -> PlaybackState:
        return self.playback.reverse_direction()

    def seek(self, global_seconds: float) -> PlaybackState:
        return self.playback.seek(global_seconds)

    def step(self, forward: bool = True, large: bool = False) -> PlaybackState:
        return self.playback.step(forward=forward, large=large)

    def report_offset(self, reported: float) -> PlaybackState:
        return self.playback.report_offset(reported)

    def tick(self, elapsed_ms: float) -> PlaybackState:
        return self.playback.tick(elapsed_ms)

    # ---------------- Annotations ----------------

    def record(self, event_id: int) -> Annotation:
        return self.store.record(event_id, self.playback.state, self.registry)

    def delete(self, annotation_id: str) -> Optional[Annotation]:
        return self.store.delete(annotation_id)

    def delete_closest(self, global_seconds: Optional[float] = None) -> Optional[Annotation]:
        if global_seconds is None:
            global_seconds = self.state.position
        return self.store.delete_closest_to(global_seconds)

    def closest(self, global_seconds: Optional[float] = None) -> Optional[Annotation]:
        if global_seconds is None:
            global_seconds = self.state.position
        return self.store.closest_to(global_seconds)

    def reassign_event_type(self, annotation_id: str, event_id: int) -> Optional[Annotation]:
        return self.store.reassign_event_type(annotation_id, event_id)

    def rename_event_type(self, event_id: int, name: str) -> EventType:
        return self.store.rename_event_type(event_id, name)

    def set_event_color(self, event_id: int, color: str) -> EventType:
        return self.catalog.set_color(event_id, color)

    def set_note(self, annotation_id: str, text: str) -> Optional[Annotation]:
        return self.store.set_note(annotation_id, text)

    def last_annotation(self) -> Optional[Annotation]:
        items = self.store.annotations
        return items[-1] if items else None

    # ---------------- Analytics ----------------

    def _clamp_range(self, start: Optional[float], end: Optional[float]):
        total = self.total_duration()
        s = 0.0 if start is None else max(0.0, min(float(start), total))
        e = total if end is None else max(0.0, min(float(end), total))
        return s, e

    def count_in_range(self, start: Optional[float] = None, end: Optional[float] = None) -> RangeCounts:
        s, e = self._clamp_range(start, end)
        return count_in_range(self.store, self.catalog, s, e)

    def histogram(
        self,
        start: Optional[float],
        end: Optional[float],
        bin_width: float,
        event_id: int,
    ) -> Histogram:
        """Start/end of None mean the whole timeline."""
        s, e = self._clamp_range(start, end)
        return histogram(self.store, s, e, bin_width, event_id)

    # ---------------- Restore ----------------

    def load(
        self,
        segments: Iterable[Segment],
        event_types: Iterable[EventType],
        annotations: Iterable[Annotation],
        settings: Optional[Settings] = None,
    ) -> None:
        """
        Replace all state. Derived values (offsets, later start times, total
        duration, counts, annotation wall clocks) are recomputed, never taken
        from the input.
        """
        new_settings = settings or self.settings
        new_settings.validate()

        registry = SegmentRegistry()
        registry.restore(segments)
        catalog = EventCatalog(event_types)
        store = AnnotationStore(catalog)
        store.restore(annotations)
        store.refresh_display_times(registry)

        self.settings = new_settings
        self.registry = registry
        self.catalog = catalog
        self.store = store
        self._wire()
        self.playback = PlaybackMachine(self.registry, self.settings)
