"""
Unit tests for the event catalog and annotation store.

Tests cover:
- Ordered insertion and count maintenance
- Delete / delete-closest semantics
- Reassign (moves counts) vs rename (cascades names)
- Display time refresh after re-anchoring
"""

import random

import pytest

from video_tally.annotations import AnnotationStore, EventCatalog
from video_tally.domain import EventType
from video_tally.errors import NoActiveSegment, UnknownEventType
from video_tally.session import Session


def offsets(session):
    return [a.at_global for a in session.annotations]


def count_of(session, event_id):
    return session.catalog.get(event_id).count


class TestCatalog:

    def test_default_catalog(self):
        cat = EventCatalog()
        assert cat.ids() == [1, 2, 3, 4, 5]
        assert cat.get(1).name == "Event 1"
        assert all(et.count == 0 for et in cat)

    def test_require_unknown(self):
        with pytest.raises(UnknownEventType):
            EventCatalog().require(9)

    def test_color_change_visible_by_lookup(self):
        cat = EventCatalog([EventType(1, "Walk")])
        store = AnnotationStore(cat)
        cat.set_color(1, "#123456")
        assert store.catalog.get(1).color == "#123456"


class TestRecord:

    def test_concrete_scenario(self, session, record_at):
        ann = record_at(session, 3, 125)
        assert ann.wall_clock == "10:02:05"
        assert ann.at_global == 125
        assert ann.at_segment == 25
        assert ann.segment_id == "video-2"
        assert ann.segment_name == "north_cam_b.mp4"
        assert ann.event_name == "Event 3"
        assert ann.note == ""
        assert count_of(session, 3) == 1

    def test_inserts_in_time_order(self, session, record_at):
        for t in [200, 10, 150, 10, 340, 0]:
            record_at(session, 1, t)
        assert offsets(session) == [0, 10, 10, 150, 200, 340]

    def test_equal_times_keep_record_order(self, session, record_at):
        first = record_at(session, 1, 50)
        second = record_at(session, 2, 50)
        ids = [a.annotation_id for a in session.annotations]
        assert ids == [first.annotation_id, second.annotation_id]

    def test_equal_time_lands_after_existing_ties(self, session, record_at):
        a = record_at(session, 1, 50)
        record_at(session, 1, 20)
        b = record_at(session, 2, 50)
        record_at(session, 1, 90)
        c = record_at(session, 3, 50)
        ids = [x.annotation_id for x in session.annotations]
        assert ids[1:4] == [a.annotation_id, b.annotation_id, c.annotation_id]

    def test_ids_are_unique(self, session, record_at):
        ids = {record_at(session, 1, t).annotation_id for t in range(0, 300, 7)}
        assert len(ids) == len(range(0, 300, 7))

    def test_unknown_type(self, session, record_at):
        with pytest.raises(UnknownEventType):
            session.record(42)
        assert len(session.annotations) == 0

    def test_no_segment(self, empty_session):
        with pytest.raises(NoActiveSegment):
            empty_session.record(1)
        assert count_of(empty_session, 1) == 0

    def test_unknown_type_checked_before_segment(self, empty_session):
        with pytest.raises(UnknownEventType):
            empty_session.record(42)

    def test_sorted_under_random_interleaving(self, session, record_at):
        rng = random.Random(7)
        for _ in range(200):
            if session.annotations and rng.random() < 0.3:
                victim = rng.choice(session.annotations)
                session.delete(victim.annotation_id)
            else:
                record_at(session, rng.randint(1, 5), rng.uniform(0, 350))
            times = offsets(session)
            assert times == sorted(times)
        for et in session.event_types:
            assert et.count == sum(1 for a in session.annotations if a.event_id == et.event_id)


class TestDelete:

    def test_delete_decrements(self, session, record_at):
        ann = record_at(session, 2, 30)
        assert session.delete(ann.annotation_id) is ann
        assert count_of(session, 2) == 0
        assert session.annotations == []

    def test_delete_unknown_is_noop(self, session, record_at):
        record_at(session, 2, 30)
        assert session.delete("nope") is None
        assert len(session.annotations) == 1

    def test_count_floored_at_zero(self, session, record_at):
        ann = record_at(session, 2, 30)
        session.catalog.get(2).count = 0
        session.delete(ann.annotation_id)
        assert count_of(session, 2) == 0

    def test_delete_closest(self, session, record_at):
        record_at(session, 1, 10)
        record_at(session, 1, 40)
        record_at(session, 1, 90)
        removed = session.delete_closest(45)
        assert removed.at_global == 40
        assert offsets(session) == [10, 90]

    def test_delete_closest_tie_goes_to_earliest(self, session, record_at):
        early = record_at(session, 1, 10)
        record_at(session, 1, 20)
        assert session.delete_closest(15).annotation_id == early.annotation_id

    def test_delete_closest_defaults_to_playhead(self, session, record_at):
        record_at(session, 1, 10)
        record_at(session, 1, 300)
        session.seek(280)
        assert session.delete_closest().at_global == 300

    def test_delete_closest_empty(self, session, record_at):
        assert session.delete_closest(5) is None

    def test_record_then_delete_closest_restores_state(self, session, record_at):
        for t in [5, 60, 220]:
            record_at(session, 1, t)
        before_ids = [a.annotation_id for a in session.annotations]
        before_counts = {et.event_id: et.count for et in session.event_types}

        record_at(session, 4, 130)
        session.delete_closest(130)

        assert [a.annotation_id for a in session.annotations] == before_ids
        assert {et.event_id: et.count for et in session.event_types} == before_counts


class TestReassignAndRename:

    def test_reassign_moves_count_and_name(self, session, record_at):
        ann = record_at(session, 1, 10)
        out = session.reassign_event_type(ann.annotation_id, 3)
        assert out.event_id == 3
        assert out.event_name == "Event 3"
        assert count_of(session, 1) == 0
        assert count_of(session, 3) == 1

    def test_reassign_same_type_keeps_counts(self, session, record_at):
        ann = record_at(session, 1, 10)
        session.reassign_event_type(ann.annotation_id, 1)
        assert count_of(session, 1) == 1

    def test_reassign_unknown_type_changes_nothing(self, session, record_at):
        ann = record_at(session, 1, 10)
        with pytest.raises(UnknownEventType):
            session.reassign_event_type(ann.annotation_id, 99)
        assert ann.event_id == 1
        assert count_of(session, 1) == 1

    def test_reassign_missing_annotation(self, session, record_at):
        assert session.reassign_event_type("nope", 2) is None
        assert count_of(session, 2) == 0

    def test_rename_cascades_to_annotations_only_of_that_type(self, session, record_at):
        target = record_at(session, 3, 125)
        target.note = "kid with bike"
        other = record_at(session, 1, 126)
        before = (target.annotation_id, target.at_global, target.at_segment, target.note)

        session.rename_event_type(3, "Jaywalk")

        assert target.event_name == "Jaywalk"
        assert (target.annotation_id, target.at_global, target.at_segment, target.note) == before
        assert other.event_name == "Event 1"
        assert session.catalog.get(3).name == "Jaywalk"
        assert count_of(session, 3) == 1

    def test_rename_does_not_touch_counts(self, session, record_at):
        record_at(session, 3, 1)
        session.rename_event_type(3, "Jaywalk")
        assert count_of(session, 3) == 1

    def test_rename_blank_is_ignored(self, session, record_at):
        record_at(session, 3, 1)
        session.rename_event_type(3, "   ")
        assert session.catalog.get(3).name == "Event 3"

    def test_rename_unknown(self, session, record_at):
        with pytest.raises(UnknownEventType):
            session.rename_event_type(77, "x")

    def test_reassign_after_rename_uses_new_name(self, session, record_at):
        session.rename_event_type(2, "Cyclist")
        ann = record_at(session, 1, 10)
        assert session.reassign_event_type(ann.annotation_id, 2).event_name == "Cyclist"


class TestNotesAndDisplay:

    def test_set_note(self, session, record_at):
        ann = record_at(session, 1, 10)
        session.set_note(ann.annotation_id, "stroller")
        assert session.annotations[0].note == "stroller"

    def test_set_note_missing(self, session, record_at):
        assert session.set_note("nope", "x") is None

    def test_refresh_display_times_on_reanchor(self, session, record_at):
        ann = record_at(session, 3, 125)
        session.set_first_segment_start("08:30:00")
        assert ann.wall_clock == "08:32:05"

    def test_references_segment(self, session, record_at):
        record_at(session, 1, 120)
        assert session.store.references_segment("video-2")
        assert not session.store.references_segment("video-1")

    def test_segment_name_survives_removal_of_other_segments(self, session, record_at):
        ann = record_at(session, 1, 300)
        assert ann.segment_name == "north_cam_c.mp4"
        session.remove_segment("video-1")
        assert ann.segment_name == "north_cam_c.mp4"
        assert ann.segment_id == "video-3"

    def test_restore_recounts(self, record_at):
        s = Session()
        s.add_segment("a.mp4", 100)
        record_at(s, 2, 10)
        record_at(s, 2, 5)
        items = s.annotations
        store = AnnotationStore(EventCatalog())
        store.restore(reversed(items))
        assert [a.at_global for a in store] == [5, 10]
        assert store.catalog.get(2).count == 2
