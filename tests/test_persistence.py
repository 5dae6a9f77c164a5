"""
Tests for the JSON session snapshot and settings file.
"""

import json

import pytest

from video_tally.domain import Settings
from video_tally.persistence import (
    SESSION_VERSION,
    config_path,
    load_session,
    load_settings,
    save_session,
    save_settings,
    session_from_dict,
    session_to_dict,
)


@pytest.fixture
def annotated(session, record_at):
    record_at(session, 3, 125)
    record_at(session, 1, 10)
    record_at(session, 3, 300)
    session.rename_event_type(3, "Jaywalk")
    session.set_note(session.annotations[0].annotation_id, "bus stop")
    return session


class TestSnapshot:

    def test_shape(self, annotated):
        d = session_to_dict(annotated)
        assert d["version"] == SESSION_VERSION
        assert [s["name"] for s in d["segments"]] == ["north_cam_a.mp4", "north_cam_b.mp4", "north_cam_c.mp4"]
        assert d["settings"]["seek_seconds"] == 1.0
        assert d["settings"]["seek_seconds_shift"] == 10.0
        assert len(d["annotations"]) == 3
        assert "export_date" in d

    def test_round_trip(self, annotated):
        restored = session_from_dict(json.loads(json.dumps(session_to_dict(annotated))))
        assert [a.to_dict() for a in restored.annotations] == [a.to_dict() for a in annotated.annotations]
        assert [s.real_start for s in restored.segments] == ["10:00:00", "10:01:40", "10:02:30"]
        assert restored.total_duration() == 350
        assert restored.state.total_duration == 350
        assert restored.catalog.get(3).name == "Jaywalk"
        assert restored.catalog.get(3).count == 2
        assert restored.catalog.get(1).count == 1

    def test_derived_values_are_recomputed(self, annotated):
        d = session_to_dict(annotated)
        d["segments"][1]["start_time"] = "23:59:59"
        d["segments"][2]["start_time"] = "garbage"
        for et in d["event_types"]:
            et["count"] = 999
        d["annotations"].reverse()

        restored = session_from_dict(d)
        assert [s.real_start for s in restored.segments] == ["10:00:00", "10:01:40", "10:02:30"]
        assert [s.start_offset for s in restored.segments] == [0, 100, 150]
        assert restored.catalog.get(3).count == 2
        assert restored.catalog.get(2).count == 0
        times = [a.at_global for a in restored.annotations]
        assert times == sorted(times)

    def test_wall_clocks_follow_restored_anchor(self, annotated):
        d = session_to_dict(annotated)
        d["segments"][0]["start_time"] = "09:00:00"
        restored = session_from_dict(d)
        assert restored.registry.anchor() == "09:00:00"
        assert [a.wall_clock for a in restored.annotations] == ["09:00:10", "09:02:05", "09:05:00"]

    def test_restored_session_still_enforces_references(self, annotated):
        from video_tally.errors import ReferencedByAnnotation

        restored = session_from_dict(session_to_dict(annotated))
        with pytest.raises(ReferencedByAnnotation):
            restored.remove_segment("video-2")

    def test_new_segments_get_fresh_ids(self, annotated):
        restored = session_from_dict(session_to_dict(annotated))
        assert restored.add_segment("d.mp4", 10).segment_id == "video-4"

    def test_newer_version_rejected(self, annotated):
        d = session_to_dict(annotated)
        d["version"] = SESSION_VERSION + 1
        with pytest.raises(ValueError):
            session_from_dict(d)

    @pytest.mark.parametrize("payload", [
        [],
        {"version": "x"},
        {"version": 1, "segments": [{}]},
        {"version": 1, "segments": [1]},
        {"version": 1, "event_types": ["Event 1"]},
        {"version": 1, "annotations": "none"},
        {"version": 1, "settings": [1]},
    ])
    def test_malformed(self, payload):
        with pytest.raises(ValueError):
            session_from_dict(payload)

    def test_zero_duration_segment_is_malformed(self, annotated):
        d = session_to_dict(annotated)
        d["segments"][0]["duration"] = 0
        with pytest.raises(ValueError):
            session_from_dict(d)


class TestFiles:

    def test_save_and_load(self, annotated, tmp_path):
        path = str(tmp_path / "sessions" / "day1.json")
        save_session(path, annotated)
        restored = load_session(path)
        assert restored is not None
        assert len(restored.annotations) == 3
        assert not [p for p in (tmp_path / "sessions").iterdir() if p.name.startswith(".tmp_")]

    def test_missing_file(self, tmp_path):
        assert load_session(str(tmp_path / "nope.json")) is None

    def test_invalid_json(self, tmp_path):
        p = tmp_path / "broken.json"
        p.write_text("{not json", encoding="utf-8")
        assert load_session(str(p)) is None

    def test_settings_round_trip(self, tmp_path):
        path = config_path(str(tmp_path))
        save_settings(path, Settings(seek_seconds=5, seek_seconds_shift=60))
        s = load_settings(path)
        assert (s.seek_seconds, s.seek_seconds_shift) == (5, 60)
        assert s.max_rate == 20.0

    def test_settings_defaults_when_missing_or_invalid(self, tmp_path):
        assert load_settings(str(tmp_path / "none.json")) == Settings()
        p = tmp_path / "config.json"
        p.write_text(json.dumps({"seek_seconds": -1}), encoding="utf-8")
        assert load_settings(str(p)) == Settings()
        p.write_text(json.dumps([1]), encoding="utf-8")
        assert load_settings(str(p)) == Settings()

    def test_wrongly_shaped_session_file(self, tmp_path):
        p = tmp_path / "odd.json"
        p.write_text(json.dumps({"version": 1, "segments": [1]}), encoding="utf-8")
        assert load_session(str(p)) is None
