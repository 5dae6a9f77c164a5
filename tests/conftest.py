import pytest

from video_tally.session import Session


@pytest.fixture
def session():
    """Three segments (100s, 50s, 200s) anchored at 10:00:00."""
    s = Session()
    s.add_segment("north_cam_a.mp4", 100)
    s.add_segment("north_cam_b.mp4", 50)
    s.add_segment("north_cam_c.mp4", 200)
    s.set_first_segment_start("10:00:00")
    return s


@pytest.fixture
def empty_session():
    return Session()


def _record_at(session, event_id, seconds):
    session.seek(seconds)
    return session.record(event_id)


@pytest.fixture
def record_at():
    """record_at(session, event_id, seconds): seek then record."""
    return _record_at
