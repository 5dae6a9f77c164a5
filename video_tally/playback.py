# video_tally/playback.py
from __future__ import annotations

import math
from dataclasses import replace
from typing import Optional

from .domain import PlaybackState, Settings
from .positions import locate, reconcile_offset
from .segments import SegmentRegistry


class PlaybackMachine:
    """
    Paused / Playing(direction, rate) over a SegmentRegistry.

    Every operation returns the new PlaybackState snapshot; nothing here reads
    a clock. Advancement only happens through tick(elapsed_ms), which the host
    calls from its own timer.
    """

    def __init__(self, registry: SegmentRegistry, settings: Optional[Settings] = None):
        self._registry = registry
        self._settings = settings or Settings()
        self._state = PlaybackState(total_duration=registry.total_duration())

    @property
    def state(self) -> PlaybackState:
        return self._state

    # ---------------- Helpers ----------------

    def _clamp_rate(self, rate: float) -> float:
        # one magnitude bound for both directions
        lo = self._settings.min_rate
        hi = self._settings.max_rate
        sign = -1.0 if rate < 0 else 1.0
        mag = abs(float(rate))
        if mag == 0.0:
            # zero keeps the current direction at the slowest speed
            sign = -1.0 if self._state.rate < 0 else 1.0
        return sign * max(lo, min(mag, hi))

    def _at_global(self, seconds: float, **changes) -> PlaybackState:
        total = self._registry.total_duration()
        t = float(seconds) if seconds is not None and math.isfinite(float(seconds)) else 0.0
        t = max(0.0, min(t, total))
        pos = locate(self._registry.segments, t)
        if self._registry.is_empty():
            t = 0.0
        return replace(
            self._state,
            position=t,
            segment_index=pos.index,
            segment_offset=pos.offset,
            total_duration=total,
            **changes,
        )

    def _at_segment(self, index: int, offset: float, **changes) -> PlaybackState:
        seg = self._registry[index]
        offset = max(0.0, min(float(offset), seg.duration))
        return replace(
            self._state,
            position=seg.start_offset + offset,
            segment_index=index,
            segment_offset=offset,
            **changes,
        )

    def _set(self, state: PlaybackState) -> PlaybackState:
        self._state = state
        return state

    # ---------------- Transport ----------------

    def play(self) -> PlaybackState:
        return self._set(replace(self._state, playing=True))

    def pause(self) -> PlaybackState:
        return self._set(replace(self._state, playing=False))

    def toggle(self) -> PlaybackState:
        return self._set(replace(self._state, playing=not self._state.playing))

    def toggle_mute(self) -> PlaybackState:
        return self._set(replace(self._state, muted=not self._state.muted))

    def set_muted(self, muted: bool) -> PlaybackState:
        return self._set(replace(self._state, muted=bool(muted)))

    # ---------------- Rate / direction ----------------

    def set_rate(self, rate: float) -> PlaybackState:
        """Signed multiplier; magnitude is clamped to [min_rate, max_rate]."""
        return self._set(replace(self._state, rate=self._clamp_rate(rate)))

    def nudge_rate(self, steps: int = 1) -> PlaybackState:
        """Speed up (steps > 0) or slow down by rate_step, keeping direction."""
        cur = self._state.rate
        sign = -1.0 if cur < 0 else 1.0
        mag = abs(cur) + steps * self._settings.rate_step
        mag = max(self._settings.min_rate, min(mag, self._settings.max_rate))
        return self._set(replace(self._state, rate=sign * mag))

    def reverse_direction(self) -> PlaybackState:
        return self._set(replace(self._state, rate=-self._state.rate))

    # ---------------- Position ----------------

    def seek(self, global_seconds: float) -> PlaybackState:
        """Clamp into [0, total] and re-locate. Play flag is untouched."""
        return self._set(self._at_global(global_seconds))

    def seek_by(self, delta_seconds: float) -> PlaybackState:
        """Relative seek; like the j/l keys it also pauses."""
        return self._set(self._at_global(self._state.position + float(delta_seconds), playing=False))

    def step(self, forward: bool = True, large: bool = False) -> PlaybackState:
        amount = self._settings.seek_seconds_shift if large else self._settings.seek_seconds
        return self.seek_by(amount if forward else -amount)

    def report_offset(self, reported: float) -> PlaybackState:
        """
        The host player's own segment-local position.

        Within sync_tolerance the player's value is adopted (no visible jump);
        otherwise the mapped position stands and the host should seek its player
        to state.segment_offset.
        """
        if self._registry.is_empty():
            return self._state
        idx = min(self._state.segment_index, len(self._registry) - 1)
        offset = reconcile_offset(reported, self._state.segment_offset, self._settings.sync_tolerance)
        return self._set(self._at_segment(idx, offset))

    def tick(self, elapsed_ms: float) -> PlaybackState:
        """
        Advance by elapsed real time scaled by rate.

        At a segment end the next segment starts at offset 0 (forward) or the
        previous one at its full duration (reverse). Running off either end of
        the timeline pauses there.
        """
        st = self._state
        if not st.playing or self._registry.is_empty():
            return st

        elapsed = max(0.0, float(elapsed_ms or 0.0))
        delta = elapsed * st.rate / 1000.0
        n = len(self._registry)
        idx = max(0, min(st.segment_index, n - 1))
        seg = self._registry[idx]
        local = st.segment_offset + delta

        if st.rate >= 0:
            if local >= seg.duration:
                if idx + 1 < n:
                    return self._set(self._at_segment(idx + 1, 0.0))
                return self._set(self._at_segment(idx, seg.duration, playing=False))
        else:
            if local <= 0.0:
                if idx > 0:
                    prev = self._registry[idx - 1]
                    return self._set(self._at_segment(idx - 1, prev.duration))
                return self._set(self._at_segment(0, 0.0, playing=False))

        return self._set(self._at_segment(idx, local))

    # ---------------- Registry changes ----------------

    def refresh(self) -> PlaybackState:
        """Re-derive total duration and re-locate the current position."""
        return self._set(self._at_global(self._state.position))

    def reset(self) -> PlaybackState:
        """Back to the start, paused, normal speed, muted."""
        self._state = PlaybackState(total_duration=self._registry.total_duration())
        return self._state
