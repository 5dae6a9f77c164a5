# video_tally/clock.py
from __future__ import annotations

import logging
from typing import Optional

from PyQt5.QtCore import QElapsedTimer, QObject, QTimer, pyqtSignal

from .domain import PlaybackState
from .session import Session


logger = logging.getLogger(__name__)


class PlaybackClock(QObject):
    """
    Drives Session.tick from a QTimer on the GUI thread.

    Key behaviors:
      - Real elapsed time between timeouts is measured with QElapsedTimer, so a
        late timer still advances by the right amount.
      - Emits state_changed with every new PlaybackState.
      - Stops itself (and emits playback_stopped) once the engine pauses, e.g.
        at either end of the timeline.
    """

    state_changed = pyqtSignal(object)   # PlaybackState
    playback_stopped = pyqtSignal()

    def __init__(self, session: Session, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._session = session

        self._elapsed = QElapsedTimer()
        self._timer = QTimer(self)
        self._timer.setInterval(int(session.settings.tick_interval_ms))
        self._timer.timeout.connect(self._on_timeout)

    # ---------------- Public API ----------------

    def set_session(self, session: Session) -> None:
        self.stop()
        self._session = session
        self._timer.setInterval(int(session.settings.tick_interval_ms))

    def is_running(self) -> bool:
        return self._timer.isActive()

    def start(self) -> PlaybackState:
        if self._session.registry.is_empty():
            return self._session.state
        state = self._session.play()
        self._elapsed.start()
        self._timer.start()
        self.state_changed.emit(state)
        return state

    def stop(self) -> PlaybackState:
        was_running = self._timer.isActive()
        self._timer.stop()
        state = self._session.pause()
        if was_running:
            self.state_changed.emit(state)
            self.playback_stopped.emit()
        return state

    def toggle(self) -> PlaybackState:
        return self.stop() if self.is_running() else self.start()

    def advance(self, elapsed_ms: float) -> PlaybackState:
        """One tick; split out from the timer slot so hosts can step manually."""
        state = self._session.tick(elapsed_ms)
        self.state_changed.emit(state)
        if not state.playing and self._timer.isActive():
            self._timer.stop()
            logger.debug("Playback stopped at %.3fs", state.position)
            self.playback_stopped.emit()
        return state

    # ---------------- Timer slot ----------------

    def _on_timeout(self) -> None:
        elapsed_ms = self._elapsed.restart()
        self.advance(float(elapsed_ms))
