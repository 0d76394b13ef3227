"""
Scoreboard watcher: feeds a snapshot stream through the delta detector.

The last-known snapshot per match is held here, in an explicit map owned by
the watcher, and handed to the detector on every update.
"""
from __future__ import annotations

from typing import Optional

from shared.models.domain import MatchSnapshot
from shared.utils.logging import get_logger

from scoreboard.badges import BadgeBoard
from scoreboard.detector import DEFAULT_BADGE_DURATION_S, BadgeSignal, detect
from scoreboard.stream import SnapshotStream

logger = get_logger(__name__)


class ScoreboardWatcher:
    def __init__(self, board: BadgeBoard, badge_duration_s: float = DEFAULT_BADGE_DURATION_S) -> None:
        self._board = board
        self._badge_duration_s = badge_duration_s
        self.last_known: dict[str, MatchSnapshot] = {}

    def apply(self, snapshot: MatchSnapshot) -> Optional[BadgeSignal]:
        """Record a new snapshot and raise its badge, if the detector produces one."""
        prior = self.last_known.get(snapshot.id)
        self.last_known[snapshot.id] = snapshot
        signal = detect(prior, snapshot, duration_s=self._badge_duration_s)
        if signal is not None:
            self._board.raise_signal(signal)
        return signal

    async def run(self, stream: SnapshotStream) -> None:
        """Consume the stream until it ends or the task is cancelled."""
        logger.info("scoreboard_watcher_started")
        try:
            async for snapshot in stream:
                self.apply(snapshot)
        finally:
            self._board.close()
            logger.info("scoreboard_watcher_stopped", matches_seen=len(self.last_known))
