"""
Active badge tracking.

One badge per match at a time. Raising a badge replaces any pending one for
the same match and restarts its timer; expiry is scheduled on the event loop
with call_later, so nothing has to poll for it.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from shared.utils.logging import get_logger
from shared.utils.metrics import BADGES_RAISED

from scoreboard.detector import BadgeSignal

logger = get_logger(__name__)

BadgeListener = Callable[[str, Optional[BadgeSignal]], None]


class BadgeBoard:
    """Holds the currently visible badge per match. Must be used from a running event loop."""

    def __init__(self, on_change: BadgeListener | None = None) -> None:
        self._on_change = on_change
        self._active: dict[str, BadgeSignal] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def raise_signal(self, signal: BadgeSignal) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_timer(signal.match_id)
        self._active[signal.match_id] = signal
        self._timers[signal.match_id] = loop.call_later(
            signal.duration_s, self._expire, signal.match_id, signal
        )
        BADGES_RAISED.labels(kind=signal.kind.value).inc()
        logger.info(
            "badge_raised",
            match_id=signal.match_id,
            kind=signal.kind.value,
            label=signal.label,
            side=signal.side.value if signal.side else None,
        )
        self._notify(signal.match_id, signal)

    def get(self, match_id: str) -> Optional[BadgeSignal]:
        return self._active.get(match_id)

    @property
    def active(self) -> dict[str, BadgeSignal]:
        return dict(self._active)

    def clear(self, match_id: str) -> None:
        self._cancel_timer(match_id)
        if self._active.pop(match_id, None) is not None:
            self._notify(match_id, None)

    def close(self) -> None:
        """Cancel all pending expiry timers and drop active badges."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._active.clear()

    def _expire(self, match_id: str, signal: BadgeSignal) -> None:
        # a newer badge for the same match owns its own timer
        if self._active.get(match_id) is not signal:
            return
        del self._active[match_id]
        self._timers.pop(match_id, None)
        logger.debug("badge_expired", match_id=match_id, kind=signal.kind.value)
        self._notify(match_id, None)

    def _cancel_timer(self, match_id: str) -> None:
        handle = self._timers.pop(match_id, None)
        if handle is not None:
            handle.cancel()

    def _notify(self, match_id: str, signal: Optional[BadgeSignal]) -> None:
        if self._on_change is not None:
            self._on_change(match_id, signal)
