"""
Tests for BadgeBoard expiry and overwrite behaviour, plus the watcher that drives it.

Short durations keep the event loop timers fast.
"""
from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from shared.models.domain import MatchSnapshot
from shared.models.enums import BadgeKind
from scoreboard.badges import BadgeBoard
from scoreboard.detector import BadgeSignal, detect
from scoreboard.service import log_badge_change, parse_args
from scoreboard.watcher import ScoreboardWatcher


def goal(match_id: str, duration_s: float) -> BadgeSignal:
    signal = detect(
        MatchSnapshot(id=match_id, home_score=0, away_score=0),
        MatchSnapshot(id=match_id, home_score=1, away_score=0),
        duration_s=duration_s,
    )
    assert signal is not None
    return signal


@pytest.mark.asyncio
async def test_badge_clears_itself_after_duration() -> None:
    events: list[tuple[str, Optional[BadgeSignal]]] = []
    board = BadgeBoard(on_change=lambda m, s: events.append((m, s)))

    signal = goal("42", 0.05)
    board.raise_signal(signal)
    assert board.get("42") is signal

    await asyncio.sleep(0.1)
    assert board.get("42") is None
    assert events == [("42", signal), ("42", None)]


@pytest.mark.asyncio
async def test_new_signal_overwrites_and_restarts_timer() -> None:
    board = BadgeBoard()
    first = goal("42", 0.05)
    board.raise_signal(first)
    await asyncio.sleep(0.03)

    second = goal("42", 0.1)
    board.raise_signal(second)
    # the first badge's original deadline passes without clearing the second
    await asyncio.sleep(0.05)
    assert board.get("42") is second

    await asyncio.sleep(0.1)
    assert board.get("42") is None


@pytest.mark.asyncio
async def test_matches_are_independent() -> None:
    board = BadgeBoard()
    board.raise_signal(goal("1", 0.05))
    board.raise_signal(goal("2", 0.5))
    await asyncio.sleep(0.1)
    assert board.get("1") is None
    assert board.get("2") is not None
    board.close()
    assert board.active == {}


@pytest.mark.asyncio
async def test_clear_notifies_listener() -> None:
    events: list[tuple[str, Optional[BadgeSignal]]] = []
    board = BadgeBoard(on_change=lambda m, s: events.append((m, s)))
    board.raise_signal(goal("5", 1.0))
    board.clear("5")
    board.clear("5")
    assert board.get("5") is None
    assert [s for _, s in events][-1] is None
    assert len(events) == 2


# ── Watcher ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_watcher_keeps_last_known_state_per_match() -> None:
    board = BadgeBoard()
    watcher = ScoreboardWatcher(board, badge_duration_s=1.0)

    assert watcher.apply(MatchSnapshot(id="42", home_score=1, away_score=0, status="live")) is None
    assert watcher.apply(MatchSnapshot(id="7", home_score=0, away_score=0, status="live")) is None

    signal = watcher.apply(MatchSnapshot(id="42", home_score=2, away_score=0, status="live"))
    assert signal is not None and signal.kind == BadgeKind.GOAL
    assert board.get("42") is signal
    assert board.get("7") is None
    assert watcher.last_known["42"].home_score == 2
    board.close()


@pytest.mark.asyncio
async def test_watcher_run_consumes_stream_and_closes_board() -> None:
    async def stream():
        yield MatchSnapshot(id="42", home_score=2, away_score=1, status="live")
        yield MatchSnapshot(id="42", home_score=0, away_score=0, status="in programma")

    seen: list[Optional[BadgeSignal]] = []
    board = BadgeBoard(on_change=lambda m, s: seen.append(s))
    watcher = ScoreboardWatcher(board, badge_duration_s=1.0)

    await watcher.run(stream())

    assert [s.kind for s in seen if s is not None] == [BadgeKind.RESET]
    assert board.active == {}


# ── Watcher service CLI ─────────────────────────────────────────────────

def test_service_args_default_to_redis() -> None:
    args = parse_args(["42", "7"])
    assert (args.source, args.match_ids) == ("redis", ["42", "7"])


def test_service_poll_needs_match_ids() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--source", "poll"])


def test_badge_change_logger_accepts_raise_and_clear() -> None:
    log_badge_change("42", goal("42", 4.0))
    log_badge_change("42", None)
