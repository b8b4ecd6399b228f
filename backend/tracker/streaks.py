"""Play and win streaks over a user's record history for one game."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from itertools import pairwise
from typing import TYPE_CHECKING

import structlog

from tracker.puzzle_day import parse_timestamp, puzzle_day

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import date, datetime, tzinfo

    from shared.dal.models import Game, GameRecord

logger = structlog.get_logger()


@dataclass(frozen=True)
class DataQualityIssue:
    """A record left out of a computation, and why."""

    record_id: str
    reason: str


@dataclass(frozen=True)
class PlayedDays:
    # puzzle day -> True when at least one record that day was not failed
    won_by_day: dict[date, bool]
    issues: tuple[DataQualityIssue, ...] = ()

    @property
    def latest(self) -> date | None:
        return max(self.won_by_day, default=None)


@dataclass(frozen=True)
class StreakResult:
    playstreak: int = 0
    winstreak: int = 0
    max_winstreak: int = 0
    streak_at_risk: bool = False
    last_played: date | None = None
    issues: tuple[DataQualityIssue, ...] = ()


def collect_played_days(records: Iterable[GameRecord], game: Game, tz: tzinfo | None = None) -> PlayedDays:
    """Group records by puzzle day, setting aside records whose timestamp cannot be read."""
    won_by_day: dict[date, bool] = {}
    issues: list[DataQualityIssue] = []
    for record in records:
        try:
            instant = parse_timestamp(record.created_at)
        except ValueError:
            logger.warning(
                "record has unreadable created_at, excluded",
                record_id=record.record_id,
                game_id=record.game_id,
                created_at=record.created_at,
            )
            issues.append(DataQualityIssue(record.record_id, f"unreadable created_at {record.created_at!r}"))
            continue
        day = puzzle_day(instant, game, tz)
        won_by_day[day] = won_by_day.get(day, False) or not record.failed
    return PlayedDays(won_by_day=won_by_day, issues=tuple(issues))


def leading_run(days_desc: Sequence[date]) -> int:
    """Length of the consecutive-day run at the head of a descending, de-duplicated sequence."""
    if not days_desc:
        return 0
    run = 1
    for newer, older in pairwise(days_desc):
        if (newer - older).days != 1:
            break
        run += 1
    return run


def longest_run(days_desc: Sequence[date]) -> int:
    if not days_desc:
        return 0
    longest = run = 1
    for newer, older in pairwise(days_desc):
        run = run + 1 if (newer - older).days == 1 else 1
        longest = max(longest, run)
    return longest


def _win_runs(won_by_day: dict[date, bool]) -> tuple[int, int]:
    """Return (trailing win run, longest win run)."""
    trailing = 0
    trailing_open = True
    longest = run = 0
    previous: date | None = None
    for day in sorted(won_by_day, reverse=True):
        consecutive = previous is None or (previous - day).days == 1
        if won_by_day[day]:
            run = run + 1 if consecutive else 1
        else:
            run = 0
        if trailing_open and won_by_day[day] and consecutive:
            trailing = run
        else:
            trailing_open = False
        longest = max(longest, run)
        previous = day
    return trailing, longest


def compute_streaks(
    records: Iterable[GameRecord],
    game: Game,
    now: datetime,
    tz: tzinfo | None = None,
) -> StreakResult:
    """Compute streaks from a record history.

    Days are puzzle days under the game's reset policy. A day counts as won
    when any of its records is not failed. The streak is at risk when the last
    played day is yesterday, so it lapses unless today is played.
    """
    played = collect_played_days(records, game, tz)
    if not played.won_by_day:
        return StreakResult(issues=played.issues)

    days_desc = sorted(played.won_by_day, reverse=True)
    winstreak, max_winstreak = _win_runs(played.won_by_day)
    today = puzzle_day(now, game, tz)
    return StreakResult(
        playstreak=leading_run(days_desc),
        winstreak=winstreak,
        max_winstreak=max_winstreak,
        streak_at_risk=days_desc[0] == today - timedelta(days=1),
        last_played=days_desc[0],
        issues=played.issues,
    )
