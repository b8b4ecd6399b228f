"""Aggregate statistics over a user's records for one game."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from itertools import pairwise
from typing import TYPE_CHECKING

from shared.errors import ValidationError
from tracker.puzzle_day import puzzle_day
from tracker.streaks import StreakResult, collect_played_days, compute_streaks

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date, datetime, tzinfo

    from shared.dal.models import Game, GameRecord, ScoreValue
    from tracker.streaks import DataQualityIssue

FAILED_BUCKET = "X"
AVERAGE_PRECISION = 2

# A designated score: (puzzle key, field name).
ScoreField = tuple[str, str]


@dataclass(frozen=True)
class AggregateStats:
    total_played: int = 0
    total_won: int = 0
    total_failed: int = 0
    average_score: float = 0
    score_field: ScoreField | None = None
    score_distribution: dict[str, int] = field(default_factory=dict)
    last_played_date: date | None = None
    issues: tuple[DataQualityIssue, ...] = ()


@dataclass(frozen=True)
class GameStats:
    """Everything the statistics view shows for one user and game."""

    game_id: str
    stats: AggregateStats
    streaks: StreakResult
    computed_at: datetime

    @property
    def win_rate(self) -> float:
        if not self.stats.total_played:
            return 0
        return round(self.stats.total_won / self.stats.total_played * 100, AVERAGE_PRECISION)


def is_numeric(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def format_score(value: ScoreValue) -> str:
    """String label for a score; integral floats print without a decimal part."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def bucket_label(value: float, boundaries: Sequence[float]) -> str:
    """Label ``[lo, hi)`` buckets as "lo-hi" and the open last bucket as "last+"."""
    if not boundaries or value < boundaries[0]:
        return format_score(value)
    for lower, upper in pairwise(boundaries):
        if lower <= value < upper:
            return f"{format_score(lower)}-{format_score(upper)}"
    return f"{format_score(boundaries[-1])}+"


def resolve_score_field(
    game: Game,
    records: Sequence[GameRecord],
    score_field: str | ScoreField | None = None,
) -> ScoreField | None:
    """Pick the score averaged and bucketed for a game.

    An explicit (puzzle key, field) pair wins. Otherwise the first puzzle key
    in the game's score types is used (or in the first scored record when the
    game declares none), with ``score_field`` naming its field. A puzzle key
    with several fields needs the caller to name one.
    """
    if isinstance(score_field, tuple):
        return score_field

    primary = game.primary_puzzle_fields()
    if primary is None:
        scored = next((record.scores for record in records if record.scores), None)
        if scored is None:
            return None
        puzzle_key = next(iter(scored))
        primary = (puzzle_key, list(scored[puzzle_key]))

    puzzle_key, fields = primary
    if score_field is not None:
        if score_field not in fields:
            raise ValidationError(f"{game.display_name} has no score field '{score_field}'", field="field")
        return puzzle_key, score_field
    if not fields:
        return None
    if len(fields) > 1:
        msg = f"{game.display_name} records several scores ({', '.join(fields)}); choose one with 'field'"
        raise ValidationError(msg, field="field")
    return puzzle_key, fields[0]


def _score_of(record: GameRecord, score_field: ScoreField) -> ScoreValue | None:
    puzzle_key, name = score_field
    if not record.scores or puzzle_key not in record.scores:
        return None
    return record.scores[puzzle_key].get(name)


def compute_stats(
    records: Sequence[GameRecord],
    game: Game,
    tz: tzinfo | None = None,
    score_field: str | ScoreField | None = None,
) -> AggregateStats:
    """Totals, average and distribution of the designated score.

    Only won records count toward the average and the value buckets; failed
    records land in the ``X`` bucket. Records without the score are skipped.
    """
    chosen = resolve_score_field(game, records, score_field)
    total_failed = sum(1 for record in records if record.failed)

    numeric: list[float] = []
    distribution: dict[str, int] = {}
    boundaries = game.distribution_boundaries(chosen[1]) if chosen else None
    for record in records:
        if record.failed:
            distribution[FAILED_BUCKET] = distribution.get(FAILED_BUCKET, 0) + 1
            continue
        value = _score_of(record, chosen) if chosen else None
        if value is None:
            continue
        if is_numeric(value):
            numeric.append(value)
            label = bucket_label(value, boundaries) if boundaries else format_score(value)
        else:
            label = format_score(value)
        distribution[label] = distribution.get(label, 0) + 1

    played = collect_played_days(records, game, tz)
    average = round(sum(numeric) / len(numeric), AVERAGE_PRECISION) if numeric else 0
    return AggregateStats(
        total_played=len(records),
        total_won=len(records) - total_failed,
        total_failed=total_failed,
        average_score=average,
        score_field=chosen,
        score_distribution=distribution,
        last_played_date=played.latest,
        issues=played.issues,
    )


def compute_game_stats(
    records: Sequence[GameRecord],
    game: Game,
    now: datetime,
    tz: tzinfo | None = None,
    score_field: str | ScoreField | None = None,
) -> GameStats:
    """Stats plus streaks for display.

    A streak whose last played day is older than yesterday has lapsed and is
    shown as zero; the best win streak is kept.
    """
    stats = compute_stats(records, game, tz, score_field)
    streaks = compute_streaks(records, game, now, tz)
    yesterday = puzzle_day(now, game, tz) - timedelta(days=1)
    if streaks.last_played is not None and streaks.last_played < yesterday:
        streaks = replace(streaks, playstreak=0, winstreak=0, streak_at_risk=False)
    return GameStats(game_id=game.game_id, stats=stats, streaks=streaks, computed_at=now)
