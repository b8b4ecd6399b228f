"""Puzzle-day policy: which calendar day an instant counts toward for a game.

A game's day starts at its ``reset_time``. Synchronous games reset on UTC;
asynchronous games reset in the viewer's own timezone. An instant before the
reset belongs to the previous day's puzzle.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import tzinfo

    from shared.dal.models import Game

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Naive timestamps and bare dates are read as UTC. Raises ValueError when
    the value is not ISO-8601.
    """
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def reset_zone(game: Game, tz: tzinfo | None = None) -> tzinfo:
    """Timezone the game's reset boundary is evaluated in."""
    if game.is_asynchronous and tz is not None:
        return tz
    return UTC


def puzzle_day(instant: datetime, game: Game, tz: tzinfo | None = None) -> date:
    local = instant.astimezone(reset_zone(game, tz))
    if (local.hour, local.minute) < game.reset_hour_minute:
        return local.date() - timedelta(days=1)
    return local.date()


def last_reset_time(game: Game, now: datetime, tz: tzinfo | None = None) -> datetime:
    """The most recent reset at or before ``now``."""
    local_now = now.astimezone(reset_zone(game, tz))
    hour, minute = game.reset_hour_minute
    reset = local_now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if reset > local_now:
        reset -= timedelta(days=1)
    return reset


def time_until_reset(game: Game, now: datetime, tz: tzinfo | None = None) -> timedelta:
    next_reset = last_reset_time(game, now, tz) + timedelta(days=1)
    return next_reset.astimezone(UTC) - now.astimezone(UTC)


def format_time_until_reset(game: Game, now: datetime, tz: tzinfo | None = None) -> str:
    """Render the wait until the next reset as ``H:MM``."""
    total_minutes = int(time_until_reset(game, now, tz).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}:{minutes:02d}"


def is_current_puzzle(created_at: str, game: Game, now: datetime, tz: tzinfo | None = None) -> bool:
    """Whether a record timestamp falls in the puzzle period that is open at ``now``.

    A bare date counts as current when it equals today's UTC date.
    """
    if _DATE_ONLY_RE.match(created_at.strip()):
        return created_at.strip() == now.astimezone(UTC).date().isoformat()
    return parse_timestamp(created_at) >= last_reset_time(game, now, tz)
