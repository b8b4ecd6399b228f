"""Persistence models for the data access layer."""

import re
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from tracker.scores import SUMMARY_ENTRY_NAME, prune_scores

ScoreValue = int | float | str
# puzzle key -> score field -> value, e.g. {"puzzle1": {"attempts": 3}}
ScoreMap = dict[str, dict[str, ScoreValue]]
RawScoreMap = dict[str, dict[str, ScoreValue | None]]

UNBOUNDED_SCORE = -1  # score_types max meaning "no fixed maximum"

_RESET_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class DistributionRange(BaseModel, frozen=True):
    """Evenly spaced distribution buckets from ``start`` to ``end``."""

    start: float
    end: float
    interval: float = Field(gt=0)

    def boundaries(self) -> list[float]:
        steps = int((self.end - self.start) // self.interval)
        return [self.start + i * self.interval for i in range(steps + 1)]


class Game(BaseModel, frozen=True):
    """A tracked daily game and the rules that decide its puzzle day."""

    game_id: str
    display_name: str
    # puzzle key -> score field -> max value (UNBOUNDED_SCORE for no max)
    score_types: dict[str, dict[str, float]] = Field(default_factory=dict)
    is_failable: bool = True
    reset_time: str = "00:00"  # HH:MM
    is_asynchronous: bool = False  # reset in the viewer's timezone instead of UTC
    # score field -> ascending bucket boundaries, or an evenly spaced range
    score_distribution_config: dict[str, list[float] | DistributionRange] | None = None
    url: str = ""
    category: str = ""
    icon: str = ""
    description: str = ""

    @field_validator("reset_time")
    @classmethod
    def validate_reset_time(cls, v: str) -> str:
        if not _RESET_TIME_RE.match(v):
            raise ValueError(f"reset_time must be HH:MM, got {v!r}")
        return v

    @property
    def reset_hour_minute(self) -> tuple[int, int]:
        hour, minute = self.reset_time.split(":")
        return int(hour), int(minute)

    def primary_puzzle_fields(self) -> tuple[str, list[str]] | None:
        """Return the first puzzle key and its declared fields, if any."""
        if not self.score_types:
            return None
        puzzle_key = next(iter(self.score_types))
        return puzzle_key, list(self.score_types[puzzle_key])

    def distribution_boundaries(self, field: str) -> list[float] | None:
        if not self.score_distribution_config or field not in self.score_distribution_config:
            return None
        config = self.score_distribution_config[field]
        if isinstance(config, DistributionRange):
            return config.boundaries()
        return sorted(config)


class ShareTextEntry(BaseModel, frozen=True, extra="ignore"):
    """One pasted share text and what was parsed from it."""

    name: str  # puzzle key, or SUMMARY_ENTRY_NAME for a recap of every puzzle
    failed: bool = False
    share_text: str | None = None
    scores: RawScoreMap | None = None
    # Opaque pass-through metadata from the parser.
    grid: str | None = None
    puzzle_number: str | None = None
    max_attempts: int | None = None
    percentage: float | None = None
    grade: str | None = None
    guess_count: int | None = None
    max_guess_number: int | None = None
    uniqueness: int | None = None
    max_uniqueness: int | None = None


class RecordMetadata(BaseModel, frozen=True, extra="ignore"):
    share_texts: list[ShareTextEntry] = Field(default_factory=list)
    has_invalid_share_text: bool = False


class GameRecord(BaseModel, frozen=True, extra="ignore"):
    """One user's result for one game on one puzzle day.

    ``failed`` is the only win/loss authority. Unknown keys (such as the
    retired ``completed`` flag) are dropped on load and never written back.
    """

    record_id: str = Field(default_factory=lambda: str(uuid4()))
    game_id: str
    user_id: str
    failed: bool = False
    scores: ScoreMap | None = None
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)
    created_at: str  # ISO-8601 "played on" instant, kept verbatim
    updated_at: str | None = None

    @field_validator("scores", mode="before")
    @classmethod
    def prune_empty_scores(cls, v: object) -> object:
        if isinstance(v, dict):
            return prune_scores(v)
        return v


class UserProfile(BaseModel, frozen=True):
    user_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    email: str | None = None  # None for guest accounts

    @property
    def is_registered(self) -> bool:
        return bool(self.email)


class FollowEntry(BaseModel, frozen=True):
    """A user in someone's following/followers list."""

    id: str
    display_name: str | None = None
    avatar_url: str | None = None
    followers_count: int = 0
    followed_at: str


class RawRecordRow(BaseModel, frozen=True):
    """A record joined to its owner's display identity, as read for leaderboards."""

    record_id: str = ""
    user_id: str
    game_id: str
    scores: ScoreMap | None = None
    failed: bool = False
    created_at: str
    display_name: str | None = None
    avatar_url: str | None = None
