"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.game_repository import GameRepository
from shared.dal.models import (
    SUMMARY_ENTRY_NAME,
    FollowEntry,
    Game,
    GameRecord,
    RawRecordRow,
    RecordMetadata,
    ShareTextEntry,
    UserProfile,
)
from shared.dal.record_repository import RecordRepository
from shared.dal.social_repository import SocialRepository
from shared.dal.user_repository import UserRepository

__all__ = [
    "SUMMARY_ENTRY_NAME",
    "FollowEntry",
    "Game",
    "GameRecord",
    "GameRepository",
    "RawRecordRow",
    "RecordMetadata",
    "RecordRepository",
    "ShareTextEntry",
    "SocialRepository",
    "UserProfile",
    "UserRepository",
]
