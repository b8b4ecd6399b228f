"""Tracker API server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list
from tracker.leaderboard import RANKING_CEILING
from tracker.rate_limit import DEFAULT_MAX_ATTEMPTS, DEFAULT_WINDOW_SECONDS

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class ApiServerSettings(BaseSettings):
    model_config = {"env_prefix": "TRACKER_"}

    log_dir: str = "backend/logs/api"
    cors_origins: list[str] = []
    trusted_proxies: list[str] = []  # peers whose X-Forwarded-For is honoured
    database_path: str = "backend/storage.db"
    games_file: str | None = None  # JSON array of games seeded into an empty catalog
    rate_limit_max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    rate_limit_window_seconds: float = Field(default=DEFAULT_WINDOW_SECONDS, gt=0)
    leaderboard_ranking_ceiling: int = Field(default=RANKING_CEILING, ge=1)

    @field_validator("cors_origins", "trusted_proxies", mode="before")
    @classmethod
    def validate_string_lists(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)
