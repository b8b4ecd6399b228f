"""Shared fixtures for tracker API tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from shared.auth.models import Identity
from shared.auth.provider import IdentityProvider
from shared.dal.models import Game, UserProfile
from shared.db import (
    Database,
    SqliteGameRepository,
    SqliteRecordRepository,
    SqliteSocialRepository,
    SqliteUserRepository,
)
from shared.errors import BackendError

if TYPE_CHECKING:
    from collections.abc import Iterator

WORDLE = Game(game_id="wordle", display_name="Wordle", score_types={"puzzle1": {"attempts": 6}})
ANGLE = Game(game_id="angle", display_name="Angle", score_types={"puzzle1": {"attempts": 4}})
LOLDLE = Game(
    game_id="loldle",
    display_name="LoLdle",
    score_types={mode: {"attempts": -1} for mode in ("classic", "quote", "ability", "emoji", "splash")},
    is_failable=False,
)
TIMINGLE = Game(game_id="timingle", display_name="Timingle", score_types={"puzzle1": {"time": -1}})
CATALOGUE = (WORDLE, ANGLE, LOLDLE, TIMINGLE)


class FakeIdentityProvider(IdentityProvider):
    """Maps known tokens to identities; ``down`` simulates an unreachable provider."""

    def __init__(self, identities: dict[str, Identity] | None = None) -> None:
        self.identities = dict(identities or {})
        self.down = False

    async def get_user(self, token: str) -> Identity | None:
        if self.down:
            raise BackendError("Identity provider unavailable")
        return self.identities.get(token)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db() -> Iterator[Database]:
    db = Database(":memory:")
    db.connect()
    yield db
    db.close()


@pytest.fixture
def games(db: Database) -> SqliteGameRepository:
    return SqliteGameRepository(db)


@pytest.fixture
def records(db: Database) -> SqliteRecordRepository:
    return SqliteRecordRepository(db)


@pytest.fixture
def users(db: Database) -> SqliteUserRepository:
    return SqliteUserRepository(db)


@pytest.fixture
def social(db: Database) -> SqliteSocialRepository:
    return SqliteSocialRepository(db)


@pytest.fixture
async def catalogue(games: SqliteGameRepository) -> SqliteGameRepository:
    await games.save_games(CATALOGUE)
    return games


async def register(users: SqliteUserRepository, user_id: str, *, guest: bool = False, name: str | None = None) -> None:
    email = None if guest else f"{user_id}@example.com"
    await users.save_user(UserProfile(user_id=user_id, display_name=name, email=email))
