"""Abstract interface for game catalogue persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.dal.models import Game


class GameRepository(ABC):
    @abstractmethod
    async def get_game(self, game_id: str) -> Game | None: ...

    @abstractmethod
    async def list_games(self) -> list[Game]: ...

    @abstractmethod
    async def save_games(self, games: Sequence[Game]) -> None:
        """Upsert games by ``game_id``."""

    @abstractmethod
    async def delete_game(self, game_id: str) -> bool: ...
