"""Abstract interface for game record persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from datetime import datetime

    from shared.dal.models import GameRecord, RawRecordRow

# Ceiling on distinct game ids scanned by an all-games leaderboard.
MAX_DISTINCT_GAMES = 1000


class RecordRepository(ABC):
    """Records are replaced whole by ``record_id``; there is no partial update."""

    @abstractmethod
    async def get_record(self, record_id: str) -> GameRecord | None: ...

    @abstractmethod
    async def list_records(self, user_id: str, game_id: str | None = None) -> list[GameRecord]:
        """Return a user's records ordered by created_at ascending."""

    @abstractmethod
    async def save_record(self, record: GameRecord) -> None: ...

    @abstractmethod
    async def save_records(self, records: Sequence[GameRecord]) -> None:
        """Upsert records one at a time.

        Not atomic: raises PartialSaveError naming the saved and unsaved ids
        when a write fails part-way through the batch.
        """

    @abstractmethod
    async def delete_record(self, record_id: str, user_id: str) -> bool: ...

    @abstractmethod
    async def clear_user_records(self, user_id: str) -> int: ...

    @abstractmethod
    async def query_rows(
        self,
        game_id: str,
        since: datetime | None = None,
        user_ids: Collection[str] | None = None,
    ) -> list[RawRecordRow]:
        """Return a game's records joined to owner display identity, oldest first."""

    @abstractmethod
    async def list_game_ids(self, since: datetime | None = None, limit: int = MAX_DISTINCT_GAMES) -> list[str]: ...
