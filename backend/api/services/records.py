"""Record submission: share text in, one upserted record per user, game and puzzle day."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, Field

from shared.dal.models import GameRecord, RawScoreMap, RecordMetadata, ShareTextEntry
from shared.errors import NotFoundError, ValidationError
from tracker.fanout import gather_settled
from tracker.puzzle_day import is_current_puzzle
from tracker.scores import MULTI_SUBTASK_KEY, SUMMARY_ENTRY_NAME, combine_failed, prune_scores, reduce_scores
from tracker.share_text import FAILED_ATTEMPTS, has_grammar, parse_share_text
from tracker.summary import scores_from_summary

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime, tzinfo

    from shared.dal.game_repository import GameRepository
    from shared.dal.models import Game, ScoreMap
    from shared.dal.record_repository import RecordRepository

logger = structlog.get_logger()


class SubmittedShareText(BaseModel, frozen=True):
    name: str = MULTI_SUBTASK_KEY
    share_text: str


class RecordSubmission(BaseModel, frozen=True):
    """Body of a record submission.

    Exactly one source of scores is used, in this order: ``summary_text``,
    ``share_texts``, then manually entered ``scores``. ``failed`` overrides
    what the share text says.
    """

    game_id: str = Field(min_length=1)
    share_texts: list[SubmittedShareText] = Field(default_factory=list)
    summary_text: str | None = None
    scores: RawScoreMap | None = None
    failed: bool | None = None


@dataclass
class DeleteResult:
    deleted: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class RecordService:
    def __init__(self, records: RecordRepository, games: GameRepository) -> None:
        self._records = records
        self._games = games

    async def _require_game(self, game_id: str) -> Game:
        game = await self._games.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Unknown game '{game_id}'")
        return game

    async def submit(self, user_id: str, submission: RecordSubmission, now: datetime, tz: tzinfo) -> GameRecord:
        """Score the submission and store it as the user's record for the open puzzle period.

        A second submission in the same period replaces the first one's
        scores and share texts but keeps its id and ``created_at``.
        """
        game = await self._require_game(submission.game_id)
        scores, entries, failed = self._score(game, submission)
        _check_puzzle_keys(game, scores)
        if not game.is_failable:
            failed = False

        metadata = RecordMetadata(
            share_texts=entries,
            has_invalid_share_text=any(entry.scores is None for entry in entries),
        )
        current = await self.current_record(user_id, game, now, tz)
        if current is None:
            record = GameRecord(
                game_id=game.game_id,
                user_id=user_id,
                failed=failed,
                scores=scores,
                metadata=metadata,
                created_at=now.isoformat(),
            )
        else:
            record = current.model_copy(
                update={
                    "failed": failed,
                    "scores": scores,
                    "metadata": metadata,
                    "updated_at": now.isoformat(),
                },
            )
        await self._records.save_record(record)
        logger.info(
            "record saved",
            record_id=record.record_id,
            game_id=game.game_id,
            user_id=user_id,
            replaced=current is not None,
        )
        return record

    def _score(
        self,
        game: Game,
        submission: RecordSubmission,
    ) -> tuple[ScoreMap | None, list[ShareTextEntry], bool]:
        if submission.summary_text and submission.summary_text.strip():
            text = submission.summary_text.strip()
            scores = scores_from_summary(game.display_name, text)
            failed = any(fields.get("attempts") == FAILED_ATTEMPTS for fields in scores.values())
            entry = ShareTextEntry(name=SUMMARY_ENTRY_NAME, failed=failed, share_text=text, scores=scores)
            return scores, [entry], failed if submission.failed is None else submission.failed

        if submission.share_texts:
            expected = game.display_name if has_grammar(game.display_name) else None
            entries = []
            for submitted in submission.share_texts:
                parsed = parse_share_text(submitted.share_text, expected)
                if parsed is not None:
                    entries.append(parsed.to_entry(submitted.name, submitted.share_text.strip()))
            if not entries:
                raise ValidationError("Share text is empty", field="share_texts")
            failed = combine_failed(entries)
            return reduce_scores(entries), entries, failed if submission.failed is None else submission.failed

        if submission.scores:
            return prune_scores(submission.scores), [], bool(submission.failed)

        raise ValidationError("Provide share text, summary text or scores", field="share_texts")

    async def current_record(self, user_id: str, game: Game, now: datetime, tz: tzinfo) -> GameRecord | None:
        """The user's record for the puzzle period open at ``now``, if any."""
        for record in reversed(await self._records.list_records(user_id, game.game_id)):
            if _is_current(record, game, now, tz):
                return record
        return None

    async def todays_records(self, user_id: str, now: datetime, tz: tzinfo) -> list[GameRecord]:
        games = {game.game_id: game for game in await self._games.list_games()}
        return [
            record
            for record in await self._records.list_records(user_id)
            if record.game_id in games and _is_current(record, games[record.game_id], now, tz)
        ]

    async def game_history(self, user_id: str, game_id: str) -> tuple[Game, list[GameRecord]]:
        game = await self._require_game(game_id)
        return game, await self._records.list_records(user_id, game_id)

    async def delete_records(self, user_id: str, record_ids: Sequence[str]) -> DeleteResult:
        """Delete several of the user's records concurrently; one failure does not stop the rest."""
        outcome = await gather_settled(
            {record_id: self._records.delete_record(record_id, user_id) for record_id in dict.fromkeys(record_ids)},
        )
        result = DeleteResult(failed=list(outcome.failures))
        for record_id, deleted in outcome.results.items():
            (result.deleted if deleted else result.not_found).append(record_id)
        for record_id, exc in outcome.failures.items():
            logger.warning("record delete failed", record_id=record_id, user_id=user_id, error=str(exc))
        return result


def _is_current(record: GameRecord, game: Game, now: datetime, tz: tzinfo) -> bool:
    try:
        return is_current_puzzle(record.created_at, game, now, tz)
    except ValueError:
        logger.warning("record has unreadable created_at", record_id=record.record_id, created_at=record.created_at)
        return False


def _check_puzzle_keys(game: Game, scores: ScoreMap | None) -> None:
    if not scores or not game.score_types:
        return
    unknown = sorted(set(scores) - set(game.score_types))
    if unknown:
        msg = f"{game.display_name} does not track {', '.join(unknown)}"
        raise ValidationError(msg, field="scores")
