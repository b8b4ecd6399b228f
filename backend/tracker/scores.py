"""Score map pruning and the per-record score reducer.

A canonical score map never stores vacuous structure: fields whose value is
absent are dropped, puzzle keys left without fields are dropped, and a map
with no puzzle keys left is ``None`` rather than ``{}``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from shared.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from shared.dal.models import ScoreMap, ShareTextEntry

SUMMARY_ENTRY_NAME = "SUMMARY"

# Multi-subtask games (one share text per subtask) report every subtask under
# this generic key; the reducer re-keys them by position.
MULTI_SUBTASK_KEY = "puzzle1"


def synthesized_puzzle_key(position: int) -> str:
    """Puzzle key for the subtask at 1-based ``position``."""
    return f"puzzle{position}"


def prune_fields(fields: Mapping[str, Any] | None) -> dict[str, Any]:
    if not fields:
        return {}
    return {name: value for name, value in fields.items() if value is not None}


def prune_scores(scores: Mapping[str, Mapping[str, Any] | None] | None) -> ScoreMap | None:
    if not scores:
        return None
    pruned = {}
    for puzzle_key, fields in scores.items():
        kept = prune_fields(fields)
        if kept:
            pruned[puzzle_key] = kept
    return pruned or None


def reduce_scores(share_texts: Sequence[ShareTextEntry]) -> ScoreMap | None:
    """Reduce one day's parsed entries into the record's canonical score map.

    A single entry contributes its own keys. With several entries, an entry
    reporting ``puzzle1`` is re-keyed to ``puzzle{N}`` by its position and any
    other entry merges its native keys. Summary entries are rejected: recap
    text is scored by ``tracker.summary.scores_from_summary`` instead.
    """
    if any(entry.name == SUMMARY_ENTRY_NAME for entry in share_texts):
        raise ValidationError("Summary share text cannot be reduced per entry", field="share_texts")

    if not share_texts:
        return None
    if len(share_texts) == 1:
        return prune_scores(share_texts[0].scores)

    merged: ScoreMap = {}
    for position, entry in enumerate(share_texts, start=1):
        if not entry.scores:
            continue
        if MULTI_SUBTASK_KEY in entry.scores:
            fields = prune_fields(entry.scores[MULTI_SUBTASK_KEY])
            if fields:
                merged[synthesized_puzzle_key(position)] = fields
        else:
            merged.update(prune_scores(entry.scores) or {})
    return merged or None


def combine_failed(share_texts: Sequence[ShareTextEntry]) -> bool:
    """A multi-entry day is failed when any entry failed; a single entry decides alone."""
    entries = [entry for entry in share_texts if entry.name != SUMMARY_ENTRY_NAME]
    if not entries:
        return False
    if len(entries) == 1:
        return entries[0].failed
    return any(entry.failed for entry in entries)
