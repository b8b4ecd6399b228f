"""Parsers for recap text that reports every mode of a multi-mode game at once.

A summary yields one puzzle key per mode (lowercase mode name) holding
``{"attempts": n}``. An unsolved Gamedle mode reports ``FAILED_ATTEMPTS``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from shared.errors import ShareTextError
from tracker.share_text import GREEN, RED, WHITE, gamedle_attempts

if TYPE_CHECKING:
    from collections.abc import Callable

    from shared.dal.models import ScoreMap


@dataclass
class SummaryResult:
    game_name: str
    puzzle_number: str | None = None
    # mode puzzle key -> attempts
    modes: dict[str, int] = field(default_factory=dict)
    # mode puzzle key -> that mode's own puzzle number, when modes are numbered separately
    puzzle_numbers: dict[str, str] = field(default_factory=dict)

    def to_scores(self) -> ScoreMap | None:
        return {mode: {"attempts": attempts} for mode, attempts in self.modes.items()} or None


def _parse_mode_lines(text: str, game_name: str, header: str, modes: tuple[str, ...]) -> SummaryResult | None:
    found = re.search(header, text, re.IGNORECASE)
    if found is None:
        return None
    result = SummaryResult(game_name=game_name, puzzle_number=found.group(1))
    mode_re = re.compile(rf"\b({'|'.join(modes)}):\s*(\d+)", re.IGNORECASE)
    for line in text.splitlines():
        for mode, attempts in mode_re.findall(line):
            result.modes[mode.lower()] = int(attempts)
    return result


def parse_loldle(text: str) -> SummaryResult | None:
    return _parse_mode_lines(
        text, "LoLdle", r"#LoLdle\s+#([\d,]+)", ("Classic", "Quote", "Ability", "Emoji", "Splash")
    )


def parse_pokedle(text: str) -> SummaryResult | None:
    return _parse_mode_lines(
        text, "Pokedle", r"#Pokedle\s+#([\d,]+)", ("Classic", "Card", "Description", "Silhouette")
    )


_GAMEDLE_MODE_RE = re.compile(
    rf"\((Cover art|Artwork|Character|Keywords|Guess)\)\s+#([\d,]+):\s*([{RED}{GREEN}{WHITE}]+)",
    re.IGNORECASE,
)


def parse_gamedle(text: str) -> SummaryResult | None:
    """Gamedle recap: a bare "Gamedle" line, then one numbered line per mode."""
    if not re.search(r"^Gamedle\s*$", text, re.MULTILINE | re.IGNORECASE):
        return None
    result = SummaryResult(game_name="Gamedle")
    for mode, puzzle_number, squares in _GAMEDLE_MODE_RE.findall(text):
        key = mode.lower()
        result.modes[key] = gamedle_attempts(squares)
        result.puzzle_numbers[key] = puzzle_number
        if result.puzzle_number is None:
            result.puzzle_number = puzzle_number
    return result


_SUMMARY_PARSERS: dict[str, Callable[[str], SummaryResult | None]] = {
    "loldle": parse_loldle,
    "pokedle": parse_pokedle,
    "gamedle": parse_gamedle,
}


def has_summary_format(game_name: str) -> bool:
    return game_name.strip().lower() in _SUMMARY_PARSERS


def parse_summary(game_name: str, text: str) -> SummaryResult | None:
    """Parse recap text for ``game_name``; None when the text is blank or not a recap."""
    parser = _SUMMARY_PARSERS.get(game_name.strip().lower())
    if parser is None or not text or not text.strip():
        return None
    return parser(text)


def scores_from_summary(game_name: str, text: str) -> ScoreMap:
    """Score map for a recap, raising ShareTextError when nothing can be read from it."""
    if not has_summary_format(game_name):
        raise ShareTextError(f"{game_name} does not support summary share text")
    result = parse_summary(game_name, text)
    scores = result.to_scores() if result else None
    if not scores:
        raise ShareTextError(f"Incorrect summary text for {game_name}. No mode results found.")
    return scores
