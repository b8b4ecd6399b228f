"""Parse pasted daily-puzzle share text into structured scores.

Each supported game registers a grammar: a header pattern used for detection
and a parser that turns the full text into a ``ParsedShareText``. Text that no
grammar recognizes goes through a generic "<name> <number> <n|X>/<max>" parser
that can also infer a result from a trailing emoji grid.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, NamedTuple

import structlog

from shared.dal.models import ShareTextEntry
from shared.errors import ShareTextError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from shared.dal.models import RawScoreMap

logger = structlog.get_logger()

FAILED_ATTEMPTS = -1
PUZZLE_KEY = "puzzle1"
STRING_SCORE_FIELDS = frozenset({"grade"})

GREEN = "\U0001f7e9"
YELLOW = "\U0001f7e8"
RED = "\U0001f7e5"
BLUE = "\U0001f7e6"
PURPLE = "\U0001f7ea"
ORANGE = "\U0001f7e7"
BROWN = "\U0001f7eb"
BLACK = "\u2b1b"
WHITE = "\u2b1c"
CHECK = "\u2705"
CROSS = "\u274c"
STAR = "\u2b50"
PARTY = "\U0001f389"
GREEN_CIRCLE = "\U0001f7e2"

WORDLE_TILES = BLACK + WHITE + YELLOW + GREEN
CONNECTIONS_TILES = frozenset({BLUE, GREEN, YELLOW, PURPLE})
ARROWS = "\u2b06\u2b07\u2b05\u27a1\u2197\u2198\u2199\u2196"
WORLDLE_TILES = ARROWS + "\ufe0f" + GREEN + YELLOW + RED + WHITE + PARTY
KEYCAP = "\u20e3"
GENERIC_TILES = WORDLE_TILES + BLUE + ORANGE + RED + PURPLE + BROWN + STAR + CHECK + CROSS
GENERIC_SOLVED = (GREEN, CHECK, GREEN_CIRCLE)

_KEYCAP_RE = re.compile(r"([1-9])\ufe0f?\u20e3")


@dataclass
class ParsedShareText:
    """What one share text says about one puzzle."""

    game_name: str | None = None
    failed: bool = False
    scores: RawScoreMap | None = None
    grid: str | None = None
    puzzle_number: str | None = None
    max_attempts: int | None = None
    percentage: float | None = None
    grade: str | None = None
    guess_count: int | None = None
    max_guess_number: int | None = None
    uniqueness: int | None = None
    max_uniqueness: int | None = None
    warnings: list[str] = field(default_factory=list)

    def to_entry(self, name: str, share_text: str | None = None) -> ShareTextEntry:
        return ShareTextEntry(
            name=name,
            failed=self.failed,
            share_text=share_text,
            scores=self.scores,
            grid=self.grid,
            puzzle_number=self.puzzle_number,
            max_attempts=self.max_attempts,
            percentage=self.percentage,
            grade=self.grade,
            guess_count=self.guess_count,
            max_guess_number=self.max_guess_number,
            uniqueness=self.uniqueness,
            max_uniqueness=self.max_uniqueness,
        )


class Grammar(NamedTuple):
    name: str
    detect: re.Pattern[str]
    parse: Callable[[str, list[str]], ParsedShareText]


# Insertion order is detection order.
_GRAMMARS: dict[str, Grammar] = {}


def grammar(name: str, detect: str) -> Callable[
    [Callable[[str, list[str]], ParsedShareText]],
    Callable[[str, list[str]], ParsedShareText],
]:
    """Register a game's parser under ``name`` with its detection pattern."""

    def register(func: Callable[[str, list[str]], ParsedShareText]) -> Callable[[str, list[str]], ParsedShareText]:
        _GRAMMARS[name.lower()] = Grammar(name, re.compile(detect, re.IGNORECASE), func)
        return func

    return register


def supported_games() -> list[str]:
    return [g.name for g in _GRAMMARS.values()]


def has_grammar(game_name: str) -> bool:
    return game_name.strip().lower() in _GRAMMARS


def detect_game(text: str) -> Grammar | None:
    for candidate in _GRAMMARS.values():
        if candidate.detect.search(text):
            return candidate
    return None


def _require(pattern: str, text: str, game: str, example: str, flags: int = re.IGNORECASE) -> re.Match[str]:
    match = re.search(pattern, text, flags)
    if match is None:
        raise ShareTextError(f"Incorrect share text for {game}. Expected format: {example}")
    return match


def _grid(lines: Iterable[str], tiles: Iterable[str], skip: re.Pattern[str] | None = None) -> str | None:
    tile_set = set(tiles)
    kept = [line for line in lines if not (skip and skip.search(line)) and any(ch in tile_set for ch in line)]
    return "\n".join(kept) if kept else None


def _is_emoji_line(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and all(
        ch.isspace() or unicodedata.category(ch) in ("So", "Sk", "Mn", "Cf", "Me") for ch in stripped
    )


def _attempts_result(
    game_name: str | None,
    puzzle_number: str | None,
    score: str,
    max_attempts: str,
) -> ParsedShareText:
    """Result for the common "<n|X>/<max>" score, where X is a failure."""
    result = ParsedShareText(game_name=game_name, puzzle_number=puzzle_number)
    result.max_attempts = int(max_attempts)
    if score.upper() == "X":
        result.failed = True
        result.scores = {PUZZLE_KEY: {"attempts": FAILED_ATTEMPTS}}
    else:
        result.scores = {PUZZLE_KEY: {"attempts": int(score)}}
    return result


@grammar("Wantedle", r"WANTEDLE\s+#[\d,]+")
def parse_wantedle(text: str, lines: list[str]) -> ParsedShareText:
    header = _require(r"WANTEDLE\s+#([\d,]+)", text, "Wantedle", '"WANTEDLE #123 - Difficulty" then "A - 12.3s"')
    score = _require(r"\b([SABCDF])\s*-\s*([\d.]+)s", text, "Wantedle", 'a score line such as "S - 9.4s"')
    grade = score.group(1).upper()
    emoji_lines = [line.strip() for line in lines if _is_emoji_line(line)]
    return ParsedShareText(
        game_name="Wantedle",
        puzzle_number=header.group(1),
        failed=grade in ("D", "F"),
        grade=grade,
        scores={PUZZLE_KEY: {"time": round(float(score.group(2)) * 1000), "grade": grade}},
        grid="\n".join(emoji_lines),
    )


@grammar("Chronophoto", r"Chronophoto")
def parse_chronophoto(text: str, lines: list[str]) -> ParsedShareText:
    _require(
        r"I got a score of (\d+) on today's Chronophoto",
        text,
        "Chronophoto",
        '"I got a score of N on today\'s Chronophoto"',
    )
    found = (re.search(rf"Round \d+: (\d+)([{CROSS}{CHECK}]?)", line) for line in lines)
    rounds = [match for match in found if match]
    total = sum(int(match.group(1)) for match in rounds)
    played_on = re.search(r"Chronophoto: (\d{1,2}/\d{1,2}/\d{4})", text)
    return ParsedShareText(
        game_name="Chronophoto",
        puzzle_number=played_on.group(1) if played_on else None,
        failed=total == 0,
        scores={PUZZLE_KEY: {"points": total}},
        grid="\n".join(match.group(1) + match.group(2) for match in rounds),
    )


@grammar("Angle", r"#Angle\s+#[\d,]+")
def parse_angle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(r"#Angle\s+#([\d,]+)\s+([X\d]+)/(\d+)", text, "Angle", '"#Angle #123 X/4" or "#Angle #123 2/4"')
    result = _attempts_result("Angle", *match.groups())
    result.grid = _grid(lines, ARROWS[:2] + PARTY)
    return result


GAMEDLE_MAX_ATTEMPTS = {"cover art": 6, "artwork": 6, "character": 4, "keywords": 6, "guess": 10}


def gamedle_attempts(squares: str) -> int:
    """1-based attempt of the first green square, or FAILED_ATTEMPTS when there is none."""
    green_at = squares.find(GREEN)
    if green_at == -1:
        return FAILED_ATTEMPTS
    return squares[:green_at].count(RED) + 1


@grammar("Gamedle", r"Gamedle\s+\((Cover art|Artwork|Character|Keywords|Guess)\):")
def parse_gamedle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(
        rf"Gamedle\s+\((Cover art|Artwork|Character|Keywords|Guess)\):\s+#([\d,]+)\s+([{RED}{GREEN}{WHITE}]+)",
        text,
        "Gamedle",
        '"Gamedle (Cover art): #123" followed by its squares',
    )
    mode, puzzle_number, squares = match.groups()
    attempts = gamedle_attempts(squares)
    return ParsedShareText(
        game_name="Gamedle",
        puzzle_number=puzzle_number,
        max_attempts=GAMEDLE_MAX_ATTEMPTS.get(mode.lower(), 6),
        failed=attempts == FAILED_ATTEMPTS,
        scores={PUZZLE_KEY: {"attempts": attempts}},
        grid=squares,
    )


@grammar("Scrandle", rf"[{GREEN}{RED}]+\s+\d+/10\s*\|\s*[\d-]+\s*\|\s*https://scrandle\.com")
def parse_scrandle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(
        rf"([{GREEN}{RED}]+)\s+(\d+)/10\s*\|\s*([\d-]+)\s*\|\s*https://scrandle\.com",
        text,
        "Scrandle",
        '"<squares> n/10 | YYYY-MM-DD | https://scrandle.com"',
    )
    squares, solved, played_on = match.groups()
    return ParsedShareText(
        game_name="Scrandle",
        puzzle_number=played_on,
        max_attempts=10,
        failed=int(solved) < 10,
        scores={PUZZLE_KEY: {"solved": int(solved)}},
        grid=squares,
    )


@grammar("Connections", r"Connections[\s\S]*?Puzzle #[\d,]+")
def parse_connections(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(r"Connections[\s\S]*?Puzzle #([\d,]+)", text, "Connections", '"Connections" then "Puzzle #123"')
    guesses = []
    for line in lines:
        tiles = [ch for ch in line if not ch.isspace()]
        if len(tiles) == 4 and all(ch in CONNECTIONS_TILES for ch in tiles):
            guesses.append((line.strip(), len(set(tiles)) == 1))
    solved = sum(1 for _, correct in guesses if correct)
    return ParsedShareText(
        game_name="Connections",
        puzzle_number=match.group(1),
        max_attempts=4,
        failed=solved < 4,
        scores={PUZZLE_KEY: {"solved": solved}},
        grid="\n".join(line for line, _ in guesses) or None,
    )


_QUORDLE_HEADER = re.compile(r"Daily Quordle\s+[\d,]+", re.IGNORECASE)


@grammar("Quordle", r"Daily Quordle\s+[\d,]+")
def parse_quordle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(r"Daily Quordle\s+([\d,]+)", text, "Quordle", '"Daily Quordle 123"')
    solved = words = max_guess = 0
    for line in lines:
        if _QUORDLE_HEADER.search(line):
            continue
        guesses = [int(digit) for digit in _KEYCAP_RE.findall(line)]
        if not guesses and RED not in line:
            continue
        solved += len(guesses)
        words += len(guesses) + line.count(RED)
        max_guess = max([max_guess, *guesses])
    all_solved = solved == 4
    return ParsedShareText(
        game_name="Quordle",
        puzzle_number=match.group(1),
        max_attempts=words,
        max_guess_number=max_guess,
        failed=not all_solved,
        scores={PUZZLE_KEY: {"solved": solved, "attempts": max_guess if all_solved else FAILED_ATTEMPTS}},
        grid=_grid(
            (line for line in lines if not _QUORDLE_HEADER.search(line)),
            KEYCAP + RED + BLACK + WHITE + YELLOW + GREEN,
        ),
    )


@grammar("Worldle", r"#Worldle\s+#[\d,]+")
def parse_worldle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(
        r"#Worldle\s+#([\d,]+)(?:\s+\([^)]+\))?\s+([X\d]+)/(\d+)(?:\s+\((\d+)%\))?",
        text,
        "Worldle",
        '"#Worldle #123 4/6 (100%)"',
    )
    puzzle_number, score, max_attempts, percent = match.groups()
    percentage = int(percent) if percent else None
    guess_count = None if score.upper() == "X" else int(score)
    failed = percentage != 100
    tiles = set(WORLDLE_TILES)
    grid = [
        line.strip()
        for line in lines
        if line.strip()
        and not re.match(r"#Worldle\s+#", line, re.IGNORECASE)
        and "streak" not in line.lower()
        and all(ch in tiles for ch in line.strip())
    ]
    return ParsedShareText(
        game_name="Worldle",
        puzzle_number=puzzle_number,
        max_attempts=int(max_attempts),
        percentage=percentage,
        guess_count=guess_count,
        failed=failed,
        scores={
            PUZZLE_KEY: {
                "accuracy": percentage or 0,
                "attempts": FAILED_ATTEMPTS if failed else (guess_count or FAILED_ATTEMPTS),
            }
        },
        grid="\n".join(grid) or None,
    )


@grammar("Nerdle", r"nerdlegame\s+[\d,]+")
def parse_nerdle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(r"nerdlegame\s+([\d,]+)\s+([X\d]+)/(\d+)", text, "Nerdle", '"nerdlegame 123 3/6"')
    result = _attempts_result("Nerdle", *match.groups())
    result.grid = _grid(lines, BLACK + WHITE + PURPLE + GREEN, skip=re.compile(r"^nerdlegame\s", re.IGNORECASE))
    return result


@grammar("Colorfle", r"Colorfle\s+[\d,]+")
def parse_colorfle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(r"Colorfle\s+([\d,]+)\s+([X\d]+)/(\d+)", text, "Colorfle", '"Colorfle 123 3/6"')
    puzzle_number, score, _ = match.groups()
    result = _attempts_result("Colorfle", puzzle_number, score, "6")
    accuracy = re.search(r"accuracy of\s*([\d.]+)%", text, re.IGNORECASE)
    result.scores[PUZZLE_KEY]["accuracy"] = float(accuracy.group(1)) if accuracy else 0
    result.grid = _grid(
        lines,
        BLACK + WHITE + YELLOW + GREEN + BLUE + ORANGE + RED + PURPLE + BROWN,
        skip=re.compile(r"^Colorfle\s+[\d,]+", re.IGNORECASE),
    )
    return result


@grammar("Timingle", r"Timingle\s+#[\d,]+")
def parse_timingle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(
        r"Timingle\s+#([\d,]+).*?([-+]?\d+\.?\d*)\s*seconds",
        text,
        "Timingle",
        '"Timingle #123" and a time in seconds',
        re.IGNORECASE | re.DOTALL,
    )
    return ParsedShareText(
        game_name="Timingle",
        puzzle_number=match.group(1),
        scores={PUZZLE_KEY: {"time": round(float(match.group(2)) * 1000)}},
        grid="",
    )


@grammar("Pokedoku", r"PokeDoku\s+Summary")
def parse_pokedoku(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(
        r"PokeDoku\s+Summary(?:.*?(\d{4}-\d{2}-\d{2}))?.*?Score:\s*(\d+)\s*/\s*(\d+)",
        text,
        "Pokedoku",
        '"PokeDoku Summary" with "Score: n/9"',
        re.IGNORECASE | re.DOTALL,
    )
    played_on, solved, max_score = match.groups()
    uniqueness = max_uniqueness = 0
    unique = re.search(r"Uniqueness:\s*(\d+)/(\d+)", text, re.IGNORECASE)
    if unique:
        uniqueness, max_uniqueness = int(unique.group(1)), int(unique.group(2))
    board = re.search(rf"((?:(?:{CHECK}|{RED})\s*)+(?:\n(?:(?:{CHECK}|{RED})\s*)+){{2}})", text)
    grid = None
    if board:
        grid = "\n".join(line.strip() for line in board.group(1).splitlines() if line.strip())
    return ParsedShareText(
        game_name="Pokedoku",
        puzzle_number=played_on,
        max_attempts=int(max_score),
        uniqueness=uniqueness if unique else None,
        max_uniqueness=max_uniqueness if unique else None,
        scores={PUZZLE_KEY: {"solved": int(solved), "uniqueness": uniqueness, "max_uniqueness": max_uniqueness}},
        grid=grid,
    )


@grammar("Bandle", r"Bandle\s+#[\d,]+")
def parse_bandle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(r"Bandle\s+#([\d,]+)\s+([X\d]+)/(\d+)", text, "Bandle", '"Bandle #123 4/6"')
    result = _attempts_result("Bandle", *match.groups())
    result.grid = _grid(lines, WORDLE_TILES + RED)
    return result


@grammar("Wordle", r"Wordle\s+[\d,]+")
def parse_wordle(text: str, lines: list[str]) -> ParsedShareText:
    match = _require(r"Wordle\s+([\d,]+)\s+([X\d]+)/(\d+)", text, "Wordle", '"Wordle 1,234 4/6"')
    result = _attempts_result("Wordle", *match.groups())
    result.grid = _grid(lines, WORDLE_TILES, skip=re.compile(r"^Wordle\s+[\d,]+\s+[X\d]+/\d+", re.IGNORECASE))
    return result


_GENERIC_FULL = re.compile(r"([\w\s]+?)\s+([\d,]+)\s+([X\d]+)/(\d+)", re.IGNORECASE)
_GENERIC_SCORE = re.compile(r"([X\d]+)/(\d+)", re.IGNORECASE)


def parse_generic(lines: list[str]) -> ParsedShareText:
    """Best effort for unknown games: a score line, else the shape of the emoji grid."""
    result = ParsedShareText()
    for line in lines:
        full = _GENERIC_FULL.search(line)
        if full:
            game_name, puzzle_number, score, max_attempts = full.groups()
            result = _attempts_result(game_name.strip(), puzzle_number, score, max_attempts)
            break
        simple = _GENERIC_SCORE.search(line)
        if simple:
            result = _attempts_result(None, None, *simple.groups())
            break

    tiles = set(GENERIC_TILES + GREEN_CIRCLE)
    grid = [
        line
        for line in lines
        if line.strip() and "http" not in line and ".com" not in line and any(ch in tiles for ch in line)
    ]
    if not grid:
        return result
    result.grid = "\n".join(grid)
    if result.scores is None:
        last = grid[-1]
        solved = any(tile in last for tile in GENERIC_SOLVED) and BLACK not in last and YELLOW not in last
        result.max_attempts = len(grid)
        result.failed = not solved
        result.scores = {PUZZLE_KEY: {"attempts": len(grid) if solved else FAILED_ATTEMPTS}}
    return result


def normalize(result: ParsedShareText) -> ParsedShareText:
    """Drop empty puzzle keys and flag score values that should be numeric."""
    if not result.scores:
        result.scores = None
        return result
    kept: RawScoreMap = {}
    for puzzle_key, fields in result.scores.items():
        if not fields:
            continue
        kept[puzzle_key] = fields
        for name, value in fields.items():
            if isinstance(value, str) and name not in STRING_SCORE_FIELDS:
                warning = f"Parsed non-numeric score value for '{name}' in '{puzzle_key}': {value!r}"
                if warning not in result.warnings:
                    result.warnings.append(warning)
    result.scores = kept or None
    return result


def parse_share_text(
    text: str,
    expected_game: str | None = None,
    *,
    today: date | None = None,
) -> ParsedShareText | None:
    """Parse one pasted share text.

    With ``expected_game`` only that game's grammar is tried and any mismatch
    or parse warning raises ``ShareTextError``. Without it the game is detected
    from the text. Returns None for blank text.
    """
    if not text or not text.strip():
        return None
    lines = text.strip().splitlines()

    if expected_game is not None:
        chosen = _GRAMMARS.get(expected_game.strip().lower())
        if chosen is None:
            raise ShareTextError(f"Incorrect share text for {expected_game}. Please check the format.")
        result = chosen.parse(text, lines)
    else:
        chosen = detect_game(text)
        result = chosen.parse(text, lines) if chosen else parse_generic(lines)

    if not result.puzzle_number:
        result.puzzle_number = (today or date.today()).isoformat()
    normalize(result)

    if result.warnings:
        logger.warning("share text parse warnings", game=result.game_name, warnings=result.warnings)
        if expected_game is not None:
            raise ShareTextError(f"Share text parse warnings for {expected_game}: {'; '.join(result.warnings)}")
    return result
