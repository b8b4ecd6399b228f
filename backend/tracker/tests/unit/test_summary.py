import pytest

from shared.errors import ShareTextError
from tracker.summary import has_summary_format, parse_summary, scores_from_summary

G = "\U0001f7e9"
R = "\U0001f7e5"
W = "\u2b1c"

LOLDLE_RECAP = """I've completed all the modes of #LoLdle #812 today:
\u2753 Classic: 4
\U0001f4ac Quote: 2
\U0001f525 Ability: 7 \u2b50
\U0001f3b5 Emoji: 1
\U0001f308 Splash: 3
Play at https://loldle.net/"""

GAMEDLE_RECAP = f"""Gamedle
(Cover art) #742: {R}{R}{G}{W}{W}{W}
(Artwork) #731: {G}{W}{W}{W}{W}{W}
(Character) #518: {R}{R}{R}{R}"""


class TestLoldle:
    def test_every_mode(self):
        result = parse_summary("LoLdle", LOLDLE_RECAP)
        assert result.puzzle_number == "812"
        assert result.modes == {"classic": 4, "quote": 2, "ability": 7, "emoji": 1, "splash": 3}

    def test_not_a_recap(self):
        assert parse_summary("LoLdle", "Classic: 4") is None


class TestPokedle:
    def test_partial_recap(self):
        result = parse_summary("Pokedle", "#Pokedle #301\nClassic: 5\nSilhouette: 2")
        assert result.to_scores() == {"classic": {"attempts": 5}, "silhouette": {"attempts": 2}}


class TestGamedle:
    def test_modes_and_their_numbers(self):
        result = parse_summary("Gamedle", GAMEDLE_RECAP)
        assert result.modes == {"cover art": 3, "artwork": 1, "character": -1}
        assert result.puzzle_numbers == {"cover art": "742", "artwork": "731", "character": "518"}
        assert result.puzzle_number == "742"

    def test_needs_bare_header_line(self):
        assert parse_summary("Gamedle", GAMEDLE_RECAP.replace("Gamedle\n", "")) is None


class TestScoresFromSummary:
    def test_scores(self):
        scores = scores_from_summary("loldle", LOLDLE_RECAP)
        assert scores["classic"] == {"attempts": 4}
        assert len(scores) == 5

    def test_unsupported_game(self):
        assert not has_summary_format("Wordle")
        with pytest.raises(ShareTextError, match="does not support summary"):
            scores_from_summary("Wordle", "Wordle 1,234 3/6")

    def test_recap_without_modes(self):
        with pytest.raises(ShareTextError, match="No mode results"):
            scores_from_summary("LoLdle", "#LoLdle #812\nnothing here")

    def test_blank(self):
        assert parse_summary("LoLdle", "  ") is None
        with pytest.raises(ShareTextError):
            scores_from_summary("LoLdle", "")
