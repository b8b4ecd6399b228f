import pytest

from shared.dal.models import DistributionRange
from shared.errors import ValidationError
from tracker.stats import FAILED_BUCKET, bucket_label, compute_game_stats, compute_stats, resolve_score_field
from tracker.tests.conftest import create_game, create_record, utc


class TestBucketLabel:
    def test_ranges(self):
        boundaries = [0, 30, 60]
        assert bucket_label(10, boundaries) == "0-30"
        assert bucket_label(30, boundaries) == "30-60"
        assert bucket_label(60, boundaries) == "60+"
        assert bucket_label(-5, boundaries) == "-5"

    def test_integral_floats_print_as_ints(self):
        assert bucket_label(12.0, [0.0, 15.0]) == "0-15"


class TestResolveScoreField:
    def test_single_field_game(self):
        assert resolve_score_field(create_game(), []) == ("puzzle1", "attempts")

    def test_named_field(self):
        game = create_game(score_types={"puzzle1": {"attempts": 6, "time": -1}})
        assert resolve_score_field(game, [], "time") == ("puzzle1", "time")

    def test_several_fields_need_a_choice(self):
        game = create_game(score_types={"puzzle1": {"attempts": 6, "time": -1}})
        with pytest.raises(ValidationError, match="choose one"):
            resolve_score_field(game, [])

    def test_unknown_field(self):
        with pytest.raises(ValidationError, match="no score field"):
            resolve_score_field(create_game(), [], "time")

    def test_falls_back_to_first_scored_record(self):
        game = create_game(score_types={})
        records = [create_record("2024-03-01"), create_record("2024-03-02", attempts=4)]
        assert resolve_score_field(game, records) == ("puzzle1", "attempts")

    def test_nothing_scored(self):
        assert resolve_score_field(create_game(score_types={}), [create_record("2024-03-01")]) is None


class TestComputeStats:
    def test_totals_average_and_distribution(self):
        records = [
            create_record("2024-03-01T10:00:00+00:00", attempts=3),
            create_record("2024-03-02T10:00:00+00:00", attempts=4),
            create_record("2024-03-03T10:00:00+00:00", attempts=4),
            create_record("2024-03-04T10:00:00+00:00", attempts=-1, failed=True),
        ]
        stats = compute_stats(records, create_game())
        assert stats.total_played == 4
        assert stats.total_won == 3
        assert stats.total_failed == 1
        assert stats.average_score == 3.67
        assert stats.score_distribution == {"3": 1, "4": 2, FAILED_BUCKET: 1}
        assert stats.last_played_date.isoformat() == "2024-03-04"

    def test_buckets_from_range_config(self):
        game = create_game(
            score_types={"puzzle1": {"time": -1}},
            score_distribution_config={"time": DistributionRange(start=0, end=60, interval=30)},
        )
        records = [
            create_record("2024-03-01", scores={"puzzle1": {"time": 12}}),
            create_record("2024-03-02", scores={"puzzle1": {"time": 45}}),
            create_record("2024-03-03", scores={"puzzle1": {"time": 75}}),
        ]
        assert compute_stats(records, game).score_distribution == {"0-30": 1, "30-60": 1, "60+": 1}

    def test_string_scores_are_counted_not_averaged(self):
        game = create_game(score_types={"puzzle1": {"grade": -1}})
        records = [
            create_record("2024-03-01", scores={"puzzle1": {"grade": "A"}}),
            create_record("2024-03-02", scores={"puzzle1": {"grade": "A"}}),
        ]
        stats = compute_stats(records, game)
        assert stats.average_score == 0
        assert stats.score_distribution == {"A": 2}

    def test_records_without_score_are_skipped(self):
        records = [create_record("2024-03-01"), create_record("2024-03-02", attempts=2)]
        stats = compute_stats(records, create_game())
        assert stats.total_played == 2
        assert stats.average_score == 2
        assert stats.score_distribution == {"2": 1}

    def test_unreadable_timestamps_are_reported(self):
        records = [create_record("2024-03-01", attempts=2), create_record("bogus", attempts=3, record_id="bad")]
        stats = compute_stats(records, create_game())
        assert stats.total_played == 2
        assert [issue.record_id for issue in stats.issues] == ["bad"]


class TestComputeGameStats:
    def test_lapsed_streak_shows_zero_but_keeps_best(self):
        records = [create_record(f"2024-03-0{day}T10:00:00+00:00", attempts=3) for day in (1, 2, 3)]
        result = compute_game_stats(records, create_game(), utc(2024, 3, 9))
        assert result.streaks.playstreak == 0
        assert result.streaks.winstreak == 0
        assert result.streaks.max_winstreak == 3
        assert result.win_rate == 100

    def test_streak_alive_yesterday(self):
        records = [create_record(f"2024-03-0{day}T10:00:00+00:00", attempts=3) for day in (1, 2, 3)]
        result = compute_game_stats(records, create_game(), utc(2024, 3, 4))
        assert result.streaks.playstreak == 3
        assert result.streaks.streak_at_risk

    def test_win_rate(self):
        records = [
            create_record("2024-03-01", attempts=3),
            create_record("2024-03-02", attempts=-1, failed=True),
            create_record("2024-03-03", failed=True),
        ]
        assert compute_game_stats(records, create_game(), utc(2024, 3, 3)).win_rate == 33.33
