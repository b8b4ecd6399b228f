import pytest

from shared.dal.models import ShareTextEntry
from shared.errors import ValidationError
from tracker.scores import SUMMARY_ENTRY_NAME, combine_failed, prune_scores, reduce_scores


def _entry(scores, *, name="puzzle1", failed=False):
    return ShareTextEntry(name=name, failed=failed, scores=scores)


class TestPruneScores:
    def test_drops_absent_fields_and_empty_keys(self):
        scores = {"puzzle1": {"attempts": 3, "time": None}, "puzzle2": {"time": None}, "puzzle3": None}
        assert prune_scores(scores) == {"puzzle1": {"attempts": 3}}

    def test_nothing_left_is_none(self):
        assert prune_scores({"puzzle1": {}}) is None
        assert prune_scores({}) is None
        assert prune_scores(None) is None

    def test_zero_is_kept(self):
        assert prune_scores({"puzzle1": {"attempts": 0}}) == {"puzzle1": {"attempts": 0}}


class TestReduceScores:
    def test_single_entry_keeps_its_keys(self):
        assert reduce_scores([_entry({"classic": {"attempts": 4}})]) == {"classic": {"attempts": 4}}

    def test_multiple_generic_entries_are_rekeyed_by_position(self):
        entries = [
            _entry({"puzzle1": {"attempts": 3}}),
            _entry({"puzzle1": {"attempts": 5}}),
        ]
        assert reduce_scores(entries) == {"puzzle1": {"attempts": 3}, "puzzle2": {"attempts": 5}}

    def test_native_keys_merge(self):
        entries = [
            _entry({"puzzle1": {"attempts": 3}}),
            _entry({"round": {"percentage": 80}}),
        ]
        assert reduce_scores(entries) == {"puzzle1": {"attempts": 3}, "round": {"percentage": 80}}

    def test_unparsed_entry_keeps_its_position(self):
        entries = [
            _entry({"puzzle1": {"attempts": 3}}),
            _entry(None),
            _entry({"puzzle1": {"attempts": 2}}),
        ]
        assert reduce_scores(entries) == {"puzzle1": {"attempts": 3}, "puzzle3": {"attempts": 2}}

    def test_empty(self):
        assert reduce_scores([]) is None
        assert reduce_scores([_entry(None), _entry(None)]) is None

    def test_single_entry_with_only_empty_fields_is_none(self):
        assert reduce_scores([_entry({"puzzle1": {}})]) is None

    def test_empty_second_entry_contributes_nothing(self):
        entries = [_entry({"puzzle1": {"attempts": 2}}), _entry({"puzzle1": {}})]
        assert reduce_scores(entries) == {"puzzle1": {"attempts": 2}}

    def test_all_entries_empty_is_none(self):
        assert reduce_scores([_entry({"puzzle1": {}}), _entry({"puzzle1": {}})]) is None

    def test_summary_entry_rejected(self):
        with pytest.raises(ValidationError):
            reduce_scores([_entry({"classic": {"attempts": 1}}, name=SUMMARY_ENTRY_NAME)])


class TestCombineFailed:
    def test_single_entry_decides(self):
        assert combine_failed([_entry(None, failed=True)])
        assert not combine_failed([_entry(None)])

    def test_any_failed_entry_fails_the_day(self):
        assert combine_failed([_entry(None), _entry(None, failed=True)])

    def test_summary_entries_are_ignored(self):
        assert not combine_failed([_entry(None, name=SUMMARY_ENTRY_NAME, failed=True)])
