from __future__ import annotations

import pytest

from capstone.errors import FavoriteLocked, InvalidInput, NoMoreCandidates, SourceUnavailable
from capstone.models import RecommendationItem
from capstone.recommendations import Favorites, RecommendationSet, merge_unique


def _item(pid: int) -> RecommendationItem:
    return RecommendationItem(project_id=pid, project_title=f"Project {pid}", score=0.5, reason="")


A, B, C, D, E, F = (_item(pid) for pid in range(1, 7))


class ScriptedSource:
    """Returns queued batches in order and records each call."""

    def __init__(self, *batches):
        self.batches = list(batches)
        self.calls: list[set] = []

    def fetch_candidates(self, student_id, exclude_ids, preferences):
        self.calls.append(set(exclude_ids))
        return list(self.batches.pop(0)) if self.batches else []


class FailingSource:
    def fetch_candidates(self, student_id, exclude_ids, preferences):
        raise SourceUnavailable("service down")


class CancellingSource:
    def __init__(self, rec_set, batch):
        self.rec_set = rec_set
        self.batch = batch

    def fetch_candidates(self, student_id, exclude_ids, preferences):
        self.rec_set.cancel()
        return list(self.batch)


def _loaded(initial, favorites=()) -> RecommendationSet:
    rec_set = RecommendationSet(42, Favorites(favorites))
    rec_set.initialize(ScriptedSource(initial))
    return rec_set


def test_initialize_is_one_shot():
    source = ScriptedSource([A, B, C, D], [E])
    rec_set = RecommendationSet(42, Favorites())
    assert rec_set.initialize(source) == [A, B, C]
    assert rec_set.initialize(source) == [A, B, C]
    assert len(source.calls) == 1
    assert rec_set.pool == [A, B, C, D]


def test_regenerate_before_initialize_is_rejected():
    rec_set = RecommendationSet(42, Favorites())
    with pytest.raises(InvalidInput):
        rec_set.regenerate_all(ScriptedSource([D]))


def test_regenerate_one_replaces_position_and_excludes_displayed():
    rec_set = _loaded([A, B, C])
    source = ScriptedSource([D, E])
    assert rec_set.regenerate_one(1, source) == [A, D, C]
    assert source.calls == [{1, 2, 3}]


def test_regenerate_one_skips_candidates_already_displayed():
    rec_set = _loaded([A, B, C])
    assert rec_set.regenerate_one(0, ScriptedSource([C, D])) == [D, B, C]


def test_regenerate_one_on_favorite_never_calls_source():
    rec_set = _loaded([A, B, C], favorites=[B])
    source = ScriptedSource([D])
    with pytest.raises(FavoriteLocked):
        rec_set.regenerate_one(1, source)
    assert source.calls == []
    assert rec_set.displayed == [A, B, C]


def test_regenerate_one_exhausted_leaves_state():
    rec_set = _loaded([A, B, C])
    with pytest.raises(NoMoreCandidates):
        rec_set.regenerate_one(2, ScriptedSource([]))
    assert rec_set.displayed == [A, B, C]


def test_regenerate_one_bad_position():
    rec_set = _loaded([A, B])
    with pytest.raises(InvalidInput):
        rec_set.regenerate_one(2, ScriptedSource([D]))


def test_regenerate_all_keeps_favorite_and_fills_both_slots():
    rec_set = _loaded([A, B, C], favorites=[A])
    source = ScriptedSource([D, E])
    assert rec_set.regenerate_all(source) == [A, D, E]
    assert source.calls == [{1}]


def test_regenerate_all_keeps_stale_item_when_candidates_run_out():
    rec_set = _loaded([A, B, C], favorites=[A])
    assert rec_set.regenerate_all(ScriptedSource([D])) == [A, D, C]


def test_regenerate_all_keeps_favorite_in_middle_position():
    rec_set = _loaded([A, B, C], favorites=[B])
    assert rec_set.regenerate_all(ScriptedSource([D, E, F])) == [D, B, E]


def test_regenerate_all_never_duplicates_reserved_stale_item():
    rec_set = _loaded([A, B, C], favorites=[C])
    result = rec_set.regenerate_all(ScriptedSource([B]))
    assert result == [B, A, C]
    assert len({item.project_id for item in result}) == 3


def test_regenerate_all_drops_favorite_ids_served_back():
    rec_set = _loaded([A, B, C], favorites=[A])
    assert rec_set.regenerate_all(ScriptedSource([A, D, E])) == [A, D, E]


def test_regenerate_all_fills_empty_slots():
    rec_set = _loaded([A])
    assert rec_set.regenerate_all(ScriptedSource([D, E, F])) == [D, E, F]


def test_regenerate_all_with_only_favorites_skips_source():
    rec_set = _loaded([A, B, C], favorites=[A, B, C])
    source = ScriptedSource([D])
    assert rec_set.regenerate_all(source) == [A, B, C]
    assert source.calls == []


def test_regenerate_all_empty_batch_raises_and_keeps_state():
    rec_set = _loaded([A, B, C], favorites=[A])
    with pytest.raises(NoMoreCandidates):
        rec_set.regenerate_all(ScriptedSource([]))
    assert rec_set.displayed == [A, B, C]


def test_source_failure_propagates_without_mutation():
    rec_set = _loaded([A, B, C])
    with pytest.raises(SourceUnavailable):
        rec_set.regenerate_all(FailingSource())
    with pytest.raises(SourceUnavailable):
        rec_set.regenerate_one(0, FailingSource())
    assert rec_set.displayed == [A, B, C]


def test_response_after_cancel_is_discarded():
    rec_set = _loaded([A, B, C])
    assert rec_set.regenerate_all(CancellingSource(rec_set, [D, E, F])) == [A, B, C]
    assert rec_set.regenerate_one(0, CancellingSource(rec_set, [D])) == [A, B, C]
    assert rec_set.pool == [A, B, C]


def test_pool_merges_without_duplicates():
    rec_set = _loaded([A, B, C])
    rec_set.regenerate_one(0, ScriptedSource([D, B, E]))
    assert [item.project_id for item in rec_set.pool] == [1, 2, 3, 4, 5]


def test_merge_unique_keeps_first_occurrence():
    first_b = RecommendationItem(project_id=2, project_title="first", score=0.9, reason="")
    merged = merge_unique([A, first_b], [B, C])
    assert merged == [A, first_b, C]


def test_favorites_toggle_and_records():
    favorites = Favorites()
    assert favorites.toggle(A) is True
    assert favorites.toggle(B) is True
    assert favorites.toggle(A) is False
    assert favorites.ids == {2}
    restored = Favorites.from_records(favorites.to_records())
    assert list(restored) == [B]
    restored.clear()
    assert len(restored) == 0


def test_favorites_reject_id_only_schema():
    with pytest.raises(InvalidInput):
        Favorites.from_records([1, 2, 3])


def test_favorites_remove_unpins_single_item():
    favorites = Favorites([A, B, C])
    favorites.remove(2)
    favorites.remove(99)
    assert [item.project_id for item in favorites] == [1, 3]
    assert 2 not in favorites


def test_removed_favorite_can_be_regenerated():
    favorites = Favorites([B])
    rec_set = RecommendationSet(42, favorites)
    rec_set.initialize(ScriptedSource([A, B, C]))
    assert rec_set.is_favorited(1)
    favorites.remove(B.project_id)
    assert not rec_set.is_favorited(1)
    assert rec_set.regenerate_one(1, ScriptedSource([D])) == [A, D, C]


def test_initialized_flag_tracks_first_load():
    rec_set = RecommendationSet(42, Favorites())
    assert rec_set.initialized is False
    rec_set.initialize(ScriptedSource([A]))
    assert rec_set.initialized is True
