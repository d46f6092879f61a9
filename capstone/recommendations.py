"""Displayed capstone recommendations and the rules for refreshing them.

A ``RecommendationSet`` belongs to one student session. It shows up to
``DISPLAY_SLOTS`` items and reads the injected ``Favorites`` to decide which
positions are pinned. The favorites themselves change only through explicit
favorite/unfavorite actions made outside the set.

``regenerate_all`` fill policy: pinned items keep their positions. The other
positions take fresh candidates left to right. When fresh candidates run out,
a position keeps its stale item. This is the only case where an unpinned item
survives a full refresh. If that stale item was already re-served into an
earlier slot, the position takes the next unused displaced item instead, so
the displayed ids stay unique.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

from capstone.errors import FavoriteLocked, InvalidInput, NoMoreCandidates
from capstone.models import Preferences, RecommendationItem

logger = logging.getLogger(__name__)

DISPLAY_SLOTS = 3


class CandidateSource(Protocol):
    def fetch_candidates(
        self,
        student_id: int | str,
        exclude_ids: set,
        preferences: Preferences | None,
    ) -> list[RecommendationItem]: ...


def merge_unique(
    pool: Iterable[RecommendationItem], new_items: Iterable[RecommendationItem]
) -> list[RecommendationItem]:
    merged: list[RecommendationItem] = []
    seen: set = set()
    for item in [*pool, *new_items]:
        if item.project_id in seen:
            continue
        seen.add(item.project_id)
        merged.append(item)
    return merged


class Favorites:
    """Pinned recommendations keyed by project id, in the order they were pinned."""

    def __init__(self, items: Iterable[RecommendationItem] = ()):
        self._items: dict = {}
        for item in items:
            self._items.setdefault(item.project_id, item)

    def __contains__(self, project_id) -> bool:
        return project_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items.values())

    @property
    def ids(self) -> set:
        return set(self._items)

    def toggle(self, item: RecommendationItem) -> bool:
        if item.project_id in self._items:
            del self._items[item.project_id]
            return False
        self._items[item.project_id] = item
        return True

    def remove(self, project_id) -> None:
        self._items.pop(project_id, None)

    def clear(self) -> None:
        self._items.clear()

    def to_records(self) -> list[dict]:
        return [item.to_record() for item in self._items.values()]

    @classmethod
    def from_records(cls, records: Sequence[dict] | None) -> Favorites:
        records = records or []
        if not isinstance(records, (list, tuple)):
            raise InvalidInput("Favorites must be stored as a list of recommendation records.")
        for record in records:
            if not isinstance(record, dict):
                raise InvalidInput(
                    f"Favorites must hold full recommendation records, got {type(record).__name__}."
                )
        return cls(RecommendationItem.from_record(record) for record in records)


class RecommendationSet:
    def __init__(
        self,
        student_id: int | str,
        favorites: Favorites,
        preferences: Preferences | None = None,
    ):
        self.student_id = student_id
        self.favorites = favorites
        self.preferences = preferences
        self.pool: list[RecommendationItem] = []
        self._displayed: list[RecommendationItem] = []
        self._initialized = False
        self._generation = 0

    @property
    def displayed(self) -> list[RecommendationItem]:
        return list(self._displayed)

    @property
    def initialized(self) -> bool:
        return self._initialized

    def is_favorited(self, position: int) -> bool:
        return self._item_at(position).project_id in self.favorites

    def cancel(self) -> None:
        """Abandon any in-flight request; its response will be discarded."""
        self._generation += 1

    def initialize(self, source: CandidateSource) -> list[RecommendationItem]:
        if self._initialized:
            return self.displayed
        token = self._generation
        batch = source.fetch_candidates(self.student_id, set(), self.preferences)
        if token != self._generation:
            return self._discard_stale("initialize")
        self._displayed = merge_unique([], batch)[:DISPLAY_SLOTS]
        self.pool = merge_unique(self.pool, batch)
        self._initialized = True
        logger.info("Loaded %d recommendations for student %s", len(self._displayed), self.student_id)
        return self.displayed

    def regenerate_one(self, position: int, source: CandidateSource) -> list[RecommendationItem]:
        self._require_initialized()
        current = self._item_at(position)
        if current.project_id in self.favorites:
            raise FavoriteLocked(position, current.project_id)

        displayed_ids = {item.project_id for item in self._displayed}
        token = self._generation
        batch = source.fetch_candidates(self.student_id, set(displayed_ids), self.preferences)
        if token != self._generation:
            return self._discard_stale("regenerate_one")

        replacement = next((item for item in batch if item.project_id not in displayed_ids), None)
        if replacement is None:
            logger.warning("No new candidates left for student %s", self.student_id)
            raise NoMoreCandidates("No more unique recommendations available.")

        updated = list(self._displayed)
        updated[position] = replacement
        self._displayed = updated
        self.pool = merge_unique(self.pool, batch)
        logger.info(
            "Replaced project %s with %s at position %d",
            current.project_id,
            replacement.project_id,
            position,
        )
        return self.displayed

    def regenerate_all(self, source: CandidateSource) -> list[RecommendationItem]:
        self._require_initialized()
        pinned = {
            index: item
            for index, item in enumerate(self._displayed)
            if item.project_id in self.favorites
        }
        if len(pinned) == DISPLAY_SLOTS:
            return self.displayed

        exclude_ids = {item.project_id for item in pinned.values()}
        token = self._generation
        batch = source.fetch_candidates(self.student_id, set(exclude_ids), self.preferences)
        if token != self._generation:
            return self._discard_stale("regenerate_all")

        fresh = [item for item in merge_unique([], batch) if item.project_id not in exclude_ids]
        if not fresh:
            logger.warning("Regenerate-all found no candidates for student %s", self.student_id)
            raise NoMoreCandidates("No more unique recommendations available.")

        updated = self._fill_slots(pinned, fresh)
        self._displayed = updated
        self.pool = merge_unique(self.pool, batch)
        logger.info(
            "Regenerated %d of %d positions for student %s",
            sum(1 for item in updated if item in fresh),
            len(updated),
            self.student_id,
        )
        return self.displayed

    def _fill_slots(
        self, pinned: dict[int, RecommendationItem], fresh: list[RecommendationItem]
    ) -> list[RecommendationItem]:
        stale = [item for index, item in enumerate(self._displayed) if index not in pinned]
        placed: set = {item.project_id for item in pinned.values()}
        fresh_queue = list(fresh)
        updated: list[RecommendationItem] = []

        for index in range(DISPLAY_SLOTS):
            if index in pinned:
                updated.append(pinned[index])
                continue
            while fresh_queue and fresh_queue[0].project_id in placed:
                fresh_queue.pop(0)
            if fresh_queue:
                choice = fresh_queue.pop(0)
            elif index < len(self._displayed):
                own = self._displayed[index]
                if own.project_id not in placed:
                    choice = own
                else:
                    choice = next(item for item in stale if item.project_id not in placed)
            else:
                break
            placed.add(choice.project_id)
            updated.append(choice)
        return updated

    def _item_at(self, position: int) -> RecommendationItem:
        if not 0 <= position < len(self._displayed):
            raise InvalidInput(f"No recommendation displayed at position {position}.")
        return self._displayed[position]

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise InvalidInput("Recommendations have not been loaded yet; call initialize first.")

    def _discard_stale(self, operation: str) -> list[RecommendationItem]:
        logger.warning("Discarded %s response for student %s after cancellation", operation, self.student_id)
        return self.displayed
