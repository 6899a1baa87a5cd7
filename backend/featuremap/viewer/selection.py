"""Selection membership of the loaded features.

The store keeps an insertion-ordered mapping from feature identity to
SelectionEntry. Insertion order is the row order of the attribute table and
of both exports. Every operation is idempotent and none raises: unknown
identities are ignored, and handles that cannot be restyled keep their look.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from featuremap.viewer import models

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from featuremap.viewer import render


class SelectionStore:
    """Tracks which loaded features are selected.

    Args:
        layers: Loaded features and their handles keyed by identity, in
            load order. Replaced wholesale by ``reset`` on each load.
    """

    def __init__(
        self,
        layers: Mapping[int, tuple[models.Feature, render.FeatureHandle]]
        | None = None,
    ) -> None:
        self._layers = dict(layers or {})
        self._entries: dict[int, models.SelectionEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._entries

    def __iter__(self) -> Iterator[models.SelectionEntry]:
        return iter(list(self._entries.values()))

    @property
    def ids(self) -> tuple[int, ...]:
        return tuple(self._entries)

    @property
    def loaded_ids(self) -> tuple[int, ...]:
        return tuple(self._layers)

    def reset(
        self,
        layers: Mapping[int, tuple[models.Feature, render.FeatureHandle]],
    ) -> None:
        """Drop every entry and track a newly loaded set of features."""
        self.clear()
        self._layers = dict(layers)

    def _add(self, feature_id: int) -> bool:
        if feature_id in self._entries or feature_id not in self._layers:
            return False
        feature, handle = self._layers[feature_id]
        self._entries[feature_id] = models.SelectionEntry(
            feature_id, feature, handle
        )
        handle.set_selected(True)
        return True

    def _remove(self, feature_id: int) -> bool:
        entry = self._entries.pop(feature_id, None)
        if entry is None:
            return False
        entry.handle.set_selected(False)
        return True

    def toggle(self, feature_id: int) -> bool:
        """Deselect a selected feature, select an unselected one.

        Returns:
            True if the feature is selected afterwards.
        """
        if self._remove(feature_id):
            return False
        return self._add(feature_id)

    def select_all(self) -> int:
        """Select every loaded feature; returns how many were added."""
        return self.union(self._layers)

    def union(self, feature_ids: Iterable[int]) -> int:
        """Add the given features, never removing existing entries.

        Returns:
            Number of features newly selected.
        """
        return sum(1 for feature_id in feature_ids if self._add(feature_id))

    def clear(self) -> int:
        """Deselect everything; returns how many entries were removed."""
        removed = 0
        for feature_id in list(self._entries):
            removed += self._remove(feature_id)
        return removed
