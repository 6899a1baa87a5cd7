"""Tests for SelectionStore and feature handles.

Covers toggle, select-all, clear and union semantics, their idempotence,
insertion order, the visual state of handles, and the capability check
that leaves icon markers unstyled instead of failing.
"""

from __future__ import annotations

from typing import Any

import pytest

from featuremap.viewer import loader, render, selection


def _store(
    raw: dict[str, Any],
    point_renderer: render.PointRenderer = "circle_marker",
) -> tuple[selection.SelectionStore, dict[int, render.FeatureHandle]]:
    collection = loader.parse_collection(raw)
    layers = {}
    handles = {}
    for fid, feature in enumerate(collection.features, start=10):
        handles[fid] = render.make_handle(fid, feature, point_renderer)
        layers[fid] = (feature, handles[fid])
    return selection.SelectionStore(layers), handles


def test_toggle_twice_restores_state(mixed_collection: dict[str, Any]) -> None:
    """Test that toggle twice restores membership and visual state."""
    store, handles = _store(mixed_collection)
    before = handles[11].style

    assert store.toggle(11) is True
    assert 11 in store
    assert handles[11].style == render.SELECTED_STYLE
    assert handles[11].highlighted

    assert store.toggle(11) is False
    assert 11 not in store
    assert handles[11].style == before
    assert not handles[11].highlighted


def test_toggle_unknown_id_is_ignored(mixed_collection: dict[str, Any]) -> None:
    """Test that an identity outside the collection is never selected."""
    store, _ = _store(mixed_collection)
    assert store.toggle(999) is False
    assert len(store) == 0


def test_select_all_then_clear(mixed_collection: dict[str, Any]) -> None:
    """Test that select_all then clear yields an empty selection."""
    store, handles = _store(mixed_collection)
    store.toggle(12)
    assert store.select_all() == 2
    assert store.ids == (12, 10, 11)
    assert store.select_all() == 0

    assert store.clear() == 3
    assert len(store) == 0
    assert all(not h.highlighted for h in handles.values())
    assert store.clear() == 0


def test_union_is_monotonic(mixed_collection: dict[str, Any]) -> None:
    """Test that union only adds and is idempotent."""
    store, _ = _store(mixed_collection)
    store.toggle(10)
    assert store.union([11, 12]) == 2
    once = store.ids
    assert store.union([11, 12]) == 0
    assert store.ids == once == (10, 11, 12)


def test_entries_follow_insertion_order(
    mixed_collection: dict[str, Any],
) -> None:
    """Test that iteration yields entries in selection order."""
    store, _ = _store(mixed_collection)
    for fid in (12, 10):
        store.toggle(fid)
    entries = list(store)
    assert [e.feature_id for e in entries] == [12, 10]
    assert entries[0].feature.properties["name"] == "Park"


def test_marker_handles_are_not_styled(
    city_collection: dict[str, Any],
) -> None:
    """Test that icon markers are selected without a style change."""
    store, handles = _store(city_collection, point_renderer="marker")
    assert not handles[10].supports_style
    assert store.toggle(10) is True
    assert 10 in store
    assert handles[10].style is None
    assert not handles[10].highlighted
    assert store.toggle(10) is False


def test_reset_drops_selection(mixed_collection: dict[str, Any]) -> None:
    """Test that reset clears entries and tracks the new features."""
    store, _ = _store(mixed_collection)
    store.select_all()
    store.reset({})
    assert len(store) == 0
    assert store.loaded_ids == ()
    assert store.toggle(10) is False


@pytest.mark.parametrize(
    ("geometry_type", "renderer", "kind"),
    [
        ("Point", "circle_marker", "circle_marker"),
        ("Point", "marker", "marker"),
        ("LineString", "marker", "path"),
    ],
)
def test_make_handle_dispatches_on_geometry(
    geometry_type: str, renderer: render.PointRenderer, kind: str
) -> None:
    """Test handle kind selection by geometry type."""
    coords: Any = [0, 0] if geometry_type == "Point" else [[0, 0], [1, 1]]
    collection = loader.parse_collection(
        {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {"type": geometry_type, "coordinates": coords},
                    "properties": {},
                }
            ],
        }
    )
    handle = render.make_handle(1, collection.features[0], renderer)
    assert handle.kind == kind
