"""Pytest configuration exposing the featuremap package and shared data."""

import pathlib
import sys
from typing import Any

import pytest

BACKEND_ROOT = pathlib.Path(__file__).resolve().parent

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


@pytest.fixture
def city_collection() -> dict[str, Any]:
    """Two point features with ``id`` and ``city`` properties."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [1.0, 1.0]},
                "properties": {"id": 1, "city": "X"},
            },
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [5.0, 5.0]},
                "properties": {"id": 2, "city": "Y"},
            },
        ],
    }


@pytest.fixture
def mixed_collection() -> dict[str, Any]:
    """A point, a line and a polygon with partly overlapping keys."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "id": "p1",
                "geometry": {"type": "Point", "coordinates": [0.0, 0.0]},
                "properties": {"name": "Well", "depth": 12},
            },
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[10.0, 10.0], [20.0, 15.0]],
                },
                "properties": {"name": "Road \"A\"", "lanes": 2},
            },
            {
                "type": "Feature",
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [
                        [
                            [30.0, 30.0],
                            [40.0, 30.0],
                            [40.0, 40.0],
                            [30.0, 40.0],
                            [30.0, 30.0],
                        ]
                    ],
                },
                "properties": {"name": "Park", "area": 100.5, "note": None},
            },
        ],
    }
