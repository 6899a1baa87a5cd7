"""Bounding-box helpers for GeoJSON geometries.

These helpers work on plain GeoJSON geometry mappings and axis-aligned
boxes in ``(minx, miny, maxx, maxy)`` order. They back the rectangle
selection of the viewer, the viewport fit after a load, and the in-memory
repository's bbox filter.

Example:
    Compute and compare bounds:
        >>> from featuremap.utils import geometry
        >>> box = geometry.geometry_bounds(
        ...     {"type": "LineString", "coordinates": [[0, 0], [4, 2]]}
        ... )
        >>> box
        (0.0, 0.0, 4.0, 2.0)
        >>> geometry.bboxes_overlap(box, (3.0, 1.0, 9.0, 9.0))
        True
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

BBox = tuple[float, float, float, float]
Position = tuple[float, float]

GEOMETRY_TYPES = frozenset(
    {
        "Point",
        "MultiPoint",
        "LineString",
        "MultiLineString",
        "Polygon",
        "MultiPolygon",
        "GeometryCollection",
    }
)


class GeometryError(ValueError):
    """Raised when a geometry mapping is not valid GeoJSON."""


def _position(value: Any) -> Position:
    if (
        not isinstance(value, Sequence)
        or isinstance(value, str)
        or len(value) < 2
    ):
        raise GeometryError(f"Invalid position: {value!r}")
    x, y = value[0], value[1]
    if isinstance(x, bool) or isinstance(y, bool):
        raise GeometryError(f"Invalid position: {value!r}")
    if not isinstance(x, int | float) or not isinstance(y, int | float):
        raise GeometryError(f"Invalid position: {value!r}")
    if not (math.isfinite(x) and math.isfinite(y)):
        raise GeometryError(f"Non-finite position: {value!r}")
    return float(x), float(y)


def _walk(coordinates: Any, depth: int) -> Iterator[Position]:
    """Yield positions from a coordinate array nested ``depth`` levels."""
    if depth == 0:
        yield _position(coordinates)
        return
    if not isinstance(coordinates, Sequence) or isinstance(coordinates, str):
        raise GeometryError(f"Invalid coordinates: {coordinates!r}")
    for item in coordinates:
        yield from _walk(item, depth - 1)


_DEPTH = {
    "Point": 0,
    "MultiPoint": 1,
    "LineString": 1,
    "MultiLineString": 2,
    "Polygon": 2,
    "MultiPolygon": 3,
}


def positions(geometry: Mapping[str, Any]) -> Iterator[Position]:
    """Yield every position of a GeoJSON geometry.

    Raises:
        GeometryError: If the geometry type is unknown or the coordinates
            do not match it.
    """
    kind = geometry.get("type")
    if kind == "GeometryCollection":
        members = geometry.get("geometries")
        if not isinstance(members, Sequence) or isinstance(members, str):
            raise GeometryError("GeometryCollection without geometries")
        for member in members:
            if not isinstance(member, Mapping):
                raise GeometryError(f"Invalid geometry: {member!r}")
            yield from positions(member)
        return
    if kind not in _DEPTH:
        raise GeometryError(f"Unknown geometry type: {kind!r}")
    yield from _walk(geometry.get("coordinates"), _DEPTH[kind])


def bounds_of(points: Iterable[Position]) -> BBox | None:
    """Return the bounding box of positions, None when there are none."""
    minx = miny = math.inf
    maxx = maxy = -math.inf
    for x, y in points:
        minx, miny = min(minx, x), min(miny, y)
        maxx, maxy = max(maxx, x), max(maxy, y)
    if minx == math.inf:
        return None
    return (minx, miny, maxx, maxy)


def geometry_bounds(geometry: Mapping[str, Any] | None) -> BBox | None:
    """Return the bounding box of a geometry, None for empty or null."""
    if geometry is None:
        return None
    return bounds_of(positions(geometry))


def merge_bounds(boxes: Iterable[BBox | None]) -> BBox | None:
    """Return the box enclosing every non-None box."""
    corners: list[Position] = []
    for box in boxes:
        if box is not None:
            corners.extend([(box[0], box[1]), (box[2], box[3])])
    return bounds_of(corners)


def point_in_bbox(point: Position, bbox: BBox) -> bool:
    """Inclusive containment test of a position in a box."""
    x, y = point
    return bbox[0] <= x <= bbox[2] and bbox[1] <= y <= bbox[3]


def bboxes_overlap(a: BBox, b: BBox) -> bool:
    """Inclusive overlap test of two boxes on both axes."""
    return a[0] <= b[2] and a[2] >= b[0] and a[1] <= b[3] and a[3] >= b[1]


def normalize_bbox(bbox: Sequence[float]) -> BBox:
    """Order corners so that min <= max on both axes.

    Drawing interactions may report a rectangle from any corner.
    """
    if len(bbox) != 4:
        raise GeometryError(f"Bounding box needs 4 numbers, got {len(bbox)}")
    x1, y1, x2, y2 = (float(v) for v in bbox)
    return (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))
