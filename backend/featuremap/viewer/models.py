"""In-memory model of a loaded feature collection and its selection.

Example:
    A loaded collection with two features:
        >>> from featuremap.viewer import loader
        >>> collection = loader.parse_collection(
        ...     '{"type": "FeatureCollection", "features": ['
        ...     '{"type": "Feature", "geometry": null,'
        ...     ' "properties": {"id": 1, "city": "X"}},'
        ...     '{"type": "Feature", "geometry": null,'
        ...     ' "properties": {"id": 2, "city": "Y"}}]}'
        ... )
        >>> collection.key_union
        ('id', 'city')
"""

from __future__ import annotations

import copy
import dataclasses
import types
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from featuremap.utils.geometry import BBox
    from featuremap.viewer import render


@dataclasses.dataclass(frozen=True)
class Feature:
    """One geometric object with named scalar properties.

    Attributes:
        geometry: GeoJSON geometry mapping, None for a feature without one.
        properties: Read-only view of the feature properties.
        feature_id: GeoJSON ``id`` member when the source had one.
        bbox: Bounds of the geometry, None when it has no positions.
    """

    geometry: Mapping[str, Any] | None
    properties: Mapping[str, Any]
    feature_id: str | int | None = None
    bbox: BBox | None = None

    @property
    def is_point(self) -> bool:
        return self.geometry is not None and self.geometry.get("type") == "Point"

    def to_geojson(self) -> dict[str, Any]:
        """Return a fresh GeoJSON Feature object for this feature."""
        result: dict[str, Any] = {"type": "Feature"}
        if self.feature_id is not None:
            result["id"] = self.feature_id
        result["geometry"] = copy.deepcopy(
            dict(self.geometry) if self.geometry is not None else None
        )
        result["properties"] = copy.deepcopy(dict(self.properties))
        return result


def freeze_properties(properties: Mapping[str, Any]) -> Mapping[str, Any]:
    return types.MappingProxyType(dict(properties))


@dataclasses.dataclass(frozen=True)
class FeatureCollection:
    """Ordered features plus metadata derived once at load time.

    Attributes:
        features: Features in source order.
        key_union: Every property name seen across features, first-seen
            order, without duplicates.
        bounds: Extent of all geometries, None when there are none.
    """

    features: tuple[Feature, ...] = ()
    key_union: tuple[str, ...] = ()
    bounds: BBox | None = None

    def __len__(self) -> int:
        return len(self.features)


@dataclasses.dataclass(frozen=True)
class SelectionEntry:
    feature_id: int
    feature: Feature
    handle: render.FeatureHandle
