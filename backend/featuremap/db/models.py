"""Data models for the feature query service.

This module defines the data structures shared by the query builder, the
repositories and the API routes: the feature source a route reads from, the
normalized request parameters, and the per-table statistics returned by the
debug endpoints.

Example:
    Describe the buildings table and a filtered request against it:
        >>> from featuremap.db.models import FeatureSource, QueryParameters
        >>> source = FeatureSource(
        ...     name="buildings",
        ...     schema="public",
        ...     table="buildings",
        ...     label_column="name",
        ...     geometry_column="geom",
        ... )
        >>> params = QueryParameters(
        ...     text="school",
        ...     bbox=(15.9, 45.7, 16.1, 45.9),
        ...     limit=500,
        ... )
"""

from __future__ import annotations

import dataclasses
from typing import Any

BBox = tuple[float, float, float, float]

EMPTY_FEATURE_COLLECTION: dict[str, Any] = {
    "type": "FeatureCollection",
    "features": [],
}


@dataclasses.dataclass(frozen=True)
class FeatureSource:
    """A PostGIS table served as a GeoJSON FeatureCollection.

    Attributes:
        name: Route name of the source ("blocks", "buildings").
        schema: Database schema holding the table.
        table: Table name.
        label_column: Column matched by the text filter.
        geometry_column: Geometry column serialized as the feature geometry.
    """

    name: str
    schema: str
    table: str
    label_column: str
    geometry_column: str


@dataclasses.dataclass(frozen=True)
class QueryParameters:
    """Normalized filter parameters of a feature request.

    Attributes:
        text: Case-insensitive substring matched against the label column,
            or None for no text filter.
        bbox: Envelope as (minx, miny, maxx, maxy), or None for no spatial
            filter.
        limit: Maximum number of features returned, already clamped.
    """

    text: str | None = None
    bbox: BBox | None = None
    limit: int = 1000


@dataclasses.dataclass(frozen=True)
class LayerStats:
    """Row count, spatial reference and extent of a source table.

    Attributes:
        count: Number of rows in the table.
        srid: SRID of the first non-null geometry, 0 when unknown.
        extent: PostGIS ``BOX(minx miny,maxx maxy)`` text, or None for an
            empty table.
    """

    count: int
    srid: int
    extent: str | None
