"""PostGIS GeoJSON query builder for filtered feature requests.

This module turns raw request parameters into normalized QueryParameters and
composes the PostGIS SQL that aggregates the matching rows of a source table
into a single GeoJSON FeatureCollection. Identifiers are composed with
``psycopg2.sql.Identifier`` and every value, the row limit included, is bound
as a named query parameter. Nothing from the request is interpolated into
the query text.

Example:
    Build the query for ``GET /buildings?bbox=0,0,10,10&limit=5``:
        >>> from featuremap.services import spatial_query
        >>> params = spatial_query.parse_query_params(
        ...     limit="5", q=None, bbox="0,0,10,10"
        ... )
        >>> query, bind = spatial_query.build_feature_collection_query(
        ...     source, params, srid=4326
        ... )
        >>> cursor.execute(query, bind)
        >>> geojson = cursor.fetchone()[0]

    The generated SQL:
     - Filters with ``ILIKE`` on the label column when ``q`` is given
     - Filters with ``ST_Intersects`` against ``ST_MakeEnvelope`` for a bbox
     - Aggregates rows with ``jsonb_agg`` and falls back to an empty array
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from psycopg2 import sql

from featuremap.db import models as db_models

if TYPE_CHECKING:
    from featuremap.db.models import BBox

DEFAULT_LIMIT = 1000
MAX_LIMIT = 10000

FEATURE_COLLECTION_SQL = sql.SQL(
    """
SELECT jsonb_build_object(
  'type', 'FeatureCollection',
  'features', COALESCE(jsonb_agg(
    jsonb_build_object(
      'type', 'Feature',
      'geometry', ST_AsGeoJSON(src.{geom})::jsonb,
      'properties', to_jsonb(src) - {geom_name}
    )
  ), '[]'::jsonb)
) AS geojson
FROM (
  SELECT * FROM {table}
  {where}
  LIMIT %(limit)s
) AS src
"""
)

TEXT_CLAUSE_SQL = sql.SQL("{label}::text ILIKE %(q)s")

BBOX_CLAUSE_SQL = sql.SQL(
    "ST_Intersects({geom}, "
    "ST_MakeEnvelope(%(minx)s, %(miny)s, %(maxx)s, %(maxy)s, %(srid)s))"
)

COUNT_SQL = sql.SQL("SELECT COUNT(*)::int AS count FROM {table}")

SRID_SQL = sql.SQL(
    """
SELECT COALESCE(ST_SRID({geom}), 0) AS srid
FROM {table}
WHERE {geom} IS NOT NULL
LIMIT 1
"""
)

EXTENT_SQL = sql.SQL("SELECT ST_Extent({geom})::text AS extent FROM {table}")


def _to_number(value: str | None, finite: bool = True) -> float | None:
    """Parse a number, returning None for anything else.

    NaN is always rejected; infinities only when ``finite`` is set.
    """
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    if math.isnan(number) or (finite and math.isinf(number)):
        return None
    return number


def clamp_limit(
    value: str | None,
    default: int = DEFAULT_LIMIT,
    maximum: int = MAX_LIMIT,
) -> int:
    """Coerce the ``limit`` request parameter into [1, maximum].

    Args:
        value: Raw query string value, possibly missing or non-numeric.
        default: Limit used when value is absent or not a number.
        maximum: Hard upper bound.

    Returns:
        Integer limit between 1 and maximum inclusive.
    """
    number = _to_number(value, finite=False)
    if number is None:
        limit = default
    elif math.isinf(number):
        limit = maximum if number > 0 else 1
    else:
        limit = int(number)
    return max(1, min(limit, maximum))


def parse_bbox(value: str | None) -> BBox | None:
    """Parse ``minx,miny,maxx,maxy``; malformed input is ignored.

    Args:
        value: Raw comma-separated bbox string.

    Returns:
        Tuple of four finite floats, or None when the value is missing, has
        the wrong arity, or contains a non-finite number.
    """
    if not value:
        return None
    parts = [_to_number(part) for part in value.split(",")]
    if len(parts) != 4 or any(part is None for part in parts):
        return None
    minx, miny, maxx, maxy = (float(part) for part in parts)  # type: ignore[arg-type]
    return (minx, miny, maxx, maxy)


def parse_query_params(
    limit: str | None = None,
    q: str | None = None,
    bbox: str | None = None,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> db_models.QueryParameters:
    """Normalize raw ``limit``, ``q`` and ``bbox`` request parameters.

    Args:
        limit: Raw row limit.
        q: Raw text filter; blank values disable the text clause.
        bbox: Raw comma-separated envelope.
        default_limit: Limit used when ``limit`` is absent or non-numeric.
        max_limit: Hard cap on the limit.

    Returns:
        QueryParameters ready for build_feature_collection_query.
    """
    text = q.strip() if q else None
    return db_models.QueryParameters(
        text=text or None,
        bbox=parse_bbox(bbox),
        limit=clamp_limit(limit, default_limit, max_limit),
    )


def like_pattern(text: str) -> str:
    r"""Wrap text in ``%`` wildcards with LIKE metacharacters escaped.

    ``%``, ``_`` and the default escape character ``\`` are matched
    literally, so ``q=50%`` looks for the substring "50%".
    """
    escaped = (
        text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"%{escaped}%"


def _table(source: db_models.FeatureSource) -> sql.Identifier:
    return sql.Identifier(source.schema, source.table)


def build_where_clause(
    source: db_models.FeatureSource,
    params: db_models.QueryParameters,
    srid: int,
) -> tuple[sql.Composable, dict[str, Any]]:
    """Compose the WHERE clause for the text and bbox filters.

    Args:
        source: Source table description.
        params: Normalized request parameters.
        srid: Spatial reference of the bbox envelope.

    Returns:
        Tuple of (where clause, bind parameters). The clause is empty SQL
        when neither filter applies.
    """
    conditions: list[sql.Composable] = []
    bind: dict[str, Any] = {}

    if params.text:
        conditions.append(
            TEXT_CLAUSE_SQL.format(label=sql.Identifier(source.label_column))
        )
        bind["q"] = like_pattern(params.text)

    if params.bbox is not None:
        conditions.append(
            BBOX_CLAUSE_SQL.format(geom=sql.Identifier(source.geometry_column))
        )
        minx, miny, maxx, maxy = params.bbox
        bind.update(minx=minx, miny=miny, maxx=maxx, maxy=maxy, srid=srid)

    if not conditions:
        return sql.SQL(""), bind

    return sql.SQL("WHERE ") + sql.SQL(" AND ").join(conditions), bind


def build_feature_collection_query(
    source: db_models.FeatureSource,
    params: db_models.QueryParameters,
    srid: int,
) -> tuple[sql.Composed, dict[str, Any]]:
    """Compose the FeatureCollection aggregation query for a source table.

    Each matching row becomes a Feature whose geometry is
    ``ST_AsGeoJSON`` of the geometry column and whose properties are all
    other columns. When no rows match the query still returns one row
    holding a FeatureCollection with an empty ``features`` array.

    Args:
        source: Source table description.
        params: Normalized request parameters.
        srid: Spatial reference of the bbox envelope.

    Returns:
        Tuple of (composed query, named bind parameters) for
        ``cursor.execute``.
    """
    where, bind = build_where_clause(source, params, srid)
    bind["limit"] = params.limit
    query = FEATURE_COLLECTION_SQL.format(
        geom=sql.Identifier(source.geometry_column),
        geom_name=sql.Literal(source.geometry_column),
        table=_table(source),
        where=where,
    )
    return query, bind


def build_stats_queries(
    source: db_models.FeatureSource,
) -> tuple[sql.Composed, sql.Composed, sql.Composed]:
    """Compose the count, SRID and extent queries for a source table."""
    geom = sql.Identifier(source.geometry_column)
    table = _table(source)
    return (
        COUNT_SQL.format(table=table),
        SRID_SQL.format(geom=geom, table=table),
        EXTENT_SQL.format(geom=geom, table=table),
    )
