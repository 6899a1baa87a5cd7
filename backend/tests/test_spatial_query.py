"""Unit tests for featuremap.services.spatial_query.

This module tests request parameter normalization and the composed PostGIS
SQL, validating:
    - Limit clamping to [1, 10000] with the 1000 default.
    - Malformed bbox values being ignored instead of rejected.
    - At most one text clause and one bbox clause, both bound as parameters.
    - The row limit bound as a parameter rather than written into the SQL.
    - The empty-array fallback of the FeatureCollection aggregation.

See Also:
    - backend/featuremap/services/spatial_query.py for implementation.
"""

from __future__ import annotations

import pytest
from psycopg2 import sql

from featuremap.db import models as db_models
from featuremap.services import spatial_query

SOURCE = db_models.FeatureSource(
    name="buildings",
    schema="public",
    table="buildings",
    label_column="name",
    geometry_column="geom",
)


def _sql_text(composable: sql.Composable) -> str:
    """Flatten composed SQL without a database connection."""
    if isinstance(composable, sql.Composed):
        return "".join(_sql_text(part) for part in composable.seq)
    if isinstance(composable, sql.SQL):
        return composable.string
    if isinstance(composable, sql.Identifier):
        return ".".join(f'"{s}"' for s in composable.strings)
    if isinstance(composable, sql.Literal):
        return repr(composable.wrapped)
    raise TypeError(composable)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, 1000),
        ("", 1000),
        ("abc", 1000),
        ("nan", 1000),
        ("inf", 10000),
        ("Infinity", 10000),
        ("1e400", 10000),
        ("-inf", 1),
        ("5", 5),
        ("12.9", 12),
        ("0", 1),
        ("-20", 1),
        ("999999", 10000),
        ("10000", 10000),
    ],
)
def test_clamp_limit(raw: str | None, expected: int) -> None:
    """Test limit coercion and clamping."""
    assert spatial_query.clamp_limit(raw) == expected


def test_clamp_limit_custom_bounds() -> None:
    """Test that configured default and maximum are honored."""
    assert spatial_query.clamp_limit(None, default=50, maximum=100) == 50
    assert spatial_query.clamp_limit("500", default=50, maximum=100) == 100


@pytest.mark.parametrize(
    "raw",
    [None, "", "1,2,3", "1,2,3,4,5", "a,b,c,d", "1,2,nan,4", "1,2,inf,4"],
)
def test_parse_bbox_ignores_malformed(raw: str | None) -> None:
    """Test that malformed bbox strings are ignored."""
    assert spatial_query.parse_bbox(raw) is None


def test_parse_bbox_valid() -> None:
    """Test parsing of a well-formed bbox with whitespace."""
    assert spatial_query.parse_bbox("0, 0.5,10 ,-1e1") == (0.0, 0.5, 10.0, -10.0)


def test_parse_query_params_blank_text() -> None:
    """Test that a blank q disables the text filter."""
    params = spatial_query.parse_query_params(q="   ")
    assert params.text is None
    assert params.bbox is None
    assert params.limit == 1000


def test_parse_query_params_strips_text() -> None:
    """Test that q is trimmed."""
    params = spatial_query.parse_query_params(q="  school ", limit="7")
    assert params.text == "school"
    assert params.limit == 7


def test_like_pattern_escapes_wildcards() -> None:
    """Test that LIKE metacharacters are matched literally."""
    assert spatial_query.like_pattern("50%_off") == "%50\\%\\_off%"
    assert spatial_query.like_pattern("a\\b") == "%a\\\\b%"


def test_query_without_filters() -> None:
    """Test the unfiltered query binds only the limit."""
    params = db_models.QueryParameters(limit=1000)
    query, bind = spatial_query.build_feature_collection_query(
        SOURCE, params, srid=4326
    )
    text = _sql_text(query)
    assert "WHERE" not in text
    assert "ILIKE" not in text
    assert "ST_Intersects" not in text
    assert bind == {"limit": 1000}


def test_query_with_bbox_and_limit() -> None:
    """Test that bbox=0,0,10,10&limit=5 yields a bound intersects clause."""
    params = spatial_query.parse_query_params(limit="5", bbox="0,0,10,10")
    query, bind = spatial_query.build_feature_collection_query(
        SOURCE, params, srid=4326
    )
    text = _sql_text(query)
    assert "ST_Intersects" in text
    assert "ST_MakeEnvelope" in text
    assert "LIMIT %(limit)s" in text
    assert "LIMIT 5" not in text
    assert bind == {
        "minx": 0.0,
        "miny": 0.0,
        "maxx": 10.0,
        "maxy": 10.0,
        "srid": 4326,
        "limit": 5,
    }


def test_query_with_text_and_bbox() -> None:
    """Test both clauses are joined with AND and values stay bound."""
    params = db_models.QueryParameters(
        text="x'; DROP TABLE buildings; --",
        bbox=(1.0, 2.0, 3.0, 4.0),
        limit=10,
    )
    query, bind = spatial_query.build_feature_collection_query(
        SOURCE, params, srid=3857
    )
    text = _sql_text(query)
    assert text.count("ILIKE") == 1
    assert text.count("ST_Intersects") == 1
    assert " AND " in text
    assert "DROP TABLE" not in text
    assert bind["q"] == "%x'; DROP TABLE buildings; --%"
    assert bind["srid"] == 3857


def test_query_aggregates_feature_collection() -> None:
    """Test the aggregation shape and the empty-array fallback."""
    query, _ = spatial_query.build_feature_collection_query(
        SOURCE, db_models.QueryParameters(), srid=4326
    )
    text = _sql_text(query)
    assert "'FeatureCollection'" in text
    assert "jsonb_agg" in text
    assert "COALESCE" in text
    assert "'[]'::jsonb" in text
    assert 'ST_AsGeoJSON(src."geom")' in text
    assert "to_jsonb(src) - 'geom'" in text
    assert '"public"."buildings"' in text


def test_build_stats_queries() -> None:
    """Test the count, SRID and extent queries target the source table."""
    count_sql, srid_sql, extent_sql = spatial_query.build_stats_queries(SOURCE)
    assert "COUNT(*)" in _sql_text(count_sql)
    assert "ST_SRID" in _sql_text(srid_sql)
    assert "ST_Extent" in _sql_text(extent_sql)
    for query in (count_sql, srid_sql, extent_sql):
        assert '"public"."buildings"' in _sql_text(query)
