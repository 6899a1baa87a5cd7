"""Database helpers and repositories for GeoJSON feature queries."""

from __future__ import annotations

import contextlib
import copy
from typing import TYPE_CHECKING, Any, Protocol, cast

import psycopg2
import psycopg2.extensions
import psycopg2.extras
from loguru import logger

from featuremap.db import models as db_models
from featuremap.services import spatial_query
from featuremap.utils import geometry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from featuremap.core import config


class QueryError(RuntimeError):
    """Exception raised when a database query fails.

    Wraps the driver error so that routes can answer with a structured
    JSON error and a server error status instead of crashing.

    Example:
        Handle query failures:
            >>> try:
            ...     repo.feature_collection(source, params)
            ... except QueryError as e:
            ...     print(f"Query failed: {e}")
    """


class FeatureRepositoryProtocol(Protocol):
    """Protocol interface for reading features and table metadata.

    Implementations serve filtered FeatureCollections, per-table stats and
    connection diagnostics, backed either by PostGIS (production) or by
    in-memory feature lists (testing).
    """

    def ping(self) -> None: ...

    def whoami(self) -> dict[str, Any]: ...

    def feature_collection(
        self,
        source: db_models.FeatureSource,
        params: db_models.QueryParameters,
    ) -> dict[str, Any]: ...

    def stats(self, source: db_models.FeatureSource) -> db_models.LayerStats: ...


class InMemoryFeatureRepository(FeatureRepositoryProtocol):
    """Simple in-memory store for tests and local development.

    Holds GeoJSON features per table name and applies the same filters as
    the PostGIS query: case-insensitive substring on the label property,
    bbox intersection (on feature bounds) and the row limit.
    """

    def __init__(
        self,
        tables: Mapping[str, Iterable[Mapping[str, Any]]] | None = None,
        srid: int = 4326,
    ) -> None:
        """Initialize the repository.

        Args:
            tables: GeoJSON features keyed by table name.
            srid: SRID reported by stats for non-empty tables.
        """
        self._tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(feature) for feature in features]
            for name, features in (tables or {}).items()
        }
        self.srid = srid

    def add(self, table: str, feature: Mapping[str, Any]) -> None:
        """Append a GeoJSON feature to a table."""
        self._tables.setdefault(table, []).append(dict(feature))

    def ping(self) -> None:
        return None

    def whoami(self) -> dict[str, Any]:
        return {
            "current_user": "memory",
            "client_ip": None,
            "server_ip": None,
            "server_port": None,
        }

    @staticmethod
    def _matches(
        feature: Mapping[str, Any],
        source: db_models.FeatureSource,
        params: db_models.QueryParameters,
    ) -> bool:
        properties = feature.get("properties") or {}
        if params.text:
            label = properties.get(source.label_column)
            if label is None:
                return False
            if params.text.casefold() not in str(label).casefold():
                return False
        if params.bbox is not None:
            bounds = geometry.geometry_bounds(feature.get("geometry"))
            if bounds is None or not geometry.bboxes_overlap(
                bounds, params.bbox
            ):
                return False
        return True

    def feature_collection(
        self,
        source: db_models.FeatureSource,
        params: db_models.QueryParameters,
    ) -> dict[str, Any]:
        matching = [
            feature
            for feature in self._tables.get(source.table, [])
            if self._matches(feature, source, params)
        ]
        return {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": copy.deepcopy(feature.get("geometry")),
                    "properties": copy.deepcopy(
                        dict(feature.get("properties") or {})
                    ),
                }
                for feature in matching[: params.limit]
            ],
        }

    def stats(self, source: db_models.FeatureSource) -> db_models.LayerStats:
        features = self._tables.get(source.table, [])
        extent = geometry.merge_bounds(
            geometry.geometry_bounds(feature.get("geometry"))
            for feature in features
        )
        has_geometry = any(f.get("geometry") is not None for f in features)
        return db_models.LayerStats(
            count=len(features),
            srid=self.srid if has_geometry else 0,
            extent=_format_box(extent),
        )


def _format_box(bbox: db_models.BBox | None) -> str | None:
    """Format a bbox the way PostGIS prints a ``box2d``."""
    if bbox is None:
        return None
    minx, miny, maxx, maxy = (f"{v:.15g}" for v in bbox)
    return f"BOX({minx} {miny},{maxx} {maxy})"


class PostgresFeatureRepository(FeatureRepositoryProtocol):
    """PostgreSQL/PostGIS-backed repository for feature queries.

    Opens one connection per call and closes it afterwards. All statements
    are read-only; driver errors are logged and re-raised as QueryError.
    """

    WHOAMI_SQL = """
    SELECT
      current_user,
      inet_client_addr()::text AS client_ip,
      inet_server_addr()::text AS server_ip,
      inet_server_port() AS server_port
    """

    def __init__(self, settings: config.Settings) -> None:
        """Initialize repository with database settings.

        Args:
            settings: Application settings containing the database URL and
                the SRID of the bbox filter.
        """
        self.settings = settings

    def _connection(self) -> psycopg2.extensions.connection:
        """Create a new database connection.

        Returns:
            psycopg2 connection object.
        """
        return psycopg2.connect(self.settings.database_url)

    @contextlib.contextmanager
    def _cursor(self) -> Iterator[psycopg2.extras.RealDictCursor]:
        """Yield a dict cursor, translating driver and adaptation errors.

        Raises:
            QueryError: If connecting, adapting parameters or running a
                statement fails.
        """
        try:
            conn = self._connection()
        except psycopg2.Error as exc:
            logger.error("Database connection failed: {}", exc)
            raise QueryError(str(exc).strip()) from exc
        try:
            with conn, conn.cursor(
                cursor_factory=psycopg2.extras.RealDictCursor
            ) as cur:
                yield cur
        # The driver raises a bare ValueError when adapting a NUL byte.
        except (psycopg2.Error, ValueError) as exc:
            logger.error("Database query failed: {}", exc)
            raise QueryError(str(exc).strip()) from exc
        finally:
            conn.close()

    def ping(self) -> None:
        with self._cursor() as cur:
            cur.execute("SELECT 1")

    def whoami(self) -> dict[str, Any]:
        with self._cursor() as cur:
            cur.execute(self.WHOAMI_SQL)
            row = cur.fetchone()
        return dict(row) if row else {}

    def feature_collection(
        self,
        source: db_models.FeatureSource,
        params: db_models.QueryParameters,
    ) -> dict[str, Any]:
        query, bind = spatial_query.build_feature_collection_query(
            source, params, self.settings.srid
        )
        logger.debug("Querying {} with {}", source.name, bind)
        with self._cursor() as cur:
            cur.execute(query, bind)
            row = cur.fetchone()
        geojson = row.get("geojson") if row else None
        if geojson is None:
            return copy.deepcopy(db_models.EMPTY_FEATURE_COLLECTION)
        return cast(dict[str, Any], geojson)

    def stats(self, source: db_models.FeatureSource) -> db_models.LayerStats:
        count_sql, srid_sql, extent_sql = spatial_query.build_stats_queries(
            source
        )
        with self._cursor() as cur:
            cur.execute(count_sql)
            count_row = cur.fetchone()
            cur.execute(srid_sql)
            srid_row = cur.fetchone()
            cur.execute(extent_sql)
            extent_row = cur.fetchone()
        return self._stats_from_rows(count_row, srid_row, extent_row)

    @staticmethod
    def _stats_from_rows(
        count_row: Mapping[str, Any] | None,
        srid_row: Mapping[str, Any] | None,
        extent_row: Mapping[str, Any] | None,
    ) -> db_models.LayerStats:
        """Convert the three stats query rows to LayerStats.

        Args:
            count_row: Row holding ``count``.
            srid_row: Row holding ``srid``, None for a table without
                geometries.
            extent_row: Row holding ``extent``.

        Returns:
            LayerStats with srid 0 and extent None where unknown.
        """
        count = int(count_row["count"]) if count_row else 0
        srid_value = srid_row.get("srid") if srid_row else None
        extent_value = extent_row.get("extent") if extent_row else None
        return db_models.LayerStats(
            count=count,
            srid=int(srid_value) if srid_value is not None else 0,
            extent=str(extent_value) if extent_value is not None else None,
        )


def get_feature_repository(
    settings: config.Settings,
) -> FeatureRepositoryProtocol:
    """Factory function to create a feature repository.

    Args:
        settings: Application settings for database connection.

    Returns:
        PostgresFeatureRepository instance for production use.
    """
    return PostgresFeatureRepository(settings)
