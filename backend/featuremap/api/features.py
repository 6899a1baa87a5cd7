"""GeoJSON feature query API endpoints.

This module serves the ``blocks`` and ``buildings`` source tables as one
GeoJSON FeatureCollection per request. Both endpoints accept the same
filters:

- ``limit``: row cap, clamped to [1, 10000], 1000 when absent or invalid
- ``q``: case-insensitive substring matched against the label column
- ``bbox``: ``minx,miny,maxx,maxy`` envelope tested with ``ST_Intersects``

Malformed ``limit`` and ``bbox`` values are ignored rather than rejected.
Responses carry ``Cache-Control: no-store`` so that edits in the database
are visible to the next fetch.

Example:
    Fetch at most five buildings inside an envelope:
        >>> response = client.get(
        ...     "/buildings", params={"bbox": "0,0,10,10", "limit": 5}
        ... )
        >>> response.json()["type"]
        'FeatureCollection'
        >>> response.headers["cache-control"]
        'no-store'
"""

from typing import Any

import fastapi
from fastapi import responses

from featuremap.core import config
from featuremap.db import database
from featuremap.db import models as db_models
from featuremap.services import spatial_query

router = fastapi.APIRouter(tags=["features"])

NO_STORE = {"Cache-Control": "no-store"}


def _get_repo(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> database.FeatureRepositoryProtocol:
    """Resolve the feature repository dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        FeatureRepositoryProtocol implementation
            (PostgresFeatureRepository in production).
    """
    return database.get_feature_repository(settings)


def _get_source(
    name: str, settings: config.Settings
) -> db_models.FeatureSource:
    source = settings.feature_sources().get(name)
    if source is None:
        raise fastapi.HTTPException(status_code=404, detail="Source not found")
    return source


def _feature_collection(
    name: str,
    limit: str | None,
    q: str | None,
    bbox: str | None,
    settings: config.Settings,
    repo: database.FeatureRepositoryProtocol,
) -> responses.JSONResponse:
    """Run the filtered query for a source and wrap it in a response."""
    params = spatial_query.parse_query_params(
        limit=limit,
        q=q,
        bbox=bbox,
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
    )
    geojson = repo.feature_collection(_get_source(name, settings), params)
    return responses.JSONResponse(content=geojson, headers=NO_STORE)


@router.get("/blocks")
def get_blocks(
    limit: str | None = None,
    q: str | None = None,
    bbox: str | None = None,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    repo: database.FeatureRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> responses.JSONResponse:
    """Return blocks as a GeoJSON FeatureCollection.

    Args:
        limit: Maximum number of features.
        q: Text matched against the label column.
        bbox: Envelope as ``minx,miny,maxx,maxy``.
        settings: Application settings (injected via FastAPI Depends).
        repo: Feature repository (injected via FastAPI Depends).

    Returns:
        FeatureCollection response with ``Cache-Control: no-store``. An
        empty match gives ``{"type": "FeatureCollection", "features": []}``.
    """
    return _feature_collection("blocks", limit, q, bbox, settings, repo)


@router.get("/buildings")
def get_buildings(
    limit: str | None = None,
    q: str | None = None,
    bbox: str | None = None,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    repo: database.FeatureRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> responses.JSONResponse:
    """Return buildings as a GeoJSON FeatureCollection.

    Same filters and response as ``/blocks`` over the buildings table.
    """
    return _feature_collection("buildings", limit, q, bbox, settings, repo)


@router.get("/debug/{source_name}-stats")
def get_source_stats(
    source_name: str,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    repo: database.FeatureRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, Any]:
    """Report row count, SRID and extent of a source table.

    Raises:
        HTTPException: If the source is unknown (404 status code).

    Example:
        >>> client.get("/debug/buildings-stats").json()
        >>> # Returns: {"count": 1520, "srid": 4326,
        >>> #           "extent": "BOX(15.9 45.7,16.1 45.9)"}
    """
    stats = repo.stats(_get_source(source_name, settings))
    return {"count": stats.count, "srid": stats.srid, "extent": stats.extent}
