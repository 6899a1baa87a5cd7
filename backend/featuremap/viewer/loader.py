"""Feature collection ingestion from JSON text, files and the network.

``parse_collection`` validates a raw GeoJSON FeatureCollection and builds
the canonical in-memory form, including the property key union and the
bounds of every geometry. It never touches session state, so a malformed
import leaves the current view exactly as it was.

Example:
    Fetch the buildings served by the query service:
        >>> from featuremap.viewer import loader
        >>> collection = await loader.fetch_collection(
        ...     "http://localhost:8000/buildings",
        ...     {"q": "school", "limit": 200},
        ... )
        >>> collection.key_union
        ('gid', 'name', 'height')
"""

from __future__ import annotations

import copy
import json
from typing import TYPE_CHECKING, Any

import anyio
import httpx
from loguru import logger

from featuremap.utils import geometry
from featuremap.viewer import errors, models

if TYPE_CHECKING:
    import os
    from collections.abc import Iterable, Mapping

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}
FETCH_TIMEOUT = 30.0


def property_key_union(
    properties: Iterable[Mapping[str, Any]],
) -> tuple[str, ...]:
    """Collect property names in first-seen order without duplicates."""
    keys: dict[str, None] = {}
    for props in properties:
        for key in props:
            keys.setdefault(key, None)
    return tuple(keys)


def _decode(raw: str | bytes | bytearray | Mapping[str, Any]) -> Any:
    if isinstance(raw, bytes | bytearray):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise errors.ParseError("Invalid GeoJSON file encoding.") from exc
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise errors.ParseError(f"Invalid GeoJSON file: {exc}") from exc
    return raw


def _parse_feature(index: int, raw: Any) -> models.Feature:
    if not isinstance(raw, dict) or raw.get("type") != "Feature":
        raise errors.ParseError(f"Feature {index} is not a GeoJSON Feature.")

    properties = raw.get("properties")
    if properties is None:
        properties = {}
    if not isinstance(properties, dict):
        raise errors.ParseError(f"Feature {index} has invalid properties.")

    geom = raw.get("geometry")
    if geom is not None and not isinstance(geom, dict):
        raise errors.ParseError(f"Feature {index} has invalid geometry.")
    try:
        bbox = geometry.geometry_bounds(geom)
    except geometry.GeometryError as exc:
        raise errors.ParseError(f"Feature {index}: {exc}") from exc

    return models.Feature(
        geometry=copy.deepcopy(geom),
        properties=models.freeze_properties(copy.deepcopy(properties)),
        feature_id=raw.get("id"),
        bbox=bbox,
    )


def parse_collection(
    raw: str | bytes | bytearray | Mapping[str, Any],
) -> models.FeatureCollection:
    """Validate a raw import and build the in-memory collection.

    Args:
        raw: JSON text, UTF-8 bytes, or an already decoded mapping shaped
            ``{"type": "FeatureCollection", "features": [...]}``.

    Returns:
        FeatureCollection with its key union and overall bounds.

    Raises:
        ParseError: If the input is not valid JSON, is not a
            FeatureCollection, or contains an invalid feature.
    """
    document = _decode(raw)
    if (
        not isinstance(document, dict)
        or document.get("type") != "FeatureCollection"
        or not isinstance(document.get("features"), list)
    ):
        raise errors.ParseError("Invalid GeoJSON file.")

    features = tuple(
        _parse_feature(index, item)
        for index, item in enumerate(document["features"])
    )
    return models.FeatureCollection(
        features=features,
        key_union=property_key_union(f.properties for f in features),
        bounds=geometry.merge_bounds(f.bbox for f in features),
    )


async def read_collection_file(
    path: str | os.PathLike[str],
) -> models.FeatureCollection:
    """Read and parse a GeoJSON file.

    Raises:
        ParseError: If the file cannot be read or is not a valid
            FeatureCollection.
    """
    try:
        data = await anyio.Path(path).read_bytes()
    except OSError as exc:
        raise errors.ParseError(f"Cannot read {path}: {exc}") from exc
    logger.info("Read {} bytes from {}", len(data), path)
    return parse_collection(data)


async def fetch_collection(
    url: str,
    params: Mapping[str, Any] | None = None,
    client: httpx.AsyncClient | None = None,
) -> models.FeatureCollection:
    """Fetch a FeatureCollection, bypassing HTTP caches.

    Args:
        url: Endpoint returning GeoJSON, e.g. ``/buildings``.
        params: Query parameters such as ``limit``, ``q`` and ``bbox``.
        client: Client to reuse; a short-lived one is created otherwise.

    Returns:
        The parsed collection.

    Raises:
        NetworkError: On transport failure or a non-2xx response; carries
            the status and the response body.
        ParseError: If the response body is not a FeatureCollection.
    """
    query = {k: v for k, v in (params or {}).items() if v is not None}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=FETCH_TIMEOUT) as own:
                response = await own.get(
                    url, params=query, headers=NO_CACHE_HEADERS
                )
        else:
            response = await client.get(
                url, params=query, headers=NO_CACHE_HEADERS
            )
    except httpx.HTTPError as exc:
        logger.warning("Fetching {} failed: {}", url, exc)
        raise errors.NetworkError(None, str(exc)) from exc

    if not response.is_success:
        raise errors.NetworkError(response.status_code, response.text)
    return parse_collection(response.content)
