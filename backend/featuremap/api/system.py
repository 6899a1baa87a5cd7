"""Service banner, database health check and connection diagnostics."""

from typing import Any

import fastapi
from fastapi import responses

from featuremap.api import features
from featuremap.db import database

router = fastapi.APIRouter(tags=["system"])

BANNER = (
    "Feature map API is running.\n"
    "Try /health, /whoami, /blocks, /buildings\n"
)


@router.get("/", response_class=responses.PlainTextResponse)
def index() -> str:
    return BANNER


@router.get("/health")
def health(
    repo: database.FeatureRepositoryProtocol = fastapi.Depends(features._get_repo),  # noqa: B008
) -> responses.JSONResponse:
    """Health check that round-trips a query to the database.

    Returns:
        ``{"ok": true}``, or ``{"ok": false, "error": ...}`` with status 500
        when the database cannot be reached.
    """
    try:
        repo.ping()
    except database.QueryError as exc:
        return responses.JSONResponse(
            content={"ok": False, "error": str(exc)},
            status_code=500,
        )
    return responses.JSONResponse(content={"ok": True})


@router.get("/whoami")
def whoami(
    repo: database.FeatureRepositoryProtocol = fastapi.Depends(features._get_repo),  # noqa: B008
) -> dict[str, Any]:
    """Report the database user and the client/server endpoints.

    Returns:
        Dictionary with ``current_user``, ``client_ip``, ``server_ip`` and
        ``server_port``.
    """
    return repo.whoami()
