"""ASGI entrypoint of the feature query service.

``create_app`` wires the loguru sink, the origin guard, CORS, the
QueryError handler and the system and feature routers into one app.

Example:
    Serve it locally:
        $ uvicorn featuremap.main:app --port 8000
"""

import contextlib
from collections.abc import AsyncIterator, Awaitable, Callable

import fastapi
from fastapi import responses
from fastapi.middleware import cors
from loguru import logger

from featuremap.api import features, system
from featuremap.core import config
from featuremap.core import logging as core_logging
from featuremap.db import database


@contextlib.asynccontextmanager
async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
    """Log whether the database is reachable at startup.

    A failed check is only logged; requests report their own errors.
    """
    settings = config.get_settings()
    try:
        database.get_feature_repository(settings).ping()
    except database.QueryError as exc:
        logger.error("Failed to connect to PostgreSQL at startup: {}", exc)
    else:
        logger.info("Connected to PostgreSQL successfully")
    yield


async def query_error_handler(
    request: fastapi.Request, exc: Exception
) -> responses.JSONResponse:
    """Answer a failed database query with a JSON error and status 500."""
    logger.error("{} {} failed: {}", request.method, request.url.path, exc)
    return responses.JSONResponse(
        content={"error": str(exc)},
        status_code=500,
    )


def create_app() -> fastapi.FastAPI:
    """Build the feature query application.

    Requests from origins outside the allow list are answered with 403
    before they reach any handler.

    Returns:
        The FastAPI app; tests build a fresh one per case.
    """
    settings = config.get_settings()
    core_logging.configure_logging(settings.log_level)
    app = fastapi.FastAPI(
        title="Feature Map",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(system.router)
    app.include_router(features.router)
    app.add_exception_handler(database.QueryError, query_error_handler)

    @app.middleware("http")
    async def reject_foreign_origin(
        request: fastapi.Request,
        call_next: Callable[[fastapi.Request], Awaitable[responses.Response]],
    ) -> responses.Response:
        """Reject requests whose Origin is not allowed.

        Requests without an Origin header (curl, server-side clients) pass.
        """
        origin = request.headers.get("origin")
        if origin and not settings.origin_allowed(origin):
            logger.warning("Rejected request from origin {}", origin)
            return responses.JSONResponse(
                content={"error": f"CORS not allowed for origin: {origin}"},
                status_code=403,
            )
        return await call_next(request)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    return app


app = create_app()
