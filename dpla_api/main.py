"""
FastAPI application entry point.
Challenge: Mount routes, middleware (Prometheus), error rendering, ES client shutdown.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from dpla_api.api.v2.router import api_router
from dpla_api.config import get_settings
from dpla_api.core.errors import ApiError, BackendFailure, InternalError
from dpla_api.search.elasticsearch_client import close_elasticsearch

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Shutdown: close the shared Elasticsearch client."""
    yield
    await close_elasticsearch()


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render every ApiError as {message, code} with the matching status."""
    if isinstance(exc, BackendFailure):
        logger.error("Search backend failure on %s", request.url.path, exc_info=exc)
    elif isinstance(exc, InternalError):
        logger.error("Internal error on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=int(exc.status_code), content=exc.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title=settings.app_name,
        description="Search API over the DPLA item index: parameter validation, Elasticsearch query building, response mapping.",
        version="2.0.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS for frontend/API consumers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics at /metrics
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    app.add_exception_handler(ApiError, api_error_handler)
    app.include_router(api_router)

    return app


app = create_app()
