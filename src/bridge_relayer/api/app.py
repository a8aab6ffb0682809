"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from bridge_relayer import __version__
from bridge_relayer.api.attestations import router as attestations_router
from bridge_relayer.api.middleware.cors import setup_cors
from bridge_relayer.api.schemas import ErrorResponse
from bridge_relayer.api.transactions import router as transactions_router
from bridge_relayer.config.settings import AppConfig
from bridge_relayer.engine.client import BridgeRelayer
from bridge_relayer.errors.relayer_errors import RelayerError
from bridge_relayer.metrics.collector import RelayerMetrics
from bridge_relayer.metrics.middleware import PrometheusMiddleware
from bridge_relayer.utils.clock import now_ms

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=code, message=message, timestamp=now_ms())
    return JSONResponse(status_code=status_code, content=body.model_dump())


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle hooks.

    Restores the queue and starts the scheduler on startup; drains the
    scheduler and flushes the queue on exit.
    """
    relayer: BridgeRelayer = app.state.relayer
    try:
        if not relayer.is_initialized:
            await relayer.initialize()
        logger.info("Bridge relayer initialized")
        yield
    finally:
        await relayer.close()
        logger.info("Bridge relayer shut down")


def create_app(
    *,
    config: AppConfig | None = None,
    relayer: BridgeRelayer | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
        relayer: Optional pre-built relayer (tests). Built from *config*
            when omitted.
    """
    if config is None:
        config = relayer.config if relayer is not None else AppConfig()

    metrics: RelayerMetrics | None = None
    if relayer is None:
        if config.metrics.enabled:
            metrics = RelayerMetrics()
        relayer = BridgeRelayer(config, metrics=metrics)
    else:
        metrics = relayer.metrics

    app = FastAPI(
        title="bridge-relayer",
        version=__version__,
        description="Cross-chain bridge relayer",
        lifespan=_lifespan,
    )
    app.state.config = config
    app.state.relayer = relayer
    app.state.metrics = metrics

    # -- Middleware --
    setup_cors(app, config.server.cors_origin)
    if metrics is not None:
        app.add_middleware(PrometheusMiddleware, registry=metrics.registry)

    # -- Error handlers --
    @app.exception_handler(RelayerError)
    async def _relayer_error_handler(request: Request, exc: RelayerError) -> JSONResponse:
        return _error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return _error_response(400, "validation-error", details or "Invalid request")

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "internal-error", "Internal server error")

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str | int]:
        return {"status": "ok", "version": __version__, "timestamp": now_ms()}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        registry = metrics.registry if metrics is not None else None
        body = generate_latest(registry) if registry else generate_latest()
        return Response(
            content=body,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Mount API --
    api_router = APIRouter(prefix="/api")
    api_router.include_router(transactions_router)
    api_router.include_router(attestations_router)
    app.include_router(api_router)

    return app
