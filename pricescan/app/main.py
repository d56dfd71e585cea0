from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.endpoints.analyze import failure_response
from .api.endpoints.root import router as root_router
from .api.router import router as api_router
from .core.config import Settings, settings as default_settings
from .core.errors import UploadValidationError, UpstreamError
from .core.llm import build_vision_client
from .observability import otel
from .observability.llm_obs import configure_llm_obs
from .observability.logging import get_logger, setup_logging
from .observability.metrics import MetricsMiddleware, metrics_router
from .observability.middleware import TraceLoggingMiddleware
from .services.appraiser import ImageAppraiser, VisionClient

logger = get_logger("main")


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.warning(
        "Rejected malformed request",
        extra={"path": request.url.path, "errors": str(exc.errors())[:500]},
    )
    return failure_response(UploadValidationError("Malformed multipart request"))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return failure_response(UpstreamError("Unhandled error"))


def create_app(
    settings: Optional[Settings] = None,
    vision_client: Optional[VisionClient] = None,
) -> FastAPI:
    """
    Application factory.

    - Sets up JSON logging with trace/span IDs
    - Builds the vision client and the appraisal pipeline once, on app.state
    - Configures OpenTelemetry and LangSmith tracing (when enabled)
    - Attaches HTTP middlewares (CORS, tracing logs, metrics)
    - Registers the root, /api routes and the metrics endpoint
    """
    cfg = settings or default_settings

    setup_logging(cfg.app.log_level)

    app = FastAPI(
        title=cfg.app.name,
        version="0.1.0",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    vision_cfg = cfg.vision
    app.state.settings = cfg
    app.state.appraiser = ImageAppraiser(
        vision=vision_cfg,
        upload=cfg.upload,
        client=vision_client or build_vision_client(vision_cfg),
    )

    # Observability: tracing via OTLP to Alloy -> Tempo
    otel.init_otel(app, cfg)
    configure_llm_obs(cfg.llm_obs)

    # Middlewares
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.app.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_middleware(TraceLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(root_router)
    app.include_router(api_router, prefix="/api")

    # Metrics endpoint (root-level /metrics)
    app.include_router(metrics_router)

    if not vision_cfg.has_credential:
        logger.warning("OPENAI_API_KEY is not set; /api/analyze will answer 500")

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured host/port."""
    import uvicorn

    cfg = default_settings.app
    uvicorn.run(
        "pricescan.app.main:app",
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
    )


app = create_app()
