import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1.router import api_v1_router
from app.core.config import settings, validate_settings_for_production
from app.core.exceptions import AppError, ConfigurationError
from app.core.logging import setup_logging
from app.core.metrics import PrometheusMiddleware, metrics_response
from app.core.middleware import RequestLoggingMiddleware
from app.core.rate_limit import limiter
from app.core.sentry import init_sentry
from app.db.postgres import create_tables, engine
from app.providers.registry import configured_providers

# Configure logging before anything else
setup_logging()
init_sentry("api")

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    logger.info("Starting Mention Tracker...")

    if settings.auto_create_tables:
        await create_tables()
        logger.info("Database tables ready")

    providers = sorted(configured_providers())
    if providers:
        logger.info("AI providers configured: %s", ", ".join(providers))
    else:
        logger.warning("No AI provider API keys configured; scans will be rejected")

    yield

    # Shutdown
    await engine.dispose()
    logger.info("Mention Tracker shut down")


app = FastAPI(
    title="Mention Tracker",
    description="Tracks brand mentions in AI assistant answers",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.app_debug else None,
    redoc_url="/api/redoc" if settings.app_debug else None,
)


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.detail)


@app.exception_handler(ConfigurationError)
async def _configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "error": "Scanning is not configured",
            "details": str(exc),
            "suggestion": "Check the AI provider API key configuration",
        },
    )


# Log unhandled exceptions with the full traceback
@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": type(exc).__name__})


# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Metrics + request logging middleware
app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS: parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_v1_router)


@app.get("/api/v1/health")
async def health():
    return {
        "status": "ok",
        "providers": sorted(configured_providers()),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()
