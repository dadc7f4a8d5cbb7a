"""
LifeTube - Main FastAPI Application

Video sharing backend: upload, browse, comment, like, subscribe.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import make_asgi_app
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifetube.core.config import get_settings
from lifetube.core.database import init_db
from lifetube.core.errors import LifeTubeError
from lifetube.core.upload_limit import UploadSizeLimitMiddleware
from lifetube.schemas.schemas import HealthResponse
from lifetube.services.storage.storage_service import LocalStorage, get_storage

settings = get_settings()

# ── Logging ──────────────────────────────────────────────────────────────

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level)
    ),
)
logging.basicConfig(level=settings.log_level)

logger = structlog.get_logger()


# ── Lifespan ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    logger.info("Starting LifeTube", version=settings.app_version, environment=settings.environment)

    await init_db()

    storage = get_storage()
    if isinstance(storage, LocalStorage):
        storage.ensure_dirs()
    Path(settings.temp_dir).mkdir(parents=True, exist_ok=True)

    logger.info(
        "LifeTube ready",
        storage=settings.storage_backend,
        allowed_origins=settings.cors_origins,
    )

    yield

    logger.info("Shutting down LifeTube")


# ── App ──────────────────────────────────────────────────────────────────

app = FastAPI(
    title="LifeTube",
    description="Video sharing backend",
    version=settings.app_version,
    lifespan=lifespan,
)

# Upload request cap (sits inside CORS)
app.add_middleware(
    UploadSizeLimitMiddleware,
    path=f"{settings.api_prefix}/videos/upload",
    max_bytes=settings.max_upload_request_bytes,
)

# CORS: requests without an Origin header (curl, mobile apps) pass untouched
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

if settings.storage_backend == "local":
    app.mount(
        settings.static_prefix,
        StaticFiles(directory=settings.uploads_dir, check_dir=False),
        name="uploads",
    )


# ── Error translation ────────────────────────────────────────────────────

@app.exception_handler(LifeTubeError)
async def lifetube_error_handler(request: Request, exc: LifeTubeError):
    body = {"error": exc.message}
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message, cause=repr(exc.__cause__))
        if not settings.is_production and exc.__cause__ is not None:
            body["message"] = str(exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "Something went wrong" if settings.is_production else str(exc),
        },
    )


# ── Routes ───────────────────────────────────────────────────────────────

from lifetube.api.routes import comments, users, videos

app.include_router(videos.router, prefix=settings.api_prefix)
app.include_router(comments.router, prefix=settings.api_prefix)
app.include_router(users.router, prefix=settings.api_prefix)


@app.get(f"{settings.api_prefix}/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        message="LifeTube API is running",
        environment=settings.environment,
        allowed_origins=settings.cors_origins,
    )
