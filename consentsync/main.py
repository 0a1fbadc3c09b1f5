"""consentsync FastAPI application.

Entry point: uvicorn consentsync.main:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from consentsync.config import settings
from consentsync.deps import create_backend, create_consent_manager
from consentsync.services.consent_store import RedisBackend

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    backend = create_backend()
    if isinstance(backend, RedisBackend):
        await backend.connect()
    app.state.consent_manager = create_consent_manager(backend)
    logger.info("app_startup", env=settings.APP_ENV, store_backend=settings.STORE_BACKEND)
    yield
    if isinstance(backend, RedisBackend):
        await backend.close()
    logger.info("app_shutdown")


app = FastAPI(
    title="consentsync API",
    description="Ad consent synchronization and merge engine",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.APP_ENV == "development" else None,
    redoc_url="/redoc" if settings.APP_ENV == "development" else None,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Exception handlers ---

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# --- Routers ---

from consentsync.routers.consent import router as consent_router  # noqa: E402

app.include_router(consent_router, prefix="/api", tags=["consent"])


# --- Health check ---

@app.get("/api/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}
