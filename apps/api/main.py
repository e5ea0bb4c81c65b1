"""
Clip Catalog - FastAPI Backend
Main application entry point with health check and API routing.
"""

import logging
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import InterfaceError, OperationalError

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    catalog,
    playback,
    commands,
    moderation,
    category,
    votes,
)
from services.errors import CatalogError, NotFoundError, StoreUnavailableError


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    configure_logging()
    print("🚀 Starting Clip Catalog API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    print(f"🎬 Runtime state backend: {settings.STATE_BACKEND}")
    yield
    # Shutdown
    print("👋 Shutting down API...")


app = FastAPI(
    title="Clip Catalog API",
    description="Sequence-numbered clip catalog with synchronized playback and moderator commands",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    content = {"error": str(exc)}
    if isinstance(exc, NotFoundError) and exc.max_seq:
        content["valid_range"] = [1, exc.max_seq]
    if isinstance(exc, StoreUnavailableError):
        content["unavailable"] = True
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"error": "Clip store unavailable. Retry shortly.", "unavailable": True},
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(catalog.router, prefix="/catalog", tags=["Catalog"])
app.include_router(playback.router, prefix="/playback", tags=["Playback"])
app.include_router(commands.router, prefix="/commands", tags=["Commands"])
app.include_router(moderation.router, prefix="/moderation", tags=["Moderation"])
app.include_router(category.router, prefix="/category", tags=["Category"])
app.include_router(votes.router, prefix="/votes", tags=["Votes"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Clip Catalog API",
        "version": "0.1.0",
        "status": "running"
    }
