"""
Deathflix API - FastAPI application.

Provides endpoints for:
- Browsing tracked actors and their death records / filmography
- Searching TMDb for people

Set DEATHFLIX_RUN_SCHEDULER=1 to run the TMDb sync scheduler inside the API process.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import actors
from deathflix_backend.utils.logging_setup import init_logging

logger = logging.getLogger(__name__)


def get_cors_origins() -> list[str]:
    """Browser origins allowed to read the actor API (`CORS_ALLOW_ORIGINS`, comma separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def scheduler_enabled() -> bool:
    return (os.getenv("DEATHFLIX_RUN_SCHEDULER") or "").strip().lower() in {"1", "true", "yes"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    init_logging()
    logger.info("Starting up Deathflix API...")
    scheduler = None
    if scheduler_enabled():
        from deathflix_backend.db.supabase import create_supabase_admin_client
        from deathflix_backend.ingestion.scheduler import SyncScheduler
        from deathflix_backend.ingestion.settings import SyncSettings
        from deathflix_backend.integrations.tmdb.client import TmdbClient

        scheduler = SyncScheduler(
            db_factory=create_supabase_admin_client,
            client_factory=TmdbClient,
            settings=SyncSettings.from_env(),
        )
        scheduler.start()
    yield
    logger.info("Shutting down Deathflix API...")
    if scheduler is not None:
        scheduler.stop(timeout=30)


app = FastAPI(
    title="Deathflix API",
    description="Actors, death records and filmography synchronized from TMDb",
    version="0.1.0",
    lifespan=lifespan,
)

# No configured origins: any origin may read, credentials off.
cors_origins = get_cors_origins()
allow_credentials = len(cors_origins) > 0

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if cors_origins else ["*"],
    allow_credentials=allow_credentials,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(actors.router, prefix="/api/v1")


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "deathflix-backend"}


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
