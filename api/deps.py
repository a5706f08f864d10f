"""
Dependency injection for Supabase and TMDb clients.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, HTTPException
from supabase import Client, create_client

from deathflix_backend.integrations.tmdb.client import TmdbClient, TmdbClientError
from deathflix_backend.utils.env import load_env

load_env()

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_url() -> str:
    url = os.getenv("SUPABASE_URL")
    if not url:
        raise RuntimeError("SUPABASE_URL environment variable is not set")
    return url


@lru_cache
def get_supabase_anon_key() -> str:
    key = os.getenv("SUPABASE_ANON_KEY")
    if not key:
        raise RuntimeError("SUPABASE_ANON_KEY environment variable is not set")
    return key


def get_supabase_client() -> Client:
    """
    Returns a Supabase client using the anon key (for public read operations).
    """
    return create_client(get_supabase_url(), get_supabase_anon_key())


@lru_cache
def get_tmdb_client() -> TmdbClient:
    return TmdbClient()


# Type aliases for dependency injection
SupabaseClient = Annotated[Client, Depends(get_supabase_client)]
Tmdb = Annotated[TmdbClient, Depends(get_tmdb_client)]


def raise_for_tmdb_error(exc: TmdbClientError, context: str = "TMDb request") -> None:
    """
    Map upstream TMDb failures to HTTP errors.

    Rate limiting (429) becomes 503 "temporarily unavailable"; anything else is a 502.
    """
    if exc.is_rate_limited:
        logger.warning("TMDb rate limited during %s", context)
        raise HTTPException(
            status_code=503,
            detail="TMDb is temporarily unavailable (rate limited); try again shortly",
            headers={"Retry-After": "10"},
        ) from exc
    logger.error("TMDb error during %s: %s (status=%s)", context, exc, exc.status_code)
    raise HTTPException(status_code=502, detail=f"Upstream error during {context}") from exc


def raise_for_repository_error(exc: Exception, context: str = "database operation") -> None:
    # Don't leak internal error details to client
    logger.error("Supabase error during %s: %s", context, exc)
    raise HTTPException(status_code=502, detail=f"Database error during {context}") from exc


def require_found(value: Any, entity_name: str = "Resource") -> Any:
    if value is None:
        raise HTTPException(status_code=404, detail=f"{entity_name} not found")
    return value
