from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from supabase import Client

from deathflix_backend.models.actors import MovieCreditRecord, MovieRecord
from deathflix_backend.repositories.preflight import assert_core_table_exists


class MovieRepositoryError(RuntimeError):
    pass


def assert_core_movies_tables_exist(db: Client) -> None:
    assert_core_table_exists(db, "movies", error_cls=MovieRepositoryError)
    assert_core_table_exists(db, "movie_credits", error_cls=MovieRepositoryError)


def _raise_for_supabase_error(response: Any, context: str) -> None:
    if hasattr(response, "error") and response.error:
        raise MovieRepositoryError(f"Supabase error during {context}: {response.error}")


def upsert_movies(db: Client, movies: Iterable[MovieRecord], *, chunk_size: int = 200) -> dict[int, MovieRecord]:
    """Upsert movies keyed by tmdb_id; returns the stored rows keyed by tmdb_id."""

    deduped: dict[int, MovieRecord] = {}
    for movie in movies:
        deduped.setdefault(movie.tmdb_id, movie)
    payload = [movie.to_row() for movie in deduped.values()]

    stored: dict[int, MovieRecord] = {}
    for i in range(0, len(payload), chunk_size):
        chunk = payload[i : i + chunk_size]
        response = db.schema("core").table("movies").upsert(chunk, on_conflict="tmdb_id").execute()
        _raise_for_supabase_error(response, "upserting movies")
        for row in response.data or []:
            record = MovieRecord.from_row(row)
            stored[record.tmdb_id] = record
    return stored


def upsert_movie_credits(db: Client, credits: Iterable[MovieCreditRecord]) -> int:
    deduped: dict[tuple[int, int, str, str], MovieCreditRecord] = {}
    for credit in credits:
        deduped.setdefault((credit.actor_id, credit.movie_id, credit.credit_type, credit.character), credit)
    payload = [credit.to_row() for credit in deduped.values()]
    if not payload:
        return 0
    response = (
        db.schema("core")
        .table("movie_credits")
        .upsert(payload, on_conflict="actor_id,movie_id,credit_type,character")
        .execute()
    )
    _raise_for_supabase_error(response, "upserting movie credits")
    return len(payload)


def list_movie_credit_rows(db: Client, actor_id: int) -> list[dict[str, Any]]:
    response = (
        db.schema("core")
        .table("movie_credits")
        .select("character,department,credit_type,movie:movies(tmdb_id,title,release_date,poster_path)")
        .eq("actor_id", int(actor_id))
        .execute()
    )
    _raise_for_supabase_error(response, "listing movie credits")
    data = response.data or []
    return data if isinstance(data, list) else []
