from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from typing import Any

from supabase import Client

from deathflix_backend.models.actors import ActorRecord
from deathflix_backend.repositories.preflight import assert_core_table_exists

ACTOR_SORT_COLUMNS = frozenset({"id", "name", "popularity", "date_of_birth", "date_of_death"})

_NEVER = datetime.min.replace(tzinfo=UTC)


class ActorRepositoryError(RuntimeError):
    pass


def assert_core_actors_table_exists(db: Client) -> None:
    assert_core_table_exists(db, "actors", error_cls=ActorRepositoryError)


def _raise_for_supabase_error(response: Any, context: str) -> None:
    if hasattr(response, "error") and response.error:
        raise ActorRepositoryError(f"Supabase error during {context}: {response.error}")


def _rows(response: Any) -> list[dict[str, Any]]:
    data = response.data or []
    return data if isinstance(data, list) else []


def _actors_table(db: Client):
    return db.schema("core").table("actors")


def count_actors(db: Client) -> int:
    response = _actors_table(db).select("id", count="exact").limit(1).execute()
    _raise_for_supabase_error(response, "counting actors")
    count = getattr(response, "count", None)
    return int(count) if isinstance(count, int) else len(_rows(response))


def fetch_actor_by_id(db: Client, actor_id: int) -> ActorRecord | None:
    response = _actors_table(db).select("*").eq("id", int(actor_id)).limit(1).execute()
    _raise_for_supabase_error(response, "fetching actor by id")
    rows = _rows(response)
    return ActorRecord.from_row(rows[0]) if rows else None


def fetch_actors_by_tmdb_ids(
    db: Client,
    tmdb_ids: Iterable[int],
    *,
    chunk_size: int = 200,
) -> dict[int, ActorRecord]:
    ids = sorted({int(i) for i in tmdb_ids})
    if not ids:
        return {}

    actors: dict[int, ActorRecord] = {}
    for i in range(0, len(ids), chunk_size):
        chunk = ids[i : i + chunk_size]
        response = _actors_table(db).select("*").in_("tmdb_id", chunk).execute()
        _raise_for_supabase_error(response, "listing actors by tmdb id")
        for row in _rows(response):
            actor = ActorRecord.from_row(row)
            actors[actor.tmdb_id] = actor
    return actors


def fetch_actor_tmdb_ids(db: Client, *, page_size: int = 1000) -> set[int]:
    tmdb_ids: set[int] = set()
    start = 0
    while True:
        response = _actors_table(db).select("tmdb_id").order("id").range(start, start + page_size - 1).execute()
        _raise_for_supabase_error(response, "listing actor tmdb ids")
        rows = _rows(response)
        tmdb_ids.update(int(row["tmdb_id"]) for row in rows)
        if len(rows) < page_size:
            return tmdb_ids
        start += page_size


def upsert_actor_basics(db: Client, rows: Iterable[Mapping[str, Any]]) -> int:
    """
    Insert-or-update `(tmdb_id, name, popularity)` rows keyed by tmdb_id in a single call.

    Columns not present in the payload keep their stored values (or defaults for new rows).
    """

    payload = [
        {"tmdb_id": int(r["tmdb_id"]), "name": r["name"], "popularity": float(r["popularity"])} for r in rows
    ]
    if not payload:
        return 0
    response = _actors_table(db).upsert(payload, on_conflict="tmdb_id").execute()
    _raise_for_supabase_error(response, "upserting actors")
    return len(payload)


def upsert_actors(db: Client, actors: Iterable[ActorRecord]) -> list[ActorRecord]:
    payload = []
    for actor in actors:
        row = actor.to_row()
        row.pop("id", None)
        payload.append(row)
    if not payload:
        return []
    response = _actors_table(db).upsert(payload, on_conflict="tmdb_id").execute()
    _raise_for_supabase_error(response, "upserting actors")
    return [ActorRecord.from_row(row) for row in _rows(response)]


def update_actor_fields(db: Client, actor_id: int | None, changes: Mapping[str, Any]) -> ActorRecord:
    """
    Patch only the given columns of one actor.

    Columns not named in `changes` keep whatever another job wrote meanwhile.
    A None `date_of_death` is dropped from the patch, so a death date is never cleared.
    """

    if actor_id is None:
        raise ActorRepositoryError("Cannot update an actor without an id.")
    patch: dict[str, Any] = {}
    for column, value in changes.items():
        if column in ("id", "tmdb_id"):
            continue
        if column == "date_of_death" and value is None:
            continue
        patch[column] = value.isoformat() if isinstance(value, (date, datetime)) else value
    if not patch:
        existing = fetch_actor_by_id(db, actor_id)
        if existing is None:
            raise ActorRepositoryError(f"Actor id={actor_id} not found.")
        return existing
    response = _actors_table(db).update(patch).eq("id", int(actor_id)).execute()
    _raise_for_supabase_error(response, "updating actor")
    rows = _rows(response)
    if not rows:
        raise ActorRepositoryError(f"Supabase update returned no data for actor id={actor_id}.")
    return ActorRecord.from_row(rows[0])


def select_actors_needing_details(
    db: Client,
    *,
    limit: int,
    stale_before: datetime,
) -> list[ActorRecord]:
    """
    Actors that were never checked, or are alive and last checked before `stale_before`.

    Ordered by popularity (desc), then staleness with never-checked first.
    """

    if limit <= 0:
        return []
    never_checked = (
        _actors_table(db)
        .select("*")
        .is_("last_details_check", "null")
        .order("popularity", desc=True)
        .limit(limit)
        .execute()
    )
    _raise_for_supabase_error(never_checked, "listing never-checked actors")
    stale = (
        _actors_table(db)
        .select("*")
        .is_("date_of_death", "null")
        .lt("last_details_check", stale_before.isoformat())
        .order("popularity", desc=True)
        .order("last_details_check")
        .limit(limit)
        .execute()
    )
    _raise_for_supabase_error(stale, "listing stale actors")

    candidates = [ActorRecord.from_row(row) for row in _rows(never_checked) + _rows(stale)]
    candidates.sort(key=lambda a: (-a.popularity, a.last_details_check or _NEVER))
    return candidates[:limit]


def select_actors_needing_death_check(
    db: Client,
    *,
    limit: int,
    checked_before: datetime,
) -> list[ActorRecord]:
    """
    Alive actors whose death status was never checked or last checked before `checked_before`.

    Ordered by staleness, never-checked first.
    """

    if limit <= 0:
        return []
    never_checked = (
        _actors_table(db)
        .select("*")
        .is_("date_of_death", "null")
        .is_("last_death_check", "null")
        .order("id")
        .limit(limit)
        .execute()
    )
    _raise_for_supabase_error(never_checked, "listing never-death-checked actors")
    rows = _rows(never_checked)
    remaining = limit - len(rows)
    if remaining > 0:
        stale = (
            _actors_table(db)
            .select("*")
            .is_("date_of_death", "null")
            .lt("last_death_check", checked_before.isoformat())
            .order("last_death_check")
            .limit(remaining)
            .execute()
        )
        _raise_for_supabase_error(stale, "listing stale death checks")
        rows = rows + _rows(stale)
    return [ActorRecord.from_row(row) for row in rows[:limit]]


def delete_actors_below_popularity(db: Client, threshold: float) -> int:
    """Delete actors under `threshold`; death records and credits go with them (FK cascade)."""
    response = _actors_table(db).delete().lt("popularity", float(threshold)).execute()
    _raise_for_supabase_error(response, "deleting actors below popularity threshold")
    return len(_rows(response))


def list_actors(
    db: Client,
    *,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "popularity",
    descending: bool = True,
    deceased_only: bool = False,
) -> tuple[list[ActorRecord], int]:
    if sort_by not in ACTOR_SORT_COLUMNS:
        raise ActorRepositoryError(f"Unsupported sort column: {sort_by!r}")
    page = max(1, int(page))
    page_size = max(1, int(page_size))
    start = (page - 1) * page_size

    query = _actors_table(db).select("*", count="exact")
    if deceased_only:
        query = query.not_.is_("date_of_death", "null")
    response = query.order(sort_by, desc=descending).range(start, start + page_size - 1).execute()
    _raise_for_supabase_error(response, "listing actors")
    rows = _rows(response)
    total = getattr(response, "count", None)
    return [ActorRecord.from_row(row) for row in rows], int(total) if isinstance(total, int) else len(rows)
