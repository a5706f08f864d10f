"""
Read endpoints for tracked actors, plus upstream TMDb search.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Literal

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.deps import (
    SupabaseClient,
    Tmdb,
    raise_for_repository_error,
    raise_for_tmdb_error,
    require_found,
)
from deathflix_backend.integrations.tmdb.client import TmdbClientError
from deathflix_backend.models.actors import ActorRecord
from deathflix_backend.repositories.actors import ActorRepositoryError, fetch_actor_by_id, list_actors
from deathflix_backend.repositories.death_records import DeathRecordRepositoryError, fetch_death_record_for_actor
from deathflix_backend.repositories.movies import MovieRepositoryError, list_movie_credit_rows

router = APIRouter(prefix="/actors", tags=["actors"])


# --- Pydantic models ---

class Actor(BaseModel):
    id: int
    tmdb_id: int
    name: str
    biography: str | None = None
    place_of_birth: str | None = None
    date_of_birth: date | None = None
    date_of_death: date | None = None
    popularity: float
    profile_path: str | None = None
    is_deceased: bool

    @classmethod
    def from_record(cls, record: ActorRecord) -> "Actor":
        return cls(
            id=record.id or 0,
            tmdb_id=record.tmdb_id,
            name=record.name,
            biography=record.biography,
            place_of_birth=record.place_of_birth,
            date_of_birth=record.date_of_birth,
            date_of_death=record.date_of_death,
            popularity=record.popularity,
            profile_path=record.profile_path,
            is_deceased=record.is_deceased,
        )


class DeathDetails(BaseModel):
    date_of_death: date
    cause_of_death: str | None = None
    place_of_death: str | None = None
    source_url: str | None = None


class Credit(BaseModel):
    character: str | None = None
    department: str | None = None
    credit_type: str | None = None
    movie: dict[str, Any] | None = None


class ActorDetail(Actor):
    death: DeathDetails | None = None
    credits: list[Credit] = []


class ActorPage(BaseModel):
    page: int
    page_size: int
    total: int
    results: list[Actor]


class SearchResult(BaseModel):
    tmdb_id: int
    name: str
    profile_path: str | None = None
    known_for_department: str | None = None


class SearchPage(BaseModel):
    page: int
    total_pages: int
    total_results: int
    results: list[SearchResult]


SortColumn = Literal["id", "name", "popularity", "date_of_birth", "date_of_death"]


def _actor_page(
    db: SupabaseClient,
    *,
    page: int,
    page_size: int,
    sort_by: str,
    descending: bool,
    deceased_only: bool,
) -> ActorPage:
    try:
        records, total = list_actors(
            db,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            descending=descending,
            deceased_only=deceased_only,
        )
    except ActorRepositoryError as exc:
        raise_for_repository_error(exc, "listing actors")
    return ActorPage(page=page, page_size=page_size, total=total, results=[Actor.from_record(r) for r in records])


@router.get("", response_model=ActorPage)
def get_actors(
    db: SupabaseClient,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    sort_by: SortColumn = "popularity",
    descending: bool = True,
) -> ActorPage:
    return _actor_page(
        db, page=page, page_size=page_size, sort_by=sort_by, descending=descending, deceased_only=False
    )


@router.get("/deceased", response_model=ActorPage)
def get_deceased_actors(
    db: SupabaseClient,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    sort_by: SortColumn = "date_of_death",
    descending: bool = True,
) -> ActorPage:
    return _actor_page(db, page=page, page_size=page_size, sort_by=sort_by, descending=descending, deceased_only=True)


@router.get("/search", response_model=SearchPage)
def search_actors(
    tmdb: Tmdb,
    query: str = Query(min_length=1),
    page: int = Query(default=1, ge=1),
) -> SearchPage:
    try:
        result = tmdb.search_people(query, page=page)
    except TmdbClientError as exc:
        raise_for_tmdb_error(exc, "actor search")
    return SearchPage(
        page=result.page,
        total_pages=result.total_pages,
        total_results=result.total_results,
        results=[
            SearchResult(
                tmdb_id=p.tmdb_id,
                name=p.name,
                profile_path=p.profile_path,
                known_for_department=p.known_for_department,
            )
            for p in result.results
        ],
    )


@router.get("/{actor_id}", response_model=ActorDetail)
def get_actor(actor_id: int, db: SupabaseClient) -> ActorDetail:
    try:
        record = require_found(fetch_actor_by_id(db, actor_id), "Actor")
        death = fetch_death_record_for_actor(db, actor_id) if record.is_deceased else None
        credit_rows = list_movie_credit_rows(db, actor_id)
    except (ActorRepositoryError, DeathRecordRepositoryError, MovieRepositoryError) as exc:
        raise_for_repository_error(exc, "fetching actor")

    actor = Actor.from_record(record)
    return ActorDetail(
        **actor.model_dump(),
        death=(
            DeathDetails(
                date_of_death=death.date_of_death,
                cause_of_death=death.cause_of_death,
                place_of_death=death.place_of_death,
                source_url=death.source_url,
            )
            if death is not None
            else None
        ),
        credits=[Credit(**row) for row in credit_rows],
    )
