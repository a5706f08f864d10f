"""Typed views over TMDb person payloads."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, Mapping, TypeVar

from deathflix_backend.utils.dates import parse_date

T = TypeVar("T")


class TmdbPayloadError(ValueError):
    """Raised when a TMDb payload does not have the expected shape."""


def _require_int(payload: Mapping[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TmdbPayloadError(f"TMDb payload field {key!r} must be an integer, got {value!r}")
    return value


def _optional_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _optional_date(payload: Mapping[str, Any], key: str) -> date | None:
    value = payload.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = parse_date(value) if isinstance(value, str) else None
    if parsed is None:
        raise TmdbPayloadError(f"TMDb payload field {key!r} must be an ISO date, got {value!r}")
    return parsed


def _float_or_zero(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


@dataclass(frozen=True)
class TmdbPersonDetails:
    """TMDb person details from /3/person/{id}."""

    tmdb_id: int
    name: str | None = None
    biography: str | None = None
    birthday: date | None = None
    deathday: date | None = None
    place_of_birth: str | None = None
    profile_path: str | None = None
    popularity: float = 0.0
    gender: int = 0  # 0=not set, 1=female, 2=male, 3=non-binary

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TmdbPersonDetails":
        gender = payload.get("gender")
        return cls(
            tmdb_id=_require_int(payload, "id"),
            name=_optional_str(payload.get("name")),
            biography=_optional_str(payload.get("biography")),
            birthday=_optional_date(payload, "birthday"),
            deathday=_optional_date(payload, "deathday"),
            place_of_birth=_optional_str(payload.get("place_of_birth")),
            profile_path=_optional_str(payload.get("profile_path")),
            popularity=_float_or_zero(payload.get("popularity")),
            gender=gender if isinstance(gender, int) else 0,
        )


@dataclass(frozen=True)
class TmdbPersonSummary:
    """A person row from search or popular listings."""

    tmdb_id: int
    name: str
    profile_path: str | None = None
    known_for_department: str | None = None
    popularity: float = 0.0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TmdbPersonSummary":
        return cls(
            tmdb_id=_require_int(payload, "id"),
            name=_optional_str(payload.get("name")) or "",
            profile_path=_optional_str(payload.get("profile_path")),
            known_for_department=_optional_str(payload.get("known_for_department")),
            popularity=_float_or_zero(payload.get("popularity")),
        )


@dataclass(frozen=True)
class TmdbPage(Generic[T]):
    page: int
    total_pages: int
    total_results: int
    results: list[T] = field(default_factory=list)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass(frozen=True)
class TmdbMovieCredit:
    """One entry of /3/person/{id}/movie_credits (cast or crew)."""

    movie_tmdb_id: int
    title: str
    credit_type: str
    character: str = ""
    department: str = "Acting"
    release_date: date | None = None
    overview: str | None = None
    poster_path: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, credit_type: str) -> "TmdbMovieCredit":
        if credit_type == "cast":
            character = _optional_str(payload.get("character")) or ""
            department = "Acting"
        else:
            character = _optional_str(payload.get("job")) or ""
            department = _optional_str(payload.get("department")) or "Crew"
        return cls(
            movie_tmdb_id=_require_int(payload, "id"),
            title=_optional_str(payload.get("title")) or _optional_str(payload.get("original_title")) or "",
            credit_type=credit_type,
            character=character,
            department=department,
            release_date=parse_date(payload.get("release_date")),
            overview=_optional_str(payload.get("overview")),
            poster_path=_optional_str(payload.get("poster_path")),
        )


@dataclass(frozen=True)
class TmdbExportPerson:
    """One line of the daily `person_ids_*.json.gz` export."""

    tmdb_id: int
    name: str
    popularity: float = 0.0
    adult: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TmdbExportPerson":
        name = _optional_str(payload.get("name"))
        if not name:
            raise TmdbPayloadError(f"export record {payload.get('id')!r} has no name")
        # Popularity is never negative in the store.
        return cls(
            tmdb_id=_require_int(payload, "id"),
            name=name,
            popularity=max(0.0, _float_or_zero(payload.get("popularity"))),
            adult=bool(payload.get("adult", False)),
        )
