from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping

from deathflix_backend.utils.dates import isoformat_or_none, parse_date, parse_datetime


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ActorRecord:
    """
    Canonical actor record (maps to `core.actors`).

    `last_details_check` / `last_death_check` are None until the actor has been checked once.
    """

    tmdb_id: int
    name: str
    id: int | None = None
    biography: str | None = None
    place_of_birth: str | None = None
    date_of_birth: date | None = None
    date_of_death: date | None = None
    popularity: float = 0.0
    profile_path: str | None = None
    last_details_check: datetime | None = None
    last_death_check: datetime | None = None

    @property
    def is_deceased(self) -> bool:
        return self.date_of_death is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ActorRecord":
        return cls(
            id=row.get("id"),
            tmdb_id=int(row["tmdb_id"]),
            name=str(row.get("name") or ""),
            biography=_optional_text(row.get("biography")),
            place_of_birth=_optional_text(row.get("place_of_birth")),
            date_of_birth=parse_date(row.get("date_of_birth")),
            date_of_death=parse_date(row.get("date_of_death")),
            popularity=float(row.get("popularity") or 0.0),
            profile_path=_optional_text(row.get("profile_path")),
            last_details_check=parse_datetime(row.get("last_details_check")),
            last_death_check=parse_datetime(row.get("last_death_check")),
        )

    def to_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "tmdb_id": self.tmdb_id,
            "name": self.name,
            "biography": self.biography,
            "place_of_birth": self.place_of_birth,
            "date_of_birth": isoformat_or_none(self.date_of_birth),
            "date_of_death": isoformat_or_none(self.date_of_death),
            "popularity": self.popularity,
            "profile_path": self.profile_path,
            "last_details_check": isoformat_or_none(self.last_details_check),
            "last_death_check": isoformat_or_none(self.last_death_check),
        }
        if self.id is not None:
            row["id"] = self.id
        return row


@dataclass(frozen=True)
class DeathRecord:
    actor_id: int
    date_of_death: date
    last_verified: datetime
    id: int | None = None
    cause_of_death: str | None = None
    place_of_death: str | None = None
    additional_details: str | None = None
    source_url: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DeathRecord":
        date_of_death = parse_date(row.get("date_of_death"))
        last_verified = parse_datetime(row.get("last_verified"))
        if date_of_death is None or last_verified is None:
            raise ValueError(f"death record row is missing required dates: {dict(row)!r}")
        return cls(
            id=row.get("id"),
            actor_id=int(row["actor_id"]),
            date_of_death=date_of_death,
            last_verified=last_verified,
            cause_of_death=_optional_text(row.get("cause_of_death")),
            place_of_death=_optional_text(row.get("place_of_death")),
            additional_details=_optional_text(row.get("additional_details")),
            source_url=_optional_text(row.get("source_url")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "date_of_death": self.date_of_death.isoformat(),
            "last_verified": self.last_verified.isoformat(),
            "cause_of_death": self.cause_of_death,
            "place_of_death": self.place_of_death,
            "additional_details": self.additional_details,
            "source_url": self.source_url,
        }


@dataclass(frozen=True)
class MovieRecord:
    tmdb_id: int
    title: str
    id: int | None = None
    release_date: date | None = None
    overview: str | None = None
    poster_path: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MovieRecord":
        return cls(
            id=row.get("id"),
            tmdb_id=int(row["tmdb_id"]),
            title=str(row.get("title") or ""),
            release_date=parse_date(row.get("release_date")),
            overview=_optional_text(row.get("overview")),
            poster_path=_optional_text(row.get("poster_path")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "tmdb_id": self.tmdb_id,
            "title": self.title,
            "release_date": isoformat_or_none(self.release_date),
            "overview": self.overview,
            "poster_path": self.poster_path,
        }


@dataclass(frozen=True)
class MovieCreditRecord:
    actor_id: int
    movie_id: int
    character: str = ""
    department: str = "Acting"
    credit_type: str = "cast"  # cast | crew

    def to_row(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "movie_id": self.movie_id,
            "character": self.character,
            "department": self.department,
            "credit_type": self.credit_type,
        }
