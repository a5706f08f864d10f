"""
Domain models shared across scripts and services.
"""

from deathflix_backend.models.actors import ActorRecord, DeathRecord, MovieCreditRecord, MovieRecord
from deathflix_backend.models.tmdb import (
    TmdbExportPerson,
    TmdbMovieCredit,
    TmdbPage,
    TmdbPayloadError,
    TmdbPersonDetails,
    TmdbPersonSummary,
)

__all__ = [
    "ActorRecord",
    "DeathRecord",
    "MovieCreditRecord",
    "MovieRecord",
    "TmdbExportPerson",
    "TmdbMovieCredit",
    "TmdbPage",
    "TmdbPayloadError",
    "TmdbPersonDetails",
    "TmdbPersonSummary",
]
