"""
Repository layer for DB access patterns.
"""

from deathflix_backend.repositories.actors import (
    ActorRepositoryError,
    fetch_actors_by_tmdb_ids,
    select_actors_needing_death_check,
    select_actors_needing_details,
    update_actor_fields,
)
from deathflix_backend.repositories.death_records import DeathRecordRepositoryError, upsert_death_record

__all__ = [
    "ActorRepositoryError",
    "DeathRecordRepositoryError",
    "fetch_actors_by_tmdb_ids",
    "select_actors_needing_death_check",
    "select_actors_needing_details",
    "update_actor_fields",
    "upsert_death_record",
]
