"""
TMDb sync jobs that populate `core.actors` and friends.
"""

from deathflix_backend.ingestion.actor_details import refresh_actor_details, update_actors_batch
from deathflix_backend.ingestion.death_checks import check_for_deaths
from deathflix_backend.ingestion.scheduler import SyncProgress, SyncScheduler, run_details_cycle, run_primary_cycle
from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.ingestion.tmdb_export import run_export_ingestion

__all__ = [
    "SyncProgress",
    "SyncScheduler",
    "SyncSettings",
    "check_for_deaths",
    "refresh_actor_details",
    "run_details_cycle",
    "run_export_ingestion",
    "run_primary_cycle",
    "update_actors_batch",
]
