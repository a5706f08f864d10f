"""
Full-detail sync of TMDb's popular people listing.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from deathflix_backend.ingestion.death_checks import record_death
from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.integrations.tmdb.client import TmdbClient
from deathflix_backend.models.actors import ActorRecord
from deathflix_backend.models.tmdb import TmdbPersonDetails
from deathflix_backend.repositories.actors import fetch_actors_by_tmdb_ids, upsert_actors
from deathflix_backend.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PopularSyncResult:
    pages_fetched: int = 0
    people_seen: int = 0
    upserted: int = 0
    skipped_below_threshold: int = 0
    deaths_found: int = 0
    failed: int = 0


def build_actor_from_details(
    details: TmdbPersonDetails,
    *,
    existing: ActorRecord | None,
    fallback_name: str,
    checked_at: datetime,
) -> ActorRecord:
    date_of_death = details.deathday
    if existing is not None and existing.date_of_death is not None:
        date_of_death = existing.date_of_death
    return ActorRecord(
        id=existing.id if existing is not None else None,
        tmdb_id=details.tmdb_id,
        name=details.name or fallback_name,
        biography=details.biography,
        place_of_birth=details.place_of_birth,
        date_of_birth=details.birthday,
        date_of_death=date_of_death,
        popularity=max(0.0, details.popularity),
        profile_path=details.profile_path,
        last_details_check=checked_at,
        last_death_check=checked_at,
    )


def sync_popular_actors(
    db: Client,
    *,
    client: TmdbClient,
    settings: SyncSettings,
    pages: int = 1,
    start_page: int = 1,
    should_stop: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PopularSyncResult:
    """
    Page through /person/popular, fetch full details per person and upsert complete actor rows.

    Listing failures abort the sync; a failing person is logged and skipped.
    """

    result = PopularSyncResult()
    page = max(1, int(start_page))
    last_page = page + max(1, int(pages)) - 1

    while page <= last_page:
        if should_stop is not None and should_stop():
            break
        listing = client.fetch_popular_people(page)
        result.pages_fetched += 1
        result.people_seen += len(listing.results)

        existing = fetch_actors_by_tmdb_ids(db, [p.tmdb_id for p in listing.results])
        actors: list[ActorRecord] = []
        for summary in listing.results:
            if should_stop is not None and should_stop():
                break
            try:
                details = client.fetch_person_details(summary.tmdb_id)
            except Exception:  # noqa: BLE001
                result.failed += 1
                logger.exception("Error fetching popular person %s (tmdb_id=%s)", summary.name, summary.tmdb_id)
                continue
            finally:
                sleep(settings.api_request_delay.total_seconds())
            if details is None:
                continue
            if details.popularity < settings.popularity_threshold:
                result.skipped_below_threshold += 1
                continue
            actors.append(
                build_actor_from_details(
                    details,
                    existing=existing.get(details.tmdb_id),
                    fallback_name=summary.name,
                    checked_at=utcnow(),
                )
            )

        stored = upsert_actors(db, actors)
        result.upserted += len(stored)
        for actor in stored:
            previous = existing.get(actor.tmdb_id)
            if actor.date_of_death is None or (previous is not None and previous.date_of_death is not None):
                continue
            try:
                record_death(db, actor, date_of_death=actor.date_of_death, verified_at=utcnow())
                result.deaths_found += 1
            except Exception:  # noqa: BLE001
                result.failed += 1
                logger.exception("Error recording death for actor %s (tmdb_id=%s)", actor.name, actor.tmdb_id)

        logger.info("Synced popular people page %s/%s (%s actors)", page, listing.total_pages, len(stored))
        if not listing.has_next:
            break
        page += 1

    return result
