"""
Death reconciliation: re-check alive actors against TMDb and record newly reported deaths.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from supabase import Client

from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.integrations.tmdb.client import TmdbClient
from deathflix_backend.models.actors import ActorRecord, DeathRecord
from deathflix_backend.repositories.actors import select_actors_needing_death_check, update_actor_fields
from deathflix_backend.repositories.death_records import upsert_death_record
from deathflix_backend.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass
class DeathCheckResult:
    selected: int = 0
    checked: int = 0
    deaths_found: int = 0
    failed: int = 0


def record_death(db: Client, actor: ActorRecord, *, date_of_death: date, verified_at: datetime) -> DeathRecord:
    if actor.id is None:
        raise ValueError(f"Cannot record death for unsaved actor tmdb_id={actor.tmdb_id}")
    record = upsert_death_record(
        db,
        DeathRecord(actor_id=actor.id, date_of_death=date_of_death, last_verified=verified_at),
    )
    logger.info("Added death record for actor %s (tmdb_id=%s, died=%s)", actor.name, actor.tmdb_id, date_of_death)
    return record


def check_actor_death(
    db: Client,
    actor: ActorRecord,
    *,
    client: TmdbClient,
    now: datetime | None = None,
) -> tuple[ActorRecord, bool]:
    """
    Check one actor upstream. Returns the persisted actor and whether a new death was recorded.

    `last_death_check` is stamped whether or not a death was found.
    """

    now = now or utcnow()
    logger.info("Checking death status for actor %s (tmdb_id=%s)", actor.name, actor.tmdb_id)
    details = client.fetch_person_details(actor.tmdb_id)

    died = details is not None and details.deathday is not None and actor.date_of_death is None
    changes: dict[str, object] = {"last_death_check": now}
    if died:
        # Record first: if the actor update then fails, the actor stays selectable and the
        # upsert on actor_id makes the retry idempotent.
        record_death(db, actor, date_of_death=details.deathday, verified_at=now)
        changes["date_of_death"] = details.deathday

    updated = update_actor_fields(db, actor.id, changes)
    return updated, died


def check_for_deaths(
    db: Client,
    *,
    client: TmdbClient,
    settings: SyncSettings,
    now: datetime | None = None,
    should_stop: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DeathCheckResult:
    now = now or utcnow()
    actors = select_actors_needing_death_check(
        db,
        limit=settings.death_check_batch_size,
        checked_before=now - settings.death_check_interval,
    )
    result = DeathCheckResult(selected=len(actors))
    logger.info("Found %s actors due for a death check", len(actors))

    for actor in actors:
        if should_stop is not None and should_stop():
            break
        try:
            _, died = check_actor_death(db, actor, client=client, now=now)
        except Exception:  # noqa: BLE001
            result.failed += 1
            logger.exception("Error checking death status for actor %s (tmdb_id=%s)", actor.name, actor.tmdb_id)
        else:
            result.checked += 1
            if died:
                result.deaths_found += 1
        sleep(settings.death_check_delay.total_seconds())

    logger.info(
        "Death check complete: checked=%s deaths_found=%s failed=%s",
        result.checked,
        result.deaths_found,
        result.failed,
    )
    return result
