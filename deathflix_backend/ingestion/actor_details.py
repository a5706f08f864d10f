"""
Actor detail enrichment from TMDb person details.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from supabase import Client

from deathflix_backend.ingestion.death_checks import record_death
from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.integrations.tmdb.client import TmdbClient
from deathflix_backend.models.actors import ActorRecord
from deathflix_backend.models.tmdb import TmdbPersonDetails
from deathflix_backend.repositories.actors import select_actors_needing_details, update_actor_fields
from deathflix_backend.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorDetailsRefresh:
    actor: ActorRecord
    changed: bool
    fetched: bool
    changes: dict[str, Any] = field(default_factory=dict)


@dataclass
class DetailsBatchResult:
    selected: int = 0
    processed: int = 0
    updated: int = 0
    failed: int = 0
    deaths_found: int = 0


def needs_details_refresh(actor: ActorRecord, *, now: datetime, interval: timedelta) -> bool:
    # Historical data for the deceased does not change once we have it.
    if actor.is_deceased and actor.biography and actor.profile_path:
        return False
    if not actor.is_deceased and actor.last_details_check is not None:
        return now - actor.last_details_check >= interval
    return True


def diff_person_details(actor: ActorRecord, details: TmdbPersonDetails) -> dict[str, Any]:
    """
    Field changes to apply from upstream details. A stored death date is never cleared.
    """

    changes: dict[str, Any] = {}
    candidates = {
        "biography": details.biography,
        "date_of_birth": details.birthday,
        "place_of_birth": details.place_of_birth,
        "profile_path": details.profile_path,
    }
    for field_name, value in candidates.items():
        if getattr(actor, field_name) != value:
            changes[field_name] = value
    if details.deathday is not None and details.deathday != actor.date_of_death:
        changes["date_of_death"] = details.deathday
    return changes


def refresh_actor_details(
    actor: ActorRecord,
    *,
    client: TmdbClient,
    settings: SyncSettings,
    now: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ActorDetailsRefresh:
    """
    Fetch and merge upstream details for one actor (no store writes).

    Both check timestamps advance on every fetch; `changed` is True only when a content field differs.
    """

    now = now or utcnow()
    if not needs_details_refresh(actor, now=now, interval=settings.details_refresh_interval):
        return ActorDetailsRefresh(actor=actor, changed=False, fetched=False)

    logger.debug("Updating details for actor %s (tmdb_id=%s)", actor.name, actor.tmdb_id)
    try:
        details = client.fetch_person_details(actor.tmdb_id)
    finally:
        sleep(settings.api_request_delay.total_seconds())

    changes = diff_person_details(actor, details) if details is not None else {}
    refreshed = replace(actor, **changes, last_details_check=now, last_death_check=now)
    return ActorDetailsRefresh(actor=refreshed, changed=bool(changes), fetched=True, changes=changes)


def select_actors_for_details(db: Client, *, limit: int, interval: timedelta, now: datetime) -> list[ActorRecord]:
    """Never-checked actors, or alive actors not refreshed within `interval`; most popular first."""
    return select_actors_needing_details(db, limit=limit, stale_before=now - interval)


def update_actors_batch(
    db: Client,
    *,
    client: TmdbClient,
    settings: SyncSettings,
    limit: int | None = None,
    now: datetime | None = None,
    should_stop: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_actor: Callable[[ActorRecord], None] | None = None,
) -> DetailsBatchResult:
    """
    Refresh the next batch of actors (popularity desc, never-checked first), one at a time.

    A failing actor is logged and skipped; the rest of the batch still runs.
    """

    now = now or utcnow()
    actors = select_actors_for_details(
        db,
        limit=limit or settings.details_batch_size,
        interval=settings.details_refresh_interval,
        now=now,
    )
    result = DetailsBatchResult(selected=len(actors))
    logger.info("Found %s actors requiring detail updates", len(actors))

    for actor in actors:
        if should_stop is not None and should_stop():
            break
        if on_actor is not None:
            on_actor(actor)
        result.processed += 1
        try:
            refresh = refresh_actor_details(actor, client=client, settings=settings, now=now, sleep=sleep)
            if refresh.fetched:
                newly_deceased = refresh.actor.date_of_death is not None and actor.date_of_death is None
                if newly_deceased:
                    record_death(db, actor, date_of_death=refresh.actor.date_of_death, verified_at=now)
                    result.deaths_found += 1
                update_actor_fields(
                    db,
                    actor.id,
                    {**refresh.changes, "last_details_check": now, "last_death_check": now},
                )
            elif actor.last_details_check is None:
                # Skipped without a fetch; stamp it so the selector stops returning it.
                update_actor_fields(db, actor.id, {"last_details_check": now})
        except Exception:  # noqa: BLE001
            result.failed += 1
            logger.exception("Error updating details for actor %s (tmdb_id=%s)", actor.name, actor.tmdb_id)
            continue

        if refresh.changed:
            result.updated += 1
            logger.info("Updated actor %s (id=%s)", actor.name, actor.id)
        else:
            logger.debug("Actor %s (id=%s) already up to date", actor.name, actor.id)

    logger.info(
        "Completed detail batch: selected=%s processed=%s updated=%s failed=%s",
        result.selected,
        result.processed,
        result.updated,
        result.failed,
    )
    return result
