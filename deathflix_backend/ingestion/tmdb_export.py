"""
Daily TMDb person export ingestion.

Downloads the latest `person_ids` export, upserts minimal actor rows keyed by tmdb_id,
and sweeps actors that fell under the popularity threshold.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import requests
from supabase import Client

from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.integrations.tmdb.exports import (
    download_export_file,
    export_file_candidates,
    iter_export_people,
    resolve_export_file_name,
)
from deathflix_backend.models.actors import ActorRecord
from deathflix_backend.models.tmdb import TmdbExportPerson
from deathflix_backend.repositories.actors import (
    count_actors,
    delete_actors_below_popularity,
    fetch_actor_tmdb_ids,
    fetch_actors_by_tmdb_ids,
    upsert_actor_basics,
)

logger = logging.getLogger(__name__)


@dataclass
class ExportIngestionResult:
    file_name: str | None = None
    processed: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped_below_threshold: int = 0
    malformed_lines: int = 0
    removed_below_threshold: int = 0
    stopped: bool = False


def plan_actor_change(
    person: TmdbExportPerson,
    existing: ActorRecord | None,
    *,
    epsilon: float,
) -> dict[str, Any] | None:
    """
    Row to upsert for one export record, or None when the stored actor is already current.
    """

    row = {"tmdb_id": person.tmdb_id, "name": person.name, "popularity": person.popularity}
    if existing is None:
        return row
    if existing.name != person.name or abs(existing.popularity - person.popularity) > epsilon:
        return row
    return None


def _flush(
    db: Client,
    pending: Mapping[int, TmdbExportPerson],
    *,
    settings: SyncSettings,
    result: ExportIngestionResult,
) -> None:
    if not pending:
        return
    existing = fetch_actors_by_tmdb_ids(db, pending.keys())
    rows: list[dict[str, Any]] = []
    for tmdb_id, person in pending.items():
        current = existing.get(tmdb_id)
        row = plan_actor_change(person, current, epsilon=settings.popularity_epsilon)
        if row is None:
            result.unchanged += 1
            continue
        rows.append(row)
        if current is None:
            result.created += 1
            logger.debug("Adding new actor %s (tmdb_id=%s)", person.name, tmdb_id)
        else:
            result.updated += 1
            if current.name != person.name:
                logger.debug("Updating actor name %r -> %r (tmdb_id=%s)", current.name, person.name, tmdb_id)
    upsert_actor_basics(db, rows)
    logger.info(
        "Processed %s export records (new=%s, updated=%s, below_threshold=%s)",
        result.processed,
        result.created,
        result.updated,
        result.skipped_below_threshold,
    )


def ingest_export_file(
    db: Client,
    path: Path,
    *,
    settings: SyncSettings,
    result: ExportIngestionResult | None = None,
    should_stop: Callable[[], bool] | None = None,
    stored_tmdb_ids: set[int] | None = None,
) -> ExportIngestionResult:
    """
    Stream an already-downloaded export into `core.actors`, flushing every `export_batch_size` records.

    People under the popularity threshold are never created. A stored actor that dropped under it
    still gets its new popularity written, so the sweep afterwards removes it.
    """

    result = result or ExportIngestionResult(file_name=path.name)
    if stored_tmdb_ids is None:
        stored_tmdb_ids = fetch_actor_tmdb_ids(db)

    def _on_malformed(_line_number: int, _reason: str) -> None:
        result.malformed_lines += 1

    # Keyed by tmdb_id so a person repeated within one batch is written once (last line wins).
    pending: dict[int, TmdbExportPerson] = {}
    for person in iter_export_people(path, on_malformed=_on_malformed):
        if should_stop is not None and should_stop():
            result.stopped = True
            break
        if person.popularity < settings.popularity_threshold:
            result.skipped_below_threshold += 1
            if person.tmdb_id not in stored_tmdb_ids:
                continue
        else:
            result.processed += 1
        pending[person.tmdb_id] = person
        if len(pending) >= settings.export_batch_size:
            _flush(db, pending, settings=settings, result=result)
            pending = {}

    _flush(db, pending, settings=settings, result=result)
    return result


def run_export_ingestion(
    db: Client,
    *,
    settings: SyncSettings,
    session: requests.Session | None = None,
    api_key: str | None = None,
    today: date | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> ExportIngestionResult:
    """
    Resolve, download and ingest the latest daily person export, then sweep below-threshold actors.

    Raises TmdbExportError when no export can be resolved, downloaded or decompressed.
    """

    session = session or requests.Session()
    logger.info("Current actor count in database: %s", count_actors(db))

    file_name = resolve_export_file_name(session, export_file_candidates(today), api_key=api_key)
    path = download_export_file(session, file_name, settings.export_dir, api_key=api_key)

    result = ExportIngestionResult(file_name=file_name)
    try:
        ingest_export_file(db, path, settings=settings, result=result, should_stop=should_stop)
        if result.stopped:
            logger.info("Export ingestion stopped early; skipping popularity sweep")
        else:
            result.removed_below_threshold = delete_actors_below_popularity(db, settings.popularity_threshold)
            if result.removed_below_threshold:
                logger.warning(
                    "Removed %s actors below popularity threshold %.2f",
                    result.removed_below_threshold,
                    settings.popularity_threshold,
                )
    finally:
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Failed to delete export file %s: %s", path, exc)

    logger.info(
        "Completed export %s: processed=%s new=%s updated=%s unchanged=%s below_threshold=%s malformed=%s removed=%s",
        file_name,
        result.processed,
        result.created,
        result.updated,
        result.unchanged,
        result.skipped_below_threshold,
        result.malformed_lines,
        result.removed_below_threshold,
    )
    return result
