"""
Long-running TMDb sync scheduler.

Two independent loops share one stop event:
- primary: daily export ingestion followed by death reconciliation, with a short cooldown after failures
- details: batched detail enrichment on a faster cadence after a startup delay
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from supabase import Client

from deathflix_backend.ingestion.actor_details import update_actors_batch
from deathflix_backend.ingestion.death_checks import DeathCheckResult, check_for_deaths
from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.ingestion.tmdb_export import ExportIngestionResult, run_export_ingestion
from deathflix_backend.integrations.tmdb.client import TmdbClient
from deathflix_backend.models.actors import ActorRecord
from deathflix_backend.repositories.actors import count_actors
from deathflix_backend.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SyncProgress:
    """Counters for one detail-refresh cycle; passed into and returned from `run_details_cycle`."""

    total_actors: int = 0
    processed: int = 0
    updated: int = 0
    failed: int = 0
    batches: int = 0
    started_at: datetime = field(default_factory=utcnow)
    last_update_at: datetime | None = None
    current_actor: str | None = None

    def rate_per_hour(self, now: datetime | None = None) -> float:
        elapsed_hours = ((now or utcnow()) - self.started_at).total_seconds() / 3600
        if elapsed_hours <= 0:
            return 0.0
        return self.processed / elapsed_hours

    def percent_complete(self) -> float:
        if self.total_actors <= 0:
            return 0.0
        return min(100.0, self.processed * 100.0 / self.total_actors)


@dataclass(frozen=True)
class PrimaryCycleResult:
    export: ExportIngestionResult
    deaths: DeathCheckResult


def run_primary_cycle(
    db: Client,
    *,
    client: TmdbClient,
    settings: SyncSettings,
    should_stop: Callable[[], bool] | None = None,
) -> PrimaryCycleResult:
    """Export ingestion, then death reconciliation. Job-step failures propagate to the caller."""

    logger.info("Starting TMDb sync cycle")
    export = run_export_ingestion(
        db,
        settings=settings,
        session=client.session,
        api_key=client.api_key,
        should_stop=should_stop,
    )
    deaths = check_for_deaths(db, client=client, settings=settings, should_stop=should_stop)
    logger.info("TMDb sync cycle completed")
    return PrimaryCycleResult(export=export, deaths=deaths)


def run_details_cycle(
    db: Client,
    *,
    client: TmdbClient,
    settings: SyncSettings,
    progress: SyncProgress | None = None,
    stop_event: threading.Event | None = None,
) -> SyncProgress:
    """
    Pull and process detail batches until none are due, the stop event is set,
    or a whole batch fails (so a persistently failing head of the queue cannot spin forever).
    """

    stop_event = stop_event or threading.Event()
    progress = progress or SyncProgress()
    progress.total_actors = count_actors(db)

    def _track(actor: ActorRecord) -> None:
        progress.current_actor = actor.name

    while not stop_event.is_set():
        batch = update_actors_batch(
            db,
            client=client,
            settings=settings,
            limit=settings.details_batch_size,
            should_stop=stop_event.is_set,
            on_actor=_track,
        )
        if batch.selected == 0:
            logger.info("No more actors need updating at this time")
            break

        progress.batches += 1
        progress.processed += batch.processed
        progress.updated += batch.updated
        progress.failed += batch.failed
        if batch.updated:
            progress.last_update_at = utcnow()

        elapsed = utcnow() - progress.started_at
        logger.info(
            "Batch complete - progress %s/%s (%.1f%%), updated=%s, failed=%s, rate=%.1f/hour, elapsed=%s",
            progress.processed,
            progress.total_actors,
            progress.percent_complete(),
            progress.updated,
            progress.failed,
            progress.rate_per_hour(),
            str(elapsed).split(".")[0],
        )

        if batch.processed and batch.failed == batch.processed:
            logger.warning("Every actor in the last batch failed; ending this cycle early")
            break
        if stop_event.wait(settings.details_batch_pause.total_seconds()):
            break

    logger.info(
        "Completed detail cycle: processed=%s updated=%s failed=%s time=%s",
        progress.processed,
        progress.updated,
        progress.failed,
        utcnow() - progress.started_at,
    )
    return progress


class SyncScheduler:
    """
    Runs the primary and details loops on daemon threads until `stop()` is called.

    Each loop builds its own store client and TMDb client per cycle via the factories.
    """

    def __init__(
        self,
        *,
        db_factory: Callable[[], Client],
        client_factory: Callable[[], TmdbClient],
        settings: SyncSettings,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._db_factory = db_factory
        self._client_factory = client_factory
        self.settings = settings
        self._stop = stop_event or threading.Event()
        self._threads: list[threading.Thread] = []
        self.last_primary_result: PrimaryCycleResult | None = None
        self.last_details_progress: SyncProgress | None = None

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        if self._threads:
            logger.info("Sync scheduler already running")
            return
        self._threads = [
            threading.Thread(target=self._primary_loop, name="tmdb-sync-primary", daemon=True),
            threading.Thread(target=self._details_loop, name="tmdb-sync-details", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            "Sync scheduler started (sync every %s, details every %s after %s)",
            self.settings.sync_interval,
            self.settings.details_interval,
            self.settings.details_initial_delay,
        )

    def stop(self, timeout: float | None = None) -> None:
        logger.info("Stopping sync scheduler...")
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        # Threads still finishing in-flight work stay tracked for `wait()`.
        self._threads = [thread for thread in self._threads if thread.is_alive()]

    def wait(self, poll_seconds: float = 1.0) -> None:
        """Block until both loops exit; polls so signal handlers can run."""
        while any(thread.is_alive() for thread in self._threads):
            for thread in self._threads:
                thread.join(poll_seconds)

    def run_forever(self) -> None:
        self.start()
        self.wait()

    def _primary_loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.last_primary_result = run_primary_cycle(
                    self._db_factory(),
                    client=self._client_factory(),
                    settings=self.settings,
                    should_stop=self._stop.is_set,
                )
                delay = self.settings.sync_interval
            except Exception:  # noqa: BLE001
                logger.exception("Error occurred while syncing TMDb data; retrying in %s", self.settings.failure_cooldown)
                delay = self.settings.failure_cooldown
            if self._stop.wait(delay.total_seconds()):
                break
        logger.info("Primary sync loop stopped")

    def _details_loop(self) -> None:
        if self._stop.wait(self.settings.details_initial_delay.total_seconds()):
            return
        while not self._stop.is_set():
            try:
                self.last_details_progress = run_details_cycle(
                    self._db_factory(),
                    client=self._client_factory(),
                    settings=self.settings,
                    progress=SyncProgress(),
                    stop_event=self._stop,
                )
            except Exception:  # noqa: BLE001
                logger.exception("Error occurred while processing actor details")
            if self._stop.wait(self.settings.details_interval.total_seconds()):
                break
        logger.info("Details loop stopped")
