#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import signal
import sys

from deathflix_backend.db.supabase import create_supabase_admin_client
from deathflix_backend.ingestion.scheduler import SyncScheduler
from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.integrations.tmdb.client import TmdbClient
from deathflix_backend.repositories.actors import assert_core_actors_table_exists
from deathflix_backend.repositories.death_records import assert_core_death_records_table_exists
from deathflix_backend.utils.logging_setup import init_logging

logger = logging.getLogger("scripts.run_sync_scheduler")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="run_sync_scheduler.py",
        description="Run the TMDb sync scheduler (daily export + death checks, batched detail refresh).",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    init_logging(args.log_level)

    settings = SyncSettings.from_env()
    db = create_supabase_admin_client()
    assert_core_actors_table_exists(db)
    assert_core_death_records_table_exists(db)

    scheduler = SyncScheduler(
        db_factory=create_supabase_admin_client,
        client_factory=TmdbClient,
        settings=settings,
    )

    def _handle_signal(signum: int, _frame: object) -> None:
        logger.info("Received signal %s; finishing in-flight work", signum)
        scheduler.stop(timeout=0)

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    scheduler.run_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
