#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from dataclasses import asdict, is_dataclass
from typing import Any

from deathflix_backend.db.supabase import create_supabase_admin_client
from deathflix_backend.ingestion.actor_credits import sync_credits_for_actors
from deathflix_backend.ingestion.actor_details import update_actors_batch
from deathflix_backend.ingestion.death_checks import check_for_deaths
from deathflix_backend.ingestion.popular_actors import sync_popular_actors
from deathflix_backend.ingestion.scheduler import run_details_cycle
from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.ingestion.tmdb_export import run_export_ingestion
from deathflix_backend.integrations.tmdb.client import TmdbClient
from deathflix_backend.integrations.tmdb.exports import check_export_access
from deathflix_backend.repositories.actors import assert_core_actors_table_exists, list_actors
from deathflix_backend.repositories.movies import assert_core_movies_tables_exist
from deathflix_backend.utils.logging_setup import init_logging

JOBS = ("export", "details", "details-cycle", "deaths", "popular", "credits", "check-export")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="run_sync_job.py",
        description="Run a single TMDb sync job once.",
    )
    parser.add_argument("job", choices=JOBS, help="Job to run.")
    parser.add_argument("--limit", type=int, default=None, help="Batch size for details/credits jobs.")
    parser.add_argument("--pages", type=int, default=1, help="Popular listing pages to sync (default: 1).")
    parser.add_argument("--start-page", type=int, default=1, help="First popular listing page (default: 1).")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _print_summary(job: str, result: Any) -> None:
    print("Summary")
    print(f"job={job}")
    values = asdict(result) if is_dataclass(result) else dict(result)
    for key, value in values.items():
        print(f"{key}={value}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    init_logging("DEBUG" if args.verbose else None)

    settings = SyncSettings.from_env()
    client = TmdbClient()

    if args.job == "check-export":
        statuses = check_export_access(client.session, api_key=client.api_key)
        _print_summary(args.job, statuses)
        return 0 if all(status is not None for status in statuses.values()) else 1

    db = create_supabase_admin_client()
    assert_core_actors_table_exists(db)

    if args.job == "export":
        result: Any = run_export_ingestion(db, settings=settings, session=client.session, api_key=client.api_key)
    elif args.job == "details":
        result = update_actors_batch(db, client=client, settings=settings, limit=args.limit)
    elif args.job == "details-cycle":
        result = run_details_cycle(db, client=client, settings=settings)
    elif args.job == "deaths":
        result = check_for_deaths(db, client=client, settings=settings)
    elif args.job == "popular":
        result = sync_popular_actors(
            db, client=client, settings=settings, pages=args.pages, start_page=args.start_page
        )
    else:
        assert_core_movies_tables_exist(db)
        actors, _ = list_actors(db, page=1, page_size=args.limit or 20, sort_by="popularity", descending=True)
        result = sync_credits_for_actors(
            db, actors, client=client, delay_seconds=settings.api_request_delay.total_seconds()
        )

    _print_summary(args.job, result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
