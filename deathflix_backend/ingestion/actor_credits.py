"""
Filmography sync: TMDb movie credits -> `core.movies` + `core.movie_credits`.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from supabase import Client

from deathflix_backend.integrations.tmdb.client import TmdbClient
from deathflix_backend.models.actors import ActorRecord, MovieCreditRecord, MovieRecord
from deathflix_backend.repositories.movies import upsert_movie_credits, upsert_movies

logger = logging.getLogger(__name__)


@dataclass
class CreditsSyncResult:
    actors: int = 0
    movies: int = 0
    credits: int = 0
    failed: int = 0


def sync_actor_credits(db: Client, actor: ActorRecord, *, client: TmdbClient) -> CreditsSyncResult:
    if actor.id is None:
        raise ValueError(f"Cannot sync credits for unsaved actor tmdb_id={actor.tmdb_id}")

    credits = client.fetch_person_movie_credits(actor.tmdb_id)
    movies = upsert_movies(
        db,
        (
            MovieRecord(
                tmdb_id=credit.movie_tmdb_id,
                title=credit.title,
                release_date=credit.release_date,
                overview=credit.overview,
                poster_path=credit.poster_path,
            )
            for credit in credits
        ),
    )

    rows: list[MovieCreditRecord] = []
    for credit in credits:
        movie = movies.get(credit.movie_tmdb_id)
        if movie is None or movie.id is None:
            logger.warning("Movie tmdb_id=%s missing after upsert; skipping credit", credit.movie_tmdb_id)
            continue
        rows.append(
            MovieCreditRecord(
                actor_id=actor.id,
                movie_id=movie.id,
                character=credit.character,
                department=credit.department,
                credit_type=credit.credit_type,
            )
        )

    written = upsert_movie_credits(db, rows)
    logger.info("Synced %s credits across %s movies for actor %s", written, len(movies), actor.name)
    return CreditsSyncResult(actors=1, movies=len(movies), credits=written)


def sync_credits_for_actors(
    db: Client,
    actors: Iterable[ActorRecord],
    *,
    client: TmdbClient,
    delay_seconds: float = 0.25,
    should_stop: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CreditsSyncResult:
    total = CreditsSyncResult()
    for actor in actors:
        if should_stop is not None and should_stop():
            break
        try:
            one = sync_actor_credits(db, actor, client=client)
        except Exception:  # noqa: BLE001
            total.failed += 1
            logger.exception("Error syncing credits for actor %s (tmdb_id=%s)", actor.name, actor.tmdb_id)
        else:
            total.actors += one.actors
            total.movies += one.movies
            total.credits += one.credits
        sleep(delay_seconds)
    return total
