from __future__ import annotations

from datetime import date

import pytest

from deathflix_backend.ingestion.actor_credits import sync_actor_credits, sync_credits_for_actors
from deathflix_backend.integrations.tmdb.client import TmdbClientError
from deathflix_backend.models.actors import ActorRecord
from deathflix_backend.models.tmdb import TmdbMovieCredit


def _credit(movie_id: int, credit_type: str = "cast", character: str = "Hero") -> TmdbMovieCredit:
    return TmdbMovieCredit(
        movie_tmdb_id=movie_id,
        title=f"Movie {movie_id}",
        credit_type=credit_type,
        character=character,
        department="Acting" if credit_type == "cast" else "Directing",
        release_date=date(1999, 1, 1),
    )


def test_sync_actor_credits_upserts_movies_and_credits(fake_db, fake_tmdb) -> None:  # noqa: ANN001
    actor = ActorRecord.from_row(fake_db.seed_actor(tmdb_id=42))
    fake_tmdb.credits[42] = [
        _credit(100),
        _credit(100),
        _credit(100, "crew", "Director"),
        _credit(200, character="Villain"),
    ]

    result = sync_actor_credits(fake_db, actor, client=fake_tmdb)

    assert (result.movies, result.credits) == (2, 3)
    assert sorted(m["tmdb_id"] for m in fake_db.rows("movies")) == [100, 200]
    credits = fake_db.rows("movie_credits")
    assert {(c["credit_type"], c["character"]) for c in credits} == {
        ("cast", "Hero"),
        ("crew", "Director"),
        ("cast", "Villain"),
    }
    assert all(c["actor_id"] == actor.id for c in credits)

    sync_actor_credits(fake_db, actor, client=fake_tmdb)
    assert len(fake_db.rows("movie_credits")) == 3
    assert len(fake_db.rows("movies")) == 2


def test_sync_actor_credits_requires_stored_actor(fake_db, fake_tmdb) -> None:  # noqa: ANN001
    with pytest.raises(ValueError):
        sync_actor_credits(fake_db, ActorRecord(tmdb_id=1, name="A"), client=fake_tmdb)


def test_sync_credits_for_actors_continues_after_failure(fake_db, fake_tmdb, no_sleep) -> None:  # noqa: ANN001
    first = ActorRecord.from_row(fake_db.seed_actor(tmdb_id=1))
    second = ActorRecord.from_row(fake_db.seed_actor(tmdb_id=2))
    fake_tmdb.credits = {1: TmdbClientError("TMDb request failed with HTTP 500.", status_code=500), 2: [_credit(300)]}

    total = sync_credits_for_actors(fake_db, [first, second], client=fake_tmdb, sleep=no_sleep.append)

    assert (total.actors, total.failed, total.credits) == (1, 1, 1)
    assert no_sleep == [0.25, 0.25]
