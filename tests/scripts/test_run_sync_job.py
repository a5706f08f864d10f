from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

import scripts.run_sync_job as job
from deathflix_backend.models.tmdb import TmdbPage, TmdbPersonDetails, TmdbPersonSummary


@pytest.fixture
def patched_job(monkeypatch: pytest.MonkeyPatch, fake_db, fake_tmdb, settings):  # noqa: ANN001, ANN201
    monkeypatch.setattr(job, "TmdbClient", lambda: fake_tmdb)
    monkeypatch.setattr(job, "create_supabase_admin_client", lambda: fake_db)
    quick = replace(settings, api_request_delay=timedelta(0))
    monkeypatch.setattr(job.SyncSettings, "from_env", classmethod(lambda cls: quick))
    monkeypatch.setattr(job, "init_logging", lambda level=None: None)
    return job


def test_check_export_prints_statuses(patched_job, monkeypatch, capsys) -> None:  # noqa: ANN001
    monkeypatch.setattr(
        patched_job,
        "check_export_access",
        lambda session, api_key=None: {"http://files.tmdb.org/p/exports/": 200},
    )

    assert patched_job.main(["check-export"]) == 0

    out = capsys.readouterr().out
    assert "job=check-export" in out
    assert "http://files.tmdb.org/p/exports/=200" in out


def test_check_export_fails_on_transport_error(patched_job, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(patched_job, "check_export_access", lambda session, api_key=None: {"x": None})
    assert patched_job.main(["check-export"]) == 1


def test_popular_job_prints_result_summary(patched_job, fake_db, fake_tmdb, monkeypatch, capsys) -> None:  # noqa: ANN001
    fake_tmdb.popular_pages = {
        1: TmdbPage(page=1, total_pages=1, total_results=1, results=[TmdbPersonSummary(tmdb_id=1, name="A")])
    }
    fake_tmdb.details = {1: TmdbPersonDetails(tmdb_id=1, name="A", popularity=20.0)}

    assert patched_job.main(["popular", "--pages", "3"]) == 0

    out = capsys.readouterr().out
    assert "job=popular" in out
    assert "upserted=1" in out
    assert [r["tmdb_id"] for r in fake_db.rows("actors")] == [1]


def test_unknown_job_is_rejected(patched_job) -> None:  # noqa: ANN001
    with pytest.raises(SystemExit):
        patched_job.main(["bogus"])
