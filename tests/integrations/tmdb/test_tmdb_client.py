from __future__ import annotations

from datetime import date
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from deathflix_backend.integrations.tmdb.client import TmdbClient, TmdbClientError


@pytest.fixture(autouse=True)
def _no_ambient_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    monkeypatch.delenv("TMDB_BEARER", raising=False)
    monkeypatch.setattr("deathflix_backend.integrations.tmdb.client.load_env", lambda: None)


class _FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


def _client(*responses: _FakeResponse, bearer: str | None = None, api_key: str | None = "k") -> TmdbClient:
    session = MagicMock()
    session.get.side_effect = list(responses)
    return TmdbClient(api_key=api_key, bearer_token=bearer, session=session)


def test_fetch_person_details_parses_payload() -> None:
    client = _client(
        _FakeResponse(
            payload={
                "id": 42,
                "name": "A. Actor",
                "biography": "  Born somewhere.  ",
                "birthday": "1950-01-02",
                "deathday": "2023-05-01",
                "place_of_birth": "",
                "profile_path": "/a.jpg",
                "popularity": 12.5,
                "gender": 2,
            }
        )
    )

    details = client.fetch_person_details(42)

    assert details is not None
    assert details.tmdb_id == 42
    assert details.biography == "Born somewhere."
    assert details.birthday == date(1950, 1, 2)
    assert details.deathday == date(2023, 5, 1)
    assert details.place_of_birth is None
    assert details.popularity == 12.5

    _, kwargs = client.session.get.call_args
    assert client.session.get.call_args.args[0] == "https://api.themoviedb.org/3/person/42"
    assert kwargs["params"]["api_key"] == "k"
    assert kwargs["params"]["language"] == "en-US"


def test_fetch_person_details_returns_none_on_404() -> None:
    client = _client(_FakeResponse(status_code=404, text='{"status_code":34}'))
    assert client.fetch_person_details(7) is None


def test_fetch_person_details_rejects_non_positive_id() -> None:
    client = _client()
    with pytest.raises(ValueError):
        client.fetch_person_details(0)
    client.session.get.assert_not_called()


def test_rate_limit_surfaces_status_without_retry() -> None:
    client = _client(_FakeResponse(status_code=429, text="Too Many Requests"))

    with pytest.raises(TmdbClientError) as excinfo:
        client.fetch_person_details(42)

    assert excinfo.value.status_code == 429
    assert excinfo.value.is_rate_limited
    assert excinfo.value.body_snippet == "Too Many Requests"
    assert client.session.get.call_count == 1


def test_server_error_is_not_rate_limited() -> None:
    client = _client(_FakeResponse(status_code=500, text="boom"))

    with pytest.raises(TmdbClientError) as excinfo:
        client.fetch_person_details(42)

    assert excinfo.value.status_code == 500
    assert not excinfo.value.is_rate_limited


def test_non_json_body_raises_client_error() -> None:
    client = _client(_FakeResponse(status_code=200, payload=None, text="<html>oops</html>"))

    with pytest.raises(TmdbClientError) as excinfo:
        client.fetch_person_details(42)

    assert excinfo.value.body_snippet == "<html>oops</html>"


def test_malformed_details_payload_raises_client_error() -> None:
    client = _client(_FakeResponse(payload={"id": "forty-two", "name": "A. Actor"}))

    with pytest.raises(TmdbClientError, match="malformed person details"):
        client.fetch_person_details(42)


@pytest.mark.parametrize("deathday", ["2023-13-45", 20230501])
def test_unparseable_deathday_raises_client_error(deathday: object) -> None:
    client = _client(_FakeResponse(payload={"id": 42, "name": "A. Actor", "deathday": deathday}))

    with pytest.raises(TmdbClientError, match="malformed person details"):
        client.fetch_person_details(42)


def test_blank_deathday_means_alive() -> None:
    client = _client(_FakeResponse(payload={"id": 42, "name": "A. Actor", "birthday": "", "deathday": None}))

    details = client.fetch_person_details(42)

    assert details.birthday is None
    assert details.deathday is None


def test_transport_error_is_wrapped() -> None:
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("connection reset")
    client = TmdbClient(api_key="k", session=session)

    with pytest.raises(TmdbClientError) as excinfo:
        client.fetch_person_details(42)

    assert excinfo.value.status_code is None


def test_search_people_rejects_empty_query() -> None:
    client = _client()
    with pytest.raises(ValueError):
        client.search_people("   ")
    client.session.get.assert_not_called()


def test_search_people_uses_bearer_header_when_available() -> None:
    client = _client(
        _FakeResponse(
            payload={
                "page": 1,
                "total_pages": 3,
                "total_results": 41,
                "results": [{"id": 42, "name": "A. Actor", "popularity": 12.5}, "junk"],
            }
        ),
        bearer="token-123",
        api_key=None,
    )

    page = client.search_people("actor")

    assert page.total_results == 41
    assert page.has_next
    assert [p.tmdb_id for p in page.results] == [42]
    _, kwargs = client.session.get.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer token-123"
    assert "api_key" not in kwargs["params"]
    assert kwargs["params"]["query"] == "actor"


def test_missing_credentials_raise() -> None:
    client = TmdbClient(session=MagicMock())

    with pytest.raises(RuntimeError, match="TMDB_BEARER or TMDB_API_KEY"):
        client.fetch_person_details(1)


def test_fetch_popular_people_last_page() -> None:
    client = _client(
        _FakeResponse(payload={"page": 2, "total_pages": 2, "total_results": 21, "results": [{"id": 5, "name": "B"}]})
    )

    page = client.fetch_popular_people(2)

    assert page.page == 2
    assert not page.has_next
    assert page.results[0].name == "B"


def test_fetch_popular_people_without_results_is_malformed() -> None:
    client = _client(_FakeResponse(payload={"page": 1}))
    with pytest.raises(TmdbClientError):
        client.fetch_popular_people()


def test_fetch_person_movie_credits_merges_cast_and_crew() -> None:
    client = _client(
        _FakeResponse(
            payload={
                "id": 42,
                "cast": [{"id": 100, "title": "First", "character": "Hero", "release_date": "1999-03-31"}],
                "crew": [{"id": 200, "original_title": "Second", "job": "Director", "department": "Directing"}],
            }
        )
    )

    credits = client.fetch_person_movie_credits(42)

    assert [(c.movie_tmdb_id, c.credit_type) for c in credits] == [(100, "cast"), (200, "crew")]
    assert credits[0].character == "Hero"
    assert credits[0].department == "Acting"
    assert credits[0].release_date == date(1999, 3, 31)
    assert credits[1].title == "Second"
    assert credits[1].character == "Director"
    assert credits[1].department == "Directing"
