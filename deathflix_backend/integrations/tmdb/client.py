from __future__ import annotations

import logging
import os
from typing import Any, Callable, Mapping, TypeVar

import requests

from deathflix_backend.models.tmdb import (
    TmdbMovieCredit,
    TmdbPage,
    TmdbPayloadError,
    TmdbPersonDetails,
    TmdbPersonSummary,
)
from deathflix_backend.utils.env import load_env

logger = logging.getLogger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_RATE_LIMIT_STATUS = 429

T = TypeVar("T")


class TmdbClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, body_snippet: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == TMDB_RATE_LIMIT_STATUS


def resolve_credentials(
    api_key: str | None = None,
    bearer_token: str | None = None,
) -> tuple[str | None, str | None]:
    """
    Best-effort credential resolution: explicit args win, then TMDB_API_KEY / TMDB_BEARER.
    """

    load_env()
    key = (api_key or os.getenv("TMDB_API_KEY") or "").strip()
    token = (bearer_token or os.getenv("TMDB_BEARER") or "").strip()
    return key or None, token or None


def _request_json(
    session: requests.Session,
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    timeout_seconds: float = 20.0,
    allow_not_found: bool = False,
) -> dict[str, Any] | None:
    """
    Single GET against TMDb. Retries are the caller's responsibility.

    Returns None for 404 when `allow_not_found` is set; every other non-2xx raises TmdbClientError.
    """

    try:
        resp = session.get(url, params=params, headers=headers, timeout=timeout_seconds)
    except requests.RequestException as exc:
        raise TmdbClientError(f"TMDb request failed: {exc}") from exc

    if allow_not_found and resp.status_code == 404:
        return None

    if not 200 <= resp.status_code < 300:
        body = (resp.text or "")[:400]
        logger.error("TMDb API error: %s - %s", resp.status_code, body)
        raise TmdbClientError(
            f"TMDb request failed with HTTP {resp.status_code}.",
            status_code=resp.status_code,
            body_snippet=body,
        )

    try:
        payload = resp.json()
    except ValueError as exc:
        raise TmdbClientError(
            "TMDb returned non-JSON response.",
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        ) from exc

    if not isinstance(payload, dict):
        raise TmdbClientError("TMDb returned unexpected JSON shape (not an object).", status_code=resp.status_code)
    return payload


def _parse_payload(payload: Mapping[str, Any], parse: Callable[[Mapping[str, Any]], T], *, context: str) -> T:
    try:
        return parse(payload)
    except (TmdbPayloadError, KeyError, TypeError, ValueError) as exc:
        raise TmdbClientError(f"TMDb returned a malformed {context} payload: {exc}") from exc


def _parse_person_page(payload: Mapping[str, Any]) -> TmdbPage[TmdbPersonSummary]:
    results = payload.get("results")
    if not isinstance(results, list):
        raise TmdbPayloadError("paged response is missing `results`")
    page = payload.get("page")
    total_pages = payload.get("total_pages")
    total_results = payload.get("total_results")
    return TmdbPage(
        page=page if isinstance(page, int) else 1,
        total_pages=total_pages if isinstance(total_pages, int) else 1,
        total_results=total_results if isinstance(total_results, int) else len(results),
        results=[TmdbPersonSummary.from_payload(item) for item in results if isinstance(item, dict)],
    )


def _parse_movie_credits(payload: Mapping[str, Any]) -> list[TmdbMovieCredit]:
    credits: list[TmdbMovieCredit] = []
    for credit_type in ("cast", "crew"):
        entries = payload.get(credit_type)
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise TmdbPayloadError(f"movie credits `{credit_type}` is not a list")
        credits.extend(
            TmdbMovieCredit.from_payload(entry, credit_type=credit_type) for entry in entries if isinstance(entry, dict)
        )
    return credits


class TmdbClient:
    """
    Thin TMDb v3 client for the person endpoints used by the sync jobs.

    Authenticates with a bearer token when available, otherwise with the `api_key` query param.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        bearer_token: str | None = None,
        session: requests.Session | None = None,
        timeout_seconds: float = 20.0,
        language: str = "en-US",
    ) -> None:
        self.api_key, self.bearer_token = resolve_credentials(api_key, bearer_token)
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds
        self.language = language

    def _auth(self) -> tuple[dict[str, str], dict[str, Any]]:
        headers = {"accept": "application/json"}
        params: dict[str, Any] = {}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        elif self.api_key:
            params["api_key"] = self.api_key
        else:
            raise RuntimeError("TMDB_BEARER or TMDB_API_KEY must be set.")
        return headers, params

    def _get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        headers, query = self._auth()
        query["language"] = self.language
        query.update(params or {})
        return _request_json(
            self.session,
            f"{TMDB_API_BASE_URL}{path}",
            params=query,
            headers=headers,
            timeout_seconds=self.timeout_seconds,
            allow_not_found=allow_not_found,
        )

    def search_people(self, query: str, *, page: int = 1) -> TmdbPage[TmdbPersonSummary]:
        query = (query or "").strip()
        if not query:
            raise ValueError("Search query cannot be empty.")
        logger.info("Searching TMDb people for query=%r page=%s", query, page)
        payload = self._get("/search/person", {"query": query, "page": int(page), "include_adult": "false"})
        result = _parse_payload(payload or {}, _parse_person_page, context="person search")
        logger.info("Found %s people matching query=%r", len(result.results), query)
        return result

    def fetch_person_details(self, tmdb_id: int) -> TmdbPersonDetails | None:
        tmdb_id = int(tmdb_id)
        if tmdb_id <= 0:
            raise ValueError(f"Invalid TMDb person id: {tmdb_id}")
        logger.debug("Fetching TMDb person details tmdb_id=%s", tmdb_id)
        payload = self._get(f"/person/{tmdb_id}", allow_not_found=True)
        if payload is None:
            logger.info("TMDb person tmdb_id=%s not found", tmdb_id)
            return None
        return _parse_payload(payload, TmdbPersonDetails.from_payload, context="person details")

    def fetch_person_movie_credits(self, tmdb_id: int) -> list[TmdbMovieCredit]:
        tmdb_id = int(tmdb_id)
        if tmdb_id <= 0:
            raise ValueError(f"Invalid TMDb person id: {tmdb_id}")
        payload = self._get(f"/person/{tmdb_id}/movie_credits")
        credits = _parse_payload(payload or {}, _parse_movie_credits, context="movie credits")
        logger.info("Found %s movie credits for tmdb_id=%s", len(credits), tmdb_id)
        return credits

    def fetch_popular_people(self, page: int = 1) -> TmdbPage[TmdbPersonSummary]:
        logger.info("Fetching TMDb popular people page=%s", page)
        payload = self._get("/person/popular", {"page": int(page)})
        return _parse_payload(payload or {}, _parse_person_page, context="popular people")
