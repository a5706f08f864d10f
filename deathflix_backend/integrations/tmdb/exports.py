"""
TMDb daily ID export files (http://files.tmdb.org/p/exports/).

Exports are gzip-compressed newline-delimited JSON, one object per person:
`{"adult": false, "id": 42, "name": "A. Actor", "popularity": 12.5}`.
"""
from __future__ import annotations

import gzip
import json
import logging
import zlib
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Callable, Iterator

import requests

from deathflix_backend.models.tmdb import TmdbExportPerson, TmdbPayloadError

logger = logging.getLogger(__name__)

EXPORT_BASE_URL = "http://files.tmdb.org/p/exports/"
DAILY_EXPORT_FALLBACKS = ("person_ids_daily.json.gz", "people_daily.json.gz")


class TmdbExportError(RuntimeError):
    """Fatal export failure: no file resolved, download failed, or the archive is unreadable."""


def export_file_candidates(today: date | None = None) -> list[str]:
    today = today or datetime.now(UTC).date()
    return [f"person_ids_{today:%m_%d_%Y}.json.gz", *DAILY_EXPORT_FALLBACKS]


def build_export_url(file_name: str) -> str:
    return f"{EXPORT_BASE_URL}{file_name}"


def _export_params(api_key: str | None) -> dict[str, str] | None:
    return {"api_key": api_key} if api_key else None


def resolve_export_file_name(
    session: requests.Session,
    candidates: list[str],
    *,
    api_key: str | None = None,
    timeout_seconds: float = 30.0,
) -> str:
    """Return the first candidate the export host serves, trying them in order."""

    for file_name in candidates:
        url = build_export_url(file_name)
        logger.info("Checking for export file at %s", url)
        try:
            with session.get(url, params=_export_params(api_key), stream=True, timeout=timeout_seconds) as resp:
                status = resp.status_code
        except requests.RequestException as exc:
            logger.warning("Export probe failed for %s: %s", file_name, exc)
            continue
        if 200 <= status < 300:
            logger.info("Found available export file: %s", file_name)
            return file_name
        logger.info("Export file not found: %s (status=%s)", file_name, status)

    raise TmdbExportError(f"No TMDb export file found (tried: {', '.join(candidates)})")


def download_export_file(
    session: requests.Session,
    file_name: str,
    dest_dir: Path,
    *,
    api_key: str | None = None,
    timeout_seconds: float = 120.0,
    chunk_size: int = 1 << 16,
) -> Path:
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / file_name
    url = build_export_url(file_name)
    logger.info("Downloading export file from %s", url)

    try:
        with session.get(url, params=_export_params(api_key), stream=True, timeout=timeout_seconds) as resp:
            if not 200 <= resp.status_code < 300:
                raise TmdbExportError(f"Failed to download export {file_name}: HTTP {resp.status_code}")
            with target.open("wb") as fh:
                for chunk in resp.iter_content(chunk_size=chunk_size):
                    if chunk:
                        fh.write(chunk)
    except (requests.RequestException, OSError) as exc:
        target.unlink(missing_ok=True)
        raise TmdbExportError(f"Failed to download export {file_name}: {exc}") from exc

    logger.info("Downloaded export file to %s", target)
    return target


def iter_export_people(
    path: Path,
    *,
    on_malformed: Callable[[int, str], None] | None = None,
) -> Iterator[TmdbExportPerson]:
    """
    Stream people from a downloaded export.

    Malformed lines are reported via `on_malformed(line_number, reason)` and skipped.
    A corrupt archive raises TmdbExportError.
    """

    try:
        with gzip.open(path, "rt", encoding="utf-8", errors="replace") as fh:
            for line_number, raw_line in enumerate(fh, start=1):
                line = raw_line.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                    if not isinstance(payload, dict):
                        raise TmdbPayloadError("line is not a JSON object")
                    person = TmdbExportPerson.from_payload(payload)
                except (ValueError, TypeError) as exc:
                    # TmdbPayloadError and JSONDecodeError are both ValueErrors.
                    logger.warning("Skipping malformed export line %s: %s", line_number, exc)
                    if on_malformed is not None:
                        on_malformed(line_number, str(exc))
                    continue
                yield person
    except (OSError, EOFError, zlib.error) as exc:
        raise TmdbExportError(f"Failed to decompress export {path.name}: {exc}") from exc


def check_export_access(
    session: requests.Session,
    *,
    api_key: str | None = None,
    timeout_seconds: float = 30.0,
) -> dict[str, int | None]:
    """Diagnostic probe of the export host; returns status codes keyed by URL (None on transport error)."""

    statuses: dict[str, int | None] = {}
    for url, params in (
        (EXPORT_BASE_URL, None),
        (build_export_url(DAILY_EXPORT_FALLBACKS[0]), _export_params(api_key)),
    ):
        try:
            with session.get(url, params=params, stream=True, timeout=timeout_seconds) as resp:
                statuses[url] = resp.status_code
        except requests.RequestException as exc:
            logger.error("Export access check failed for %s: %s", url, exc)
            statuses[url] = None
            continue
        logger.info("Export access check %s -> %s", url, statuses[url])
    return statuses
