from __future__ import annotations

import copy
from datetime import date, datetime
from typing import Any, Callable

import pytest

from deathflix_backend.ingestion.settings import SyncSettings
from deathflix_backend.models.tmdb import TmdbPersonDetails
from deathflix_backend.utils.dates import parse_datetime

# FK cascades mirrored from supabase/migrations/0001_init.sql
_CASCADES: dict[str, list[tuple[str, str]]] = {
    "actors": [("death_records", "actor_id"), ("movie_credits", "actor_id")],
    "movies": [("movie_credits", "movie_id")],
}

_DEFAULTS: dict[str, dict[str, Any]] = {
    "actors": {
        "biography": None,
        "place_of_birth": None,
        "date_of_birth": None,
        "date_of_death": None,
        "popularity": 0.0,
        "profile_path": None,
        "last_details_check": None,
        "last_death_check": None,
    },
}


def _norm(value: Any) -> Any:
    if isinstance(value, str) and len(value) >= 10 and value[4] == "-" and value[7] == "-":
        return parse_datetime(value) or value
    return value


class FakeResponse:
    def __init__(self, data: list[dict[str, Any]] | None = None, count: int | None = None) -> None:
        self.data = data or []
        self.count = count
        self.error = None


class FakeQuery:
    """Just enough of the postgrest query builder for the repositories."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._on_conflict: list[str] = []
        self._filters: list[Callable[[dict[str, Any]], bool]] = []
        self._orders: list[tuple[str, bool]] = []
        self._limit: int | None = None
        self._range: tuple[int, int] | None = None
        self._count: str | None = None
        self._negate = False

    # --- operations ---
    def select(self, *_columns: str, count: str | None = None) -> "FakeQuery":
        self._op = "select"
        self._count = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op, self._payload = "insert", payload
        return self

    def upsert(self, payload: Any, on_conflict: str = "") -> "FakeQuery":
        self._op, self._payload = "upsert", payload
        self._on_conflict = [c for c in on_conflict.split(",") if c]
        return self

    def update(self, patch: dict[str, Any]) -> "FakeQuery":
        self._op, self._payload = "update", patch
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    # --- filters ---
    @property
    def not_(self) -> "FakeQuery":
        self._negate = True
        return self

    def _add(self, predicate: Callable[[dict[str, Any]], bool]) -> "FakeQuery":
        if self._negate:
            self._negate = False
            self._filters.append(lambda row: not predicate(row))
        else:
            self._filters.append(predicate)
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._add(lambda row: _norm(row.get(column)) == _norm(value))

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        wanted = {_norm(v) for v in values}
        return self._add(lambda row: _norm(row.get(column)) in wanted)

    def lt(self, column: str, value: Any) -> "FakeQuery":
        def predicate(row: dict[str, Any]) -> bool:
            current = row.get(column)
            return current is not None and _norm(current) < _norm(value)

        return self._add(predicate)

    def is_(self, column: str, value: str) -> "FakeQuery":
        assert value == "null"
        return self._add(lambda row: row.get(column) is None)

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._orders.append((column, desc))
        return self

    def limit(self, n: int) -> "FakeQuery":
        self._limit = n
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    # --- execution ---
    def _matching(self) -> list[dict[str, Any]]:
        return [row for row in self._db.rows(self._table) if all(f(row) for f in self._filters)]

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        failure = self._db.failures.get((self._table, self._op))
        if failure is not None:
            raise failure
        if self._op == "select":
            rows = self._matching()
            total = len(rows)
            for column, desc in reversed(self._orders):
                rows.sort(key=lambda r: (r.get(column) is None, _norm(r.get(column))), reverse=desc)
            if self._range is not None:
                rows = rows[self._range[0] : self._range[1] + 1]
            if self._limit is not None:
                rows = rows[: self._limit]
            return FakeResponse([copy.deepcopy(r) for r in rows], count=total if self._count else None)
        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            return FakeResponse([self._db.insert_row(self._table, row) for row in payload])
        if self._op == "upsert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            return FakeResponse([self._db.upsert_row(self._table, row, self._on_conflict) for row in payload])
        if self._op == "update":
            updated = []
            for row in self._matching():
                row.update(copy.deepcopy(self._payload))
                updated.append(copy.deepcopy(row))
            return FakeResponse(updated)
        if self._op == "delete":
            doomed = self._matching()
            for row in doomed:
                self._db.delete_row(self._table, row)
            return FakeResponse([copy.deepcopy(r) for r in doomed])
        raise AssertionError(f"unsupported op {self._op}")


class FakeSupabase:
    """In-memory stand-in for the Supabase client (schema `core` only)."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self._next_id = 1

    def schema(self, name: str) -> "FakeSupabase":
        assert name == "core"
        return self

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def insert_row(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        stored = {**_DEFAULTS.get(table, {}), **copy.deepcopy(row)}
        stored.setdefault("id", self._next_id)
        self._next_id = max(self._next_id, stored["id"]) + 1
        self.rows(table).append(stored)
        return copy.deepcopy(stored)

    def upsert_row(self, table: str, row: dict[str, Any], conflict: list[str]) -> dict[str, Any]:
        for existing in self.rows(table):
            if conflict and all(_norm(existing.get(c)) == _norm(row.get(c)) for c in conflict):
                existing.update(copy.deepcopy(row))
                return copy.deepcopy(existing)
        return self.insert_row(table, row)

    def delete_row(self, table: str, row: dict[str, Any]) -> None:
        self.tables[table] = [r for r in self.rows(table) if r is not row]
        for child, fk in _CASCADES.get(table, []):
            for dependent in [r for r in self.rows(child) if r.get(fk) == row.get("id")]:
                self.delete_row(child, dependent)

    def seed_actor(self, **fields: Any) -> dict[str, Any]:
        row: dict[str, Any] = {"name": f"Actor {fields.get('tmdb_id')}", "popularity": 10.0, **fields}
        for key, value in list(row.items()):
            if isinstance(value, (date, datetime)):
                row[key] = value.isoformat()
        return self.insert_row("actors", row)


class FakeTmdbClient:
    """Records detail fetches; values may be details, None (404) or an exception to raise."""

    def __init__(self, details: dict[int, Any] | None = None) -> None:
        self.details = details or {}
        self.detail_calls: list[int] = []
        self.session = object()
        self.api_key = "test-key"
        self.popular_pages: dict[int, Any] = {}
        self.credits: dict[int, Any] = {}

    def fetch_person_details(self, tmdb_id: int) -> TmdbPersonDetails | None:
        self.detail_calls.append(tmdb_id)
        value = self.details.get(tmdb_id)
        if isinstance(value, Exception):
            raise value
        return value

    def fetch_popular_people(self, page: int = 1):
        return self.popular_pages[page]

    def fetch_person_movie_credits(self, tmdb_id: int):
        value = self.credits.get(tmdb_id, [])
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def fake_tmdb() -> FakeTmdbClient:
    return FakeTmdbClient()


@pytest.fixture
def settings(tmp_path) -> SyncSettings:  # noqa: ANN001
    return SyncSettings(export_dir=tmp_path / "exports", export_batch_size=2)


@pytest.fixture
def no_sleep() -> list[float]:
    """Pass `sleeps.append` as the job's `sleep` to record delays without waiting."""
    return []
