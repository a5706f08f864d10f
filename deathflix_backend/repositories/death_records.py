from __future__ import annotations

from typing import Any

from supabase import Client

from deathflix_backend.models.actors import DeathRecord
from deathflix_backend.repositories.preflight import assert_core_table_exists


class DeathRecordRepositoryError(RuntimeError):
    pass


def assert_core_death_records_table_exists(db: Client) -> None:
    assert_core_table_exists(db, "death_records", error_cls=DeathRecordRepositoryError)


def _raise_for_supabase_error(response: Any, context: str) -> None:
    if hasattr(response, "error") and response.error:
        raise DeathRecordRepositoryError(f"Supabase error during {context}: {response.error}")


def fetch_death_record_for_actor(db: Client, actor_id: int) -> DeathRecord | None:
    response = (
        db.schema("core")
        .table("death_records")
        .select("*")
        .eq("actor_id", int(actor_id))
        .limit(1)
        .execute()
    )
    _raise_for_supabase_error(response, "fetching death record")
    data = response.data or []
    if isinstance(data, list) and data:
        return DeathRecord.from_row(data[0])
    return None


def upsert_death_record(db: Client, record: DeathRecord) -> DeathRecord:
    """One death record per actor; a repeated write refreshes `last_verified` instead of duplicating."""
    response = (
        db.schema("core")
        .table("death_records")
        .upsert(record.to_row(), on_conflict="actor_id")
        .execute()
    )
    _raise_for_supabase_error(response, "upserting death record")
    data = response.data or []
    if isinstance(data, list) and data:
        return DeathRecord.from_row(data[0])
    raise DeathRecordRepositoryError(f"Supabase upsert returned no data for death record actor_id={record.actor_id}.")
