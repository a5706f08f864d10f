from __future__ import annotations

from supabase import Client


def _is_missing_relation(message: str, table: str) -> bool:
    msg = (message or "").casefold()
    return (
        "42p01" in msg
        or "pgrst205" in msg
        or ("relation" in msg and "does not exist" in msg)
        or ("schema cache" in msg and table in msg)
        or ("could not find" in msg and "relation" in msg)
    )


def _is_schema_not_exposed(message: str) -> bool:
    msg = (message or "").casefold()
    return (
        "pgrst106" in msg
        or ("invalid schema" in msg and "core" in msg)
        or ("schemas are exposed" in msg and "public" in msg)
    )


def assert_core_table_exists(
    db: Client,
    table: str,
    *,
    error_cls: type[RuntimeError],
    probe_column: str = "id",
) -> None:
    """
    Fail fast with a clear error if `core.<table>` is missing in Supabase.
    """

    help_message = (
        f"Database table `core.{table}` is missing. "
        "Run `supabase db push` to apply migrations (see `supabase/migrations/0001_init.sql`), "
        "then re-run the sync job."
    )
    schema_help_message = (
        f"Supabase API does not expose schema `core`, so the sync job cannot access `core.{table}`. "
        "Add `core` to `supabase/config.toml` under `[api].schemas` and run `supabase config push` "
        "(or enable `core` in Supabase Dashboard -> Settings -> API -> Exposed schemas), then re-run the sync job."
    )

    try:
        response = db.schema("core").table(table).select(probe_column).limit(1).execute()
    except Exception as exc:
        if _is_schema_not_exposed(str(exc)):
            raise error_cls(schema_help_message) from exc
        if _is_missing_relation(str(exc), table):
            raise error_cls(help_message) from exc
        raise error_cls(f"Supabase error during core.{table} preflight: {exc}") from exc

    error = getattr(response, "error", None)
    if not error:
        return

    parts = [
        str(getattr(error, "code", "") or ""),
        str(getattr(error, "message", "") or ""),
        str(getattr(error, "details", "") or ""),
        str(getattr(error, "hint", "") or ""),
        str(error),
    ]
    combined = " ".join([p for p in parts if p]).strip()
    if _is_schema_not_exposed(combined):
        raise error_cls(schema_help_message)
    if _is_missing_relation(combined, table):
        raise error_cls(help_message)
    raise error_cls(f"Supabase error during core.{table} preflight: {combined}")
