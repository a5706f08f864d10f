from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from deathflix_backend.utils.env import env_float, env_int, env_str, load_env


def _default_export_dir() -> Path:
    return Path(tempfile.gettempdir()) / "tmdb_exports"


@dataclass(frozen=True)
class SyncSettings:
    """
    Tunables for the TMDb sync jobs and scheduler.

    Defaults match the production cadence; `from_env()` applies `DEATHFLIX_*` overrides.
    """

    popularity_threshold: float = 5.0
    popularity_epsilon: float = 0.01
    export_batch_size: int = 100
    export_dir: Path = field(default_factory=_default_export_dir)

    details_refresh_interval: timedelta = timedelta(days=30)
    details_batch_size: int = 50
    details_batch_pause: timedelta = timedelta(seconds=5)
    api_request_delay: timedelta = timedelta(milliseconds=250)

    death_check_interval: timedelta = timedelta(days=7)
    death_check_batch_size: int = 100
    death_check_delay: timedelta = timedelta(milliseconds=500)

    sync_interval: timedelta = timedelta(hours=24)
    failure_cooldown: timedelta = timedelta(minutes=15)
    details_interval: timedelta = timedelta(minutes=30)
    details_initial_delay: timedelta = timedelta(minutes=2)

    @classmethod
    def from_env(cls) -> "SyncSettings":
        load_env()
        defaults = cls()
        export_dir = env_str("DEATHFLIX_EXPORT_DIR")
        return cls(
            popularity_threshold=env_float("DEATHFLIX_POPULARITY_THRESHOLD", defaults.popularity_threshold),
            export_batch_size=max(1, env_int("DEATHFLIX_EXPORT_BATCH_SIZE", defaults.export_batch_size)),
            export_dir=Path(export_dir) if export_dir else defaults.export_dir,
            details_batch_size=max(1, env_int("DEATHFLIX_DETAILS_BATCH_SIZE", defaults.details_batch_size)),
            death_check_batch_size=max(
                1, env_int("DEATHFLIX_DEATH_CHECK_BATCH_SIZE", defaults.death_check_batch_size)
            ),
            sync_interval=timedelta(hours=env_float("DEATHFLIX_SYNC_INTERVAL_HOURS", 24)),
            details_interval=timedelta(minutes=env_float("DEATHFLIX_DETAILS_INTERVAL_MINUTES", 30)),
            failure_cooldown=timedelta(minutes=env_float("DEATHFLIX_FAILURE_COOLDOWN_MINUTES", 15)),
        )
