from __future__ import annotations

import logging
import sys

from deathflix_backend.utils.env import env_str

_INITIALIZED: bool = False


def init_logging(level: str | None = None) -> None:
    """Configure a single stdout handler on the root logger (idempotent)."""
    global _INITIALIZED
    if _INITIALIZED:
        return

    level_name = (level or env_str("LOG_LEVEL", "INFO") or "INFO").upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root_logger.addHandler(handler)

    # requests/urllib3 are chatty at DEBUG and would log export URLs with the api key.
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    _INITIALIZED = True
