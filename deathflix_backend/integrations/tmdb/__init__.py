"""
TMDb integration clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deathflix_backend.integrations.tmdb.client import TmdbClient, TmdbClientError
    from deathflix_backend.integrations.tmdb.exports import TmdbExportError

__all__ = [
    "TmdbClient",
    "TmdbClientError",
    "TmdbExportError",
]


def __getattr__(name: str):
    if name == "TmdbExportError":
        from deathflix_backend.integrations.tmdb import exports

        return exports.TmdbExportError
    if name in __all__:
        from deathflix_backend.integrations.tmdb import client

        return getattr(client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
