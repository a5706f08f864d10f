"""
Shared Deathflix backend library code.

This package is intended to hold code that is reused across:
- the FastAPI app in `api/`
- the TMDb sync scheduler and one-off jobs in `scripts/`

App entrypoints (FastAPI routers, CLI scripts) should live outside this package and
import from `deathflix_backend` rather than the other way around.
"""
