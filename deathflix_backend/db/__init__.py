"""
Database helpers for Deathflix scripts/services.
"""

from deathflix_backend.db.supabase import create_supabase_admin_client

__all__ = [
    "create_supabase_admin_client",
]
