"""Supabase admin client for migration scripts (service role key)."""

from __future__ import annotations

from supabase import Client, create_client

from totalis_migration.utils.errors import SupabaseNotConfiguredError
from totalis_migration.utils.settings import get_settings


def get_supabase_client() -> Client:
    """
    Build a Supabase client from settings.

    Raises SupabaseNotConfiguredError when SUPABASE_URL or the service key is missing.
    """
    settings = get_settings()
    url = (settings.supabase_url or "").strip()
    key = (settings.supabase_service_key or "").strip()
    if not url or not key:
        raise SupabaseNotConfiguredError(
            "SUPABASE_URL and SUPABASE_SERVICE_KEY (or SUPABASE_KEY) must be set"
        )
    return create_client(url, key)
