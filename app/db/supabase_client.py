"""Shared Supabase client for the db modules."""

from functools import lru_cache

from supabase import Client, create_client

from app.core.config import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get the service-role Supabase client, created once per process.

    Every db module goes through this client so tests can patch a single
    `get_supabase` per module.

    Returns:
        Supabase client

    Raises:
        RuntimeError: If the connection settings are empty or the client cannot be created
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must both be set")

    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise RuntimeError(f"Failed to create Supabase client: {e}") from e
