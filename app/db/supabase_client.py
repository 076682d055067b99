"""Shared Supabase client for the preference store and usage log."""

from functools import lru_cache

from supabase import Client, create_client

from app.core.config import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Cached service-role client.

    Only built when PREFERENCE_STORE=supabase or LLM_USAGE_LOGGING is on, so
    the default in-memory setup needs no credentials.

    Raises:
        RuntimeError: Credentials are missing or the client could not be built
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise RuntimeError(f"Supabase client for {settings.SUPABASE_URL} could not be built: {e}") from e
