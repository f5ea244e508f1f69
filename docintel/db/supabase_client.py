"""Supabase client initialization."""

from supabase import Client, create_client

from docintel.core.config import Settings


def create_supabase(settings: Settings) -> Client:
    """
    Create a Supabase client for the service role.

    Called once by the app factory; the client is then handed to the storage
    adapter rather than looked up globally.

    Raises:
        RuntimeError: If client initialization fails
    """
    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e
