"""
GoodFork - Supabase Client.

Low-level database access. The engine runs server-side with the service
role key; ownership is enforced in queries, not by RLS.
"""

from supabase import Client, create_client

from goodfork.config import settings

# Singleton client instance
_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _client


def reset_client() -> None:
    """Drop the cached client (settings changed, or tests)."""
    global _client
    _client = None
