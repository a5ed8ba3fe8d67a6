"""
GoodFork - Database access.

Supabase-backed persistence for recommendations and feedback.
"""

from goodfork.db.store import RecommendationStore, SupabaseStore, get_store

__all__ = [
    "RecommendationStore",
    "SupabaseStore",
    "get_store",
]
