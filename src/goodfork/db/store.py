"""
GoodFork - Recommendation store.

RecommendationStore is the persistence interface the engine, feedback
handler and goal-alignment evaluator depend on. SupabaseStore implements
it over PostgREST.

Tables:
    users, user_profiles, recipes, inventory_items, recommendations, feedback

Feedback writes go through the `record_feedback_event` SQL function
(migrations/001_recommendations.sql) so the event insert and the status
update commit together.
"""

import logging
from typing import Any, Protocol, runtime_checkable

from supabase import Client

from goodfork.models.catalog import CandidateRecipe
from goodfork.models.profile import Profile, UserRecord

logger = logging.getLogger(__name__)

RECIPE_COLUMNS = (
    "id, slug, title, description, image_url, price_cents, calories, protein_grams, "
    "carbs_grams, fat_grams, tags, allergens, healthy_highlights"
)


@runtime_checkable
class RecommendationStore(Protocol):
    """Persistence used by the recommendation pipeline and its readers."""

    async def get_user(self, *, user_id: str | None = None, email: str | None = None) -> UserRecord | None:
        """Resolve a user (with profile) by id, else by email."""
        ...

    async def get_profile(self, user_id: str) -> Profile | None:
        ...

    async def list_catalog(self) -> list[CandidateRecipe]:
        """Point-in-time snapshot of every recipe joined with its inventory."""
        ...

    async def create_recommendations(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert recommendation rows in one statement; returns created rows in order."""
        ...

    async def get_recommendation(self, recommendation_id: str) -> dict[str, Any] | None:
        ...

    async def record_feedback(
        self,
        *,
        recommendation_id: str,
        user_id: str,
        action: str,
        sentiment: str,
        notes: str | None,
        status: str,
    ) -> dict[str, Any] | None:
        """
        Atomically insert a feedback row and set the recommendation status.

        Returns the feedback row, or None when the (recommendation, user)
        pair doesn't exist. Nothing is written in that case.
        """
        ...

    async def list_recommendations(
        self,
        user_id: str,
        *,
        statuses: list[str] | None = None,
        order_by: str = "created_at",
        limit: int = 12,
    ) -> list[dict[str, Any]]:
        """Newest-first recommendations with the recipe embedded under 'recipe'."""
        ...


def _one(value: Any) -> Any:
    """PostgREST returns 1:1 embeds as an object or a one-item list."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


class SupabaseStore:
    """RecommendationStore backed by Supabase."""

    def __init__(self, client: Client):
        self.client = client

    async def get_user(self, *, user_id: str | None = None, email: str | None = None) -> UserRecord | None:
        query = self.client.table("users").select("id, email, user_profiles(*)")
        if user_id:
            query = query.eq("id", user_id)
        elif email:
            query = query.eq("email", email.lower())
        else:
            return None

        result = query.limit(1).execute()
        if not result.data:
            return None

        row = result.data[0]
        profile_row = _one(row.get("user_profiles"))
        profile = None
        if profile_row:
            profile = Profile.from_row({**profile_row, "user_id": row["id"]})
        return UserRecord(id=row["id"], email=row.get("email"), profile=profile)

    async def get_profile(self, user_id: str) -> Profile | None:
        result = self.client.table("user_profiles").select("*").eq("user_id", user_id).limit(1).execute()
        if not result.data:
            return None
        return Profile.from_row(result.data[0])

    async def list_catalog(self) -> list[CandidateRecipe]:
        result = (
            self.client.table("recipes")
            .select(f"{RECIPE_COLUMNS}, inventory_items(status, quantity, unit_label)")
            .order("title")
            .order("id")
            .execute()
        )
        return [CandidateRecipe.from_row(row) for row in result.data or []]

    async def create_recommendations(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not rows:
            return []
        result = self.client.table("recommendations").insert(rows).execute()
        return result.data or []

    async def get_recommendation(self, recommendation_id: str) -> dict[str, Any] | None:
        result = (
            self.client.table("recommendations")
            .select("id, user_id, recipe_id, status")
            .eq("id", recommendation_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    async def record_feedback(
        self,
        *,
        recommendation_id: str,
        user_id: str,
        action: str,
        sentiment: str,
        notes: str | None,
        status: str,
    ) -> dict[str, Any] | None:
        result = self.client.rpc(
            "record_feedback_event",
            {
                "p_recommendation_id": recommendation_id,
                "p_user_id": user_id,
                "p_action": action,
                "p_sentiment": sentiment,
                "p_notes": notes,
                "p_status": status,
            },
        ).execute()
        return _one(result.data)

    async def list_recommendations(
        self,
        user_id: str,
        *,
        statuses: list[str] | None = None,
        order_by: str = "created_at",
        limit: int = 12,
    ) -> list[dict[str, Any]]:
        query = (
            self.client.table("recommendations")
            .select(f"id, recipe_id, status, created_at, updated_at, recipe:recipes({RECIPE_COLUMNS})")
            .eq("user_id", user_id)
        )
        if statuses:
            query = query.in_("status", statuses)
        result = query.order(order_by, desc=True).limit(limit).execute()

        rows = []
        for row in result.data or []:
            recipe = _one(row.get("recipe"))
            if not recipe:
                logger.warning(f"Recommendation {row.get('id')} has no recipe; skipping")
                continue
            rows.append({**row, "recipe": recipe})
        return rows


def get_store() -> SupabaseStore:
    """Build the default store over the shared Supabase client."""
    from goodfork.db.client import get_client

    return SupabaseStore(get_client())
