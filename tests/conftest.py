"""
Pytest configuration and fixtures for GoodFork tests.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

# Set test environment before importing goodfork modules
os.environ["GOODFORK_ENV"] = "development"
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")

from goodfork.config import Settings
from goodfork.models.catalog import CandidateRecipe
from goodfork.models.profile import Profile, UserRecord

EPOCH = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def recipe_row(
    recipe_id: str,
    *,
    status: str | None = "IN_STOCK",
    quantity: int = 20,
    **overrides: Any,
) -> dict[str, Any]:
    """A `recipes` row with its inventory embedded, as PostgREST returns it."""
    row = {
        "id": recipe_id,
        "slug": recipe_id,
        "title": f"Recipe {recipe_id}",
        "description": "",
        "image_url": None,
        "price_cents": None,
        "calories": None,
        "protein_grams": None,
        "carbs_grams": None,
        "fat_grams": None,
        "tags": [],
        "allergens": [],
        "healthy_highlights": [],
        "inventory_items": (
            {"status": status, "quantity": quantity, "unit_label": "bowl"} if status else None
        ),
    }
    row.update(overrides)
    return row


def make_recipe(recipe_id: str, **kwargs: Any) -> CandidateRecipe:
    return CandidateRecipe.from_row(recipe_row(recipe_id, **kwargs))


def make_profile(
    user_id: str = "user-1",
    *,
    goals: list[str] | None = None,
    allergens: list[str] | None = None,
    diet: list[str] | None = None,
    tastes: list[str] | None = None,
    budget_cents: int | None = None,
) -> Profile:
    return Profile.from_row(
        {
            "user_id": user_id,
            "dietary_goals": goals or [],
            "allergens": allergens or [],
            "dietary_preferences": diet or [],
            "taste_preferences": tastes or [],
            "budget_cents": budget_cents,
        }
    )


def make_settings(**overrides: Any) -> Settings:
    values = {
        "supabase_url": "https://test-project.supabase.co",
        "supabase_service_role_key": "test-service-role-key",
        "openai_api_key": None,
        "enable_ai_ranking": True,
        "require_ai_ranking": False,
        "llm_timeout_seconds": 2.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class FakeStore:
    """
    In-memory RecommendationStore.

    `record_feedback` is all-or-nothing: with `fail_feedback_write` set it
    raises before touching either table, like a rolled-back transaction.
    """

    def __init__(self, users: list[UserRecord] | None = None, recipes: list[dict[str, Any]] | None = None):
        self.users = {user.id: user for user in users or []}
        self.recipe_rows = {row["id"]: row for row in recipes or []}
        self.recommendations: dict[str, dict[str, Any]] = {}
        self.feedback: list[dict[str, Any]] = []
        self.fail_feedback_write = False
        self._seq = 0

    def _tick(self) -> datetime:
        self._seq += 1
        return EPOCH + timedelta(seconds=self._seq)

    async def get_user(self, *, user_id=None, email=None):
        if user_id:
            return self.users.get(user_id)
        if email:
            return next((u for u in self.users.values() if u.email == email), None)
        return None

    async def get_profile(self, user_id):
        user = self.users.get(user_id)
        return user.profile if user else None

    async def list_catalog(self):
        return [CandidateRecipe.from_row(row) for row in self.recipe_rows.values()]

    async def create_recommendations(self, rows):
        created = []
        for row in rows:
            now = self._tick()
            record = {**row, "id": f"rec-{self._seq}", "created_at": now, "updated_at": now}
            self.recommendations[record["id"]] = record
            created.append(dict(record))
        return created

    async def get_recommendation(self, recommendation_id):
        row = self.recommendations.get(recommendation_id)
        return dict(row) if row else None

    async def record_feedback(self, *, recommendation_id, user_id, action, sentiment, notes, status):
        row = self.recommendations.get(recommendation_id)
        if row is None or row["user_id"] != user_id:
            return None
        if self.fail_feedback_write:
            raise RuntimeError("connection reset during feedback write")

        now = self._tick()
        event = {
            "id": f"fb-{self._seq}",
            "recommendation_id": recommendation_id,
            "user_id": user_id,
            "action": action,
            "sentiment": sentiment,
            "notes": notes,
            "created_at": now,
        }
        self.feedback.append(event)
        row["status"] = status
        row["updated_at"] = now
        return dict(event)

    async def list_recommendations(self, user_id, *, statuses=None, order_by="created_at", limit=12):
        rows = [
            row
            for row in self.recommendations.values()
            if row["user_id"] == user_id and (not statuses or row["status"] in statuses)
        ]
        rows.sort(key=lambda r: r[order_by], reverse=True)
        return [{**row, "recipe": self.recipe_rows[row["recipe_id"]]} for row in rows[:limit]]

    def add_recommendation(self, user_id: str, recipe_id: str, status: str = "SHOWN") -> dict[str, Any]:
        """Seed a persisted recommendation directly."""
        now = self._tick()
        row = {
            "id": f"rec-{self._seq}",
            "user_id": user_id,
            "recipe_id": recipe_id,
            "status": status,
            "rationale": "Seeded",
            "metadata": {},
            "created_at": now,
            "updated_at": now,
        }
        self.recommendations[row["id"]] = row
        return row


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "in_", "order", "limit"):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table
    mock_client.rpc.return_value.execute.return_value = MagicMock(data=[])

    return mock_client


@pytest.fixture
def settings():
    """Settings with AI ranking unconfigured."""
    return make_settings()


@pytest.fixture
def ai_settings():
    """Settings with AI ranking configured."""
    return make_settings(openai_api_key="sk-test-not-real")


@pytest.fixture
def lean_profile():
    return make_profile(goals=["LEAN_MUSCLE"], allergens=["DAIRY"])


@pytest.fixture
def sample_recipes():
    """A small menu: mixed stock levels, one dairy dish, one sold out."""
    return [
        recipe_row(
            "salmon-bowl",
            title="Citrus Salmon Bowl",
            protein_grams=38,
            carbs_grams=42,
            fat_grams=18,
            calories=540,
            price_cents=1400,
            tags=["PESCATARIAN", "HIGH_PROTEIN"],
            allergens=["FISH"],
            healthy_highlights=["OMEGA_3"],
            quantity=40,
        ),
        recipe_row(
            "chicken-harissa",
            title="Harissa Chicken Plate",
            protein_grams=42,
            carbs_grams=35,
            fat_grams=14,
            calories=510,
            price_cents=1300,
            tags=["HIGH_PROTEIN"],
            quantity=25,
        ),
        recipe_row(
            "mac-cheese",
            title="Creamy Mac",
            protein_grams=20,
            carbs_grams=70,
            fat_grams=28,
            calories=780,
            price_cents=1100,
            tags=["COMFORT"],
            allergens=["DAIRY", "GLUTEN"],
            quantity=30,
        ),
        recipe_row(
            "tofu-stirfry",
            title="Ginger Tofu Stir-fry",
            protein_grams=26,
            carbs_grams=48,
            fat_grams=12,
            calories=480,
            price_cents=1200,
            tags=["VEGAN", "PLANT_BASED"],
            allergens=["SOY"],
            status="LOW_STOCK",
            quantity=6,
        ),
        recipe_row(
            "lentil-soup",
            title="Lentil Soup",
            protein_grams=18,
            carbs_grams=40,
            fat_grams=6,
            calories=380,
            price_cents=900,
            tags=["VEGAN"],
            status="OUT_OF_STOCK",
            quantity=0,
        ),
    ]


@pytest.fixture
def store(sample_recipes, lean_profile):
    user = UserRecord(id="user-1", email="ada@example.com", profile=lean_profile)
    return FakeStore(users=[user], recipes=sample_recipes)
