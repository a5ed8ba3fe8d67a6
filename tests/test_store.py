"""
Tests for the Supabase-backed store, against a mocked client.
"""

from unittest.mock import MagicMock

from conftest import FakeStore, recipe_row
from goodfork.config import get_settings
from goodfork.db.store import RecommendationStore, SupabaseStore
from goodfork.models.catalog import InventoryStatus
from goodfork.models.profile import Goal


def returns(mock_supabase, data):
    mock_supabase.table.return_value.execute.return_value = MagicMock(data=data)


class TestProtocol:

    def test_implementations(self, mock_supabase):
        assert isinstance(SupabaseStore(mock_supabase), RecommendationStore)
        assert isinstance(FakeStore(), RecommendationStore)


class TestGetUser:

    async def test_by_id_with_profile(self, mock_supabase):
        returns(mock_supabase, [{
            "id": "user-1",
            "email": "ada@example.com",
            "user_profiles": [{"dietary_goals": ["LEAN_MUSCLE", "nonsense"], "allergens": ["dairy"]}],
        }])

        user = await SupabaseStore(mock_supabase).get_user(user_id="user-1")

        mock_supabase.table.assert_called_with("users")
        mock_supabase.table.return_value.eq.assert_called_with("id", "user-1")
        assert user.id == "user-1"
        assert user.profile.goals == (Goal.LEAN_MUSCLE,)
        assert user.profile.allergens == frozenset({"DAIRY"})
        assert user.profile.user_id == "user-1"

    async def test_by_email(self, mock_supabase):
        returns(mock_supabase, [{"id": "user-1", "email": "ada@example.com", "user_profiles": None}])

        user = await SupabaseStore(mock_supabase).get_user(email="Ada@Example.com")

        mock_supabase.table.return_value.eq.assert_called_with("email", "ada@example.com")
        assert user.profile is None

    async def test_missing(self, mock_supabase):
        assert await SupabaseStore(mock_supabase).get_user(user_id="nobody") is None

    async def test_no_identifier(self, mock_supabase):
        assert await SupabaseStore(mock_supabase).get_user() is None
        mock_supabase.table.return_value.execute.assert_not_called()


class TestCatalog:

    async def test_parses_inventory_embeds(self, mock_supabase):
        as_list = recipe_row("a", quantity=12)
        as_list["inventory_items"] = [as_list["inventory_items"]]
        missing = recipe_row("b", status=None)
        returns(mock_supabase, [as_list, missing])

        catalog = await SupabaseStore(mock_supabase).list_catalog()

        assert [r.id for r in catalog] == ["a", "b"]
        assert catalog[0].inventory.status == InventoryStatus.IN_STOCK
        assert catalog[0].inventory.quantity == 12
        assert catalog[1].inventory is None


class TestRecommendations:

    async def test_batch_insert(self, mock_supabase):
        rows = [{"user_id": "u", "recipe_id": "a"}, {"user_id": "u", "recipe_id": "b"}]
        returns(mock_supabase, [{**r, "id": f"rec-{i}"} for i, r in enumerate(rows)])

        created = await SupabaseStore(mock_supabase).create_recommendations(rows)

        mock_supabase.table.return_value.insert.assert_called_once_with(rows)
        assert [c["id"] for c in created] == ["rec-0", "rec-1"]

    async def test_list_filters_statuses_and_skips_orphans(self, mock_supabase):
        returns(mock_supabase, [
            {"id": "rec-1", "status": "ACCEPTED", "recipe": {"id": "a", "title": "A"}},
            {"id": "rec-2", "status": "SAVED", "recipe": None},
        ])

        rows = await SupabaseStore(mock_supabase).list_recommendations(
            "user-1", statuses=["ACCEPTED", "SAVED"], order_by="updated_at", limit=16
        )

        table = mock_supabase.table.return_value
        table.in_.assert_called_with("status", ["ACCEPTED", "SAVED"])
        table.order.assert_called_with("updated_at", desc=True)
        table.limit.assert_called_with(16)
        assert [r["id"] for r in rows] == ["rec-1"]
        assert rows[0]["recipe"]["title"] == "A"


class TestRecordFeedback:

    async def test_single_rpc_call(self, mock_supabase):
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=[{"id": "fb-1"}])

        row = await SupabaseStore(mock_supabase).record_feedback(
            recommendation_id="rec-1",
            user_id="user-1",
            action="ACCEPT",
            sentiment="POSITIVE",
            notes=None,
            status="ACCEPTED",
        )

        mock_supabase.rpc.assert_called_once_with(
            "record_feedback_event",
            {
                "p_recommendation_id": "rec-1",
                "p_user_id": "user-1",
                "p_action": "ACCEPT",
                "p_sentiment": "POSITIVE",
                "p_notes": None,
                "p_status": "ACCEPTED",
            },
        )
        mock_supabase.table.assert_not_called()
        assert row == {"id": "fb-1"}

    async def test_not_owned_returns_none(self, mock_supabase):
        row = await SupabaseStore(mock_supabase).record_feedback(
            recommendation_id="rec-1",
            user_id="intruder",
            action="SAVE",
            sentiment="NEUTRAL",
            notes=None,
            status="SAVED",
        )
        assert row is None


class TestSupabaseClient:

    def test_singleton_uses_service_role_key(self, monkeypatch):
        from goodfork.db import client as db_client

        created = []

        def fake_create_client(url, key):
            created.append((url, key))
            return MagicMock()

        db_client.reset_client()
        monkeypatch.setattr(db_client, "create_client", fake_create_client)
        try:
            first = db_client.get_client()
            second = db_client.get_client()
        finally:
            db_client.reset_client()

        assert first is second
        settings = get_settings()
        assert created == [(settings.supabase_url, settings.supabase_service_role_key)]
