"""
Tests for the LLM reranking adapter.

The chat-completion call is replaced with a stub; no network.
"""

import asyncio
import json

import pytest

from conftest import make_profile, make_recipe, make_settings
from goodfork.engine.reranker import (
    LLMReranker,
    RankingPayload,
    RerankDegraded,
    RerankFatal,
    RerankOk,
    build_user_prompt,
    match_entries,
)
from goodfork.engine.scoring import rank_candidates


@pytest.fixture
def shortlist():
    catalog = [
        make_recipe("a", protein_grams=40, quantity=50),
        make_recipe("b", protein_grams=30, quantity=20, healthy_highlights=["OMEGA_3", "FIBER", "IRON", "ZINC"]),
        make_recipe("c", protein_grams=20, quantity=20),
        make_recipe("d", protein_grams=10, quantity=10),
    ]
    return rank_candidates(catalog, make_profile(goals=["LEAN_MUSCLE"]))


@pytest.fixture
def profile():
    return make_profile(goals=["LEAN_MUSCLE"])


def stub(content=None, *, error=None, delay=0.0):
    calls = []
    cancelled = []

    async def complete(**kwargs):
        calls.append(kwargs)
        if delay:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise
        if error:
            raise error
        return content

    complete.calls = calls
    complete.cancelled = cancelled
    return complete


def payload(*items):
    return json.dumps({"recommendations": list(items)})


class TestEnablement:
    """When the LLM is consulted at all."""

    async def test_disabled_without_key(self, settings, profile, shortlist):
        complete = stub(payload({"recipeId": "a"}))
        reranker = LLMReranker(settings, complete=complete)

        outcome = await reranker.rerank(profile, shortlist, 3)

        assert outcome == RerankDegraded("disabled")
        assert complete.calls == []

    async def test_disabled_by_flag(self, profile, shortlist):
        settings = make_settings(openai_api_key="sk-test", enable_ai_ranking=False)
        outcome = await LLMReranker(settings, complete=stub()).rerank(profile, shortlist, 3)
        assert outcome == RerankDegraded("disabled")

    async def test_deterministic_only_never_fatal(self, profile, shortlist):
        settings = make_settings(openai_api_key="sk-test", require_ai_ranking=True)
        complete = stub(payload({"recipeId": "a"}))

        outcome = await LLMReranker(settings, complete=complete).rerank(
            profile, shortlist, 3, deterministic_only=True
        )

        assert outcome == RerankDegraded("deterministic_only")
        assert complete.calls == []

    async def test_require_mode_without_config_is_fatal(self, profile, shortlist):
        settings = make_settings(require_ai_ranking=True)

        outcome = await LLMReranker(settings, complete=stub()).rerank(profile, shortlist, 3)

        assert isinstance(outcome, RerankFatal)
        assert outcome.error.error_code == "llm_required"
        assert outcome.error.status_code == 503


class TestOk:

    async def test_model_order_kept(self, ai_settings, profile, shortlist):
        complete = stub(payload(
            {"recipeId": "c", "rationale": "Light and quick.", "healthySwapIdea": "Extra greens", "swapRecipeId": "a"},
            {"recipeId": "a", "rationale": "Protein forward."},
            {"recipeId": "b"},
        ))

        outcome = await LLMReranker(ai_settings, complete=complete).rerank(profile, shortlist, 3)

        assert isinstance(outcome, RerankOk)
        assert [e.recipe_id for e in outcome.entries] == ["c", "a", "b"]
        assert outcome.entries[0].rationale == "Light and quick."
        assert outcome.entries[0].swap_recipe_id == "a"
        assert outcome.entries[2].rationale is None

    async def test_call_parameters(self, ai_settings, profile, shortlist):
        complete = stub(payload({"recipeId": "a"}))
        await LLMReranker(ai_settings, complete=complete).rerank(profile, shortlist, 3)

        call = complete.calls[0]
        assert call["model"] == ai_settings.recommender_model
        assert '"recipeId": "a"' in call["user_prompt"]


class TestDegraded:
    """Every failure mode falls back without raising."""

    @pytest.mark.parametrize(
        "content, reason",
        [
            ("not json at all", "invalid_payload"),
            ("{}", "invalid_payload"),
            (json.dumps({"recommendations": []}), "invalid_payload"),
            (json.dumps({"recommendations": [{"rationale": "no id"}]}), "invalid_payload"),
            (json.dumps({"recommendations": "a,b"}), "invalid_payload"),
            (payload({"recipeId": "zzz"}), "no_matching_ids"),
            (None, "empty_response"),
            ("", "empty_response"),
        ],
    )
    async def test_bad_content(self, ai_settings, profile, shortlist, content, reason):
        outcome = await LLMReranker(ai_settings, complete=stub(content)).rerank(profile, shortlist, 3)
        assert outcome == RerankDegraded(reason)

    async def test_request_error(self, ai_settings, profile, shortlist):
        complete = stub(error=RuntimeError("502 Bad Gateway"))
        outcome = await LLMReranker(ai_settings, complete=complete).rerank(profile, shortlist, 3)
        assert outcome == RerankDegraded("request_failed")

    async def test_timeout(self, profile, shortlist):
        settings = make_settings(openai_api_key="sk-test", llm_timeout_seconds=0.05)
        complete = stub(payload({"recipeId": "a"}), delay=1.0)

        outcome = await LLMReranker(settings, complete=complete).rerank(profile, shortlist, 3)

        assert outcome == RerankDegraded("timeout")
        assert complete.cancelled == [True]

    async def test_abort(self, ai_settings, profile, shortlist):
        abort = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, abort.set)
        complete = stub(payload({"recipeId": "a"}), delay=1.0)

        outcome = await LLMReranker(ai_settings, complete=complete).rerank(profile, shortlist, 3, abort=abort)

        assert outcome == RerankDegraded("aborted")
        assert complete.cancelled == [True]

    async def test_abort_waiter_collected(self, ai_settings, profile, shortlist):
        abort = asyncio.Event()
        before = len(asyncio.all_tasks())

        outcome = await LLMReranker(ai_settings, complete=stub(payload({"recipeId": "a"}))).rerank(
            profile, shortlist, 3, abort=abort
        )

        assert isinstance(outcome, RerankOk)
        assert len(asyncio.all_tasks()) == before

    async def test_no_candidates(self, ai_settings, profile):
        outcome = await LLMReranker(ai_settings, complete=stub()).rerank(profile, [], 3)
        assert outcome == RerankDegraded("no_candidates")

    async def test_require_mode_turns_degraded_fatal(self, profile, shortlist):
        settings = make_settings(openai_api_key="sk-test", require_ai_ranking=True)
        outcome = await LLMReranker(settings, complete=stub("nope")).rerank(profile, shortlist, 3)
        assert isinstance(outcome, RerankFatal)


class TestMatchEntries:
    """Sanitizing the model's picks."""

    def test_drops_unknown_and_duplicate_ids(self, shortlist):
        parsed = RankingPayload.model_validate_json(payload(
            {"recipeId": "ghost"},
            {"recipeId": "b"},
            {"recipeId": "b"},
            {"recipeId": "a"},
        ))
        assert [e.recipe_id for e in match_entries(parsed, shortlist, 5)] == ["b", "a"]

    def test_nulls_self_and_unknown_swaps(self, shortlist):
        parsed = RankingPayload.model_validate_json(payload(
            {"recipeId": "a", "swapRecipeId": "a"},
            {"recipeId": "b", "swapRecipeId": "ghost"},
            {"recipeId": "c", "swapRecipeId": "d"},
        ))
        entries = match_entries(parsed, shortlist, 5)
        assert [e.swap_recipe_id for e in entries] == [None, None, "d"]

    def test_bounded_to_limit(self, shortlist):
        parsed = RankingPayload.model_validate_json(payload(*({"recipeId": rid} for rid in "abcd")))
        assert len(match_entries(parsed, shortlist, 3)) == 3

    def test_copy_truncated(self, shortlist):
        parsed = RankingPayload.model_validate_json(payload(
            {"recipeId": "a", "rationale": "r" * 400, "healthySwapIdea": "s" * 400},
        ))
        entry = match_entries(parsed, shortlist, 3)[0]
        assert len(entry.rationale) == 220
        assert entry.rationale.endswith("…")
        assert len(entry.healthy_swap_idea) == 220

    def test_blank_copy_becomes_none(self, shortlist):
        parsed = RankingPayload.model_validate_json(payload({"recipeId": "a", "rationale": "   "}))
        assert match_entries(parsed, shortlist, 3)[0].rationale is None


class TestPrompt:

    def test_contains_profile_and_candidates(self, profile, shortlist):
        prompt = build_user_prompt(profile, shortlist, 4)
        body = json.loads(prompt.split("Payload:\n", 1)[1])

        assert body["limit"] == 4
        assert body["profile"]["goals"] == ["LEAN_MUSCLE"]
        assert [c["recipeId"] for c in body["candidates"]] == [e.id for e in shortlist]

    def test_highlights_capped_at_three(self, profile, shortlist):
        body = json.loads(build_user_prompt(profile, shortlist, 4).split("Payload:\n", 1)[1])
        b = next(c for c in body["candidates"] if c["recipeId"] == "b")
        assert b["highlights"] == ["OMEGA_3", "FIBER", "IRON"]
        assert b["inventoryStatus"] == "IN_STOCK"
