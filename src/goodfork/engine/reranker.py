"""
GoodFork - LLM reranking adapter.

Asks a chat model to reorder the deterministic shortlist and write short
rationales. The step is optional and best-effort:

- RerankOk: the model returned usable picks
- RerankDegraded: anything went wrong (disabled, HTTP error, timeout,
  abort, bad JSON, unknown ids); the caller ranks deterministically
- RerankFatal: REQUIRE_AI_RANKING is set and no usable result arrived

The model's payload is validated strictly. A payload that doesn't match
the schema is rejected, never repaired.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from goodfork.config import Settings
from goodfork.engine.rationale import truncate
from goodfork.errors import LLMRequiredError
from goodfork.llm.client import complete_json
from goodfork.models.catalog import ScoredCandidate
from goodfork.models.profile import Profile

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are GoodFork's nutrition assistant. Re-rank menu items for the user. "
    "Always obey diet/allergen constraints and inventory availability; never return "
    "recipes that conflict. Prefer items that best match the primary goal and taste "
    "preferences. Return compact rationales (<200 chars) and optional healthy swap ideas. "
    "Only use recipeId values from the payload."
)


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class RerankEntry:
    recipe_id: str
    rationale: str | None = None
    healthy_swap_idea: str | None = None
    swap_recipe_id: str | None = None


@dataclass(frozen=True)
class RerankOk:
    entries: list[RerankEntry] = field(default_factory=list)


@dataclass(frozen=True)
class RerankDegraded:
    reason: str


@dataclass(frozen=True)
class RerankFatal:
    error: LLMRequiredError


RerankOutcome = Union[RerankOk, RerankDegraded, RerankFatal]


# =============================================================================
# Model payload schema
# =============================================================================


class RankedItem(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    recipe_id: str = Field(alias="recipeId", min_length=1)
    rationale: str | None = None
    healthy_swap_idea: str | None = Field(default=None, alias="healthySwapIdea")
    swap_recipe_id: str | None = Field(default=None, alias="swapRecipeId")

    @field_validator("rationale", "healthy_swap_idea", "swap_recipe_id")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class RankingPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recommendations: list[RankedItem] = Field(min_length=1)


class _Aborted(Exception):
    pass


CompleteFn = Callable[..., Awaitable[str | None]]


class LLMReranker:
    """Optional rerank step. Never raises for degraded conditions."""

    def __init__(self, settings: Settings, complete: CompleteFn | None = None):
        self.settings = settings
        self._complete = complete or complete_json

    def is_enabled(self, deterministic_only: bool = False) -> bool:
        return not deterministic_only and self.settings.ai_ranking_configured

    async def rerank(
        self,
        profile: Profile,
        candidates: list[ScoredCandidate],
        limit: int,
        *,
        deterministic_only: bool = False,
        abort: asyncio.Event | None = None,
    ) -> RerankOutcome:
        """
        Rerank the shortlist.

        Args:
            profile: The user's profile
            candidates: Scored shortlist, best-first
            limit: Number of picks wanted
            deterministic_only: Caller opted out; never fatal
            abort: Set by the caller to abandon an in-flight call

        Returns:
            RerankOk, RerankDegraded or RerankFatal
        """
        if deterministic_only:
            return RerankDegraded("deterministic_only")

        outcome = await self._attempt(profile, candidates, limit, abort)

        if isinstance(outcome, RerankDegraded):
            if outcome.reason != "disabled":
                logger.warning(f"LLM rerank degraded ({outcome.reason}); using deterministic ranking")
            if self.settings.require_ai_ranking:
                return RerankFatal(
                    LLMRequiredError(f"AI ranking is required but unavailable: {outcome.reason}")
                )
        return outcome

    async def _attempt(
        self,
        profile: Profile,
        candidates: list[ScoredCandidate],
        limit: int,
        abort: asyncio.Event | None,
    ) -> RerankOutcome:
        if not self.is_enabled():
            return RerankDegraded("disabled")
        if not candidates:
            return RerankDegraded("no_candidates")

        user_prompt = build_user_prompt(profile, candidates, limit)
        try:
            content = await self._run(
                self._complete(
                    system_prompt=SYSTEM_PROMPT,
                    user_prompt=user_prompt,
                    model=self.settings.recommender_model,
                ),
                abort,
            )
        except _Aborted:
            return RerankDegraded("aborted")
        except asyncio.TimeoutError:
            return RerankDegraded("timeout")
        except Exception as e:
            logger.info(f"Rerank call failed: {type(e).__name__}: {e}")
            return RerankDegraded("request_failed")

        if not content:
            return RerankDegraded("empty_response")

        try:
            payload = RankingPayload.model_validate_json(content)
        except ValidationError as e:
            logger.info(f"Rerank payload rejected: {e.error_count()} validation errors")
            return RerankDegraded("invalid_payload")

        entries = match_entries(payload, candidates, limit)
        if not entries:
            return RerankDegraded("no_matching_ids")
        return RerankOk(entries)

    async def _run(self, coro: Awaitable[str | None], abort: asyncio.Event | None) -> str | None:
        """Await the completion, bounded by the timeout and the abort signal."""
        task = asyncio.ensure_future(coro)
        waiters = {task}
        abort_task = None
        if abort is not None:
            abort_task = asyncio.ensure_future(abort.wait())
            waiters.add(abort_task)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self.settings.llm_timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            if abort_task is not None:
                abort_task.cancel()
                await asyncio.gather(abort_task, return_exceptions=True)

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if abort is not None and abort.is_set():
            raise _Aborted()
        raise asyncio.TimeoutError()


def build_user_prompt(profile: Profile, candidates: list[ScoredCandidate], limit: int) -> str:
    payload = {
        "profile": profile.summary(),
        "limit": limit,
        "candidates": [
            {
                "recipeId": entry.id,
                "title": entry.recipe.title,
                "priceCents": entry.recipe.price_cents,
                "macrosLabel": entry.macros_label,
                "tags": list(entry.recipe.tags),
                "highlights": list(entry.recipe.highlights[:3]),
                "score": entry.score,
                "description": entry.recipe.description,
                "inventoryStatus": entry.recipe.inventory.status.value if entry.recipe.inventory else None,
                "inventoryQuantity": entry.recipe.inventory.quantity if entry.recipe.inventory else 0,
            }
            for entry in candidates
        ],
    }
    return (
        'Given this JSON payload, return JSON shaped as {"recommendations":[{"recipeId":"",'
        '"rationale":"","healthySwapIdea":"","swapRecipeId":""}]}. '
        f"Limit to {limit} unique recipeIds.\nPayload:\n{json.dumps(payload)}"
    )


def match_entries(payload: RankingPayload, candidates: list[ScoredCandidate], limit: int) -> list[RerankEntry]:
    """
    Keep only picks we sent, in the model's order.

    Unknown or repeated ids are dropped. Swap ids outside the shortlist
    (or pointing at the pick itself) are nulled.
    """
    known = {entry.id for entry in candidates}
    seen: set[str] = set()
    entries: list[RerankEntry] = []

    for item in payload.recommendations:
        if item.recipe_id not in known or item.recipe_id in seen:
            continue
        seen.add(item.recipe_id)

        swap_id = item.swap_recipe_id
        if swap_id not in known or swap_id == item.recipe_id:
            swap_id = None

        entries.append(
            RerankEntry(
                recipe_id=item.recipe_id,
                rationale=truncate(item.rationale),
                healthy_swap_idea=truncate(item.healthy_swap_idea),
                swap_recipe_id=swap_id,
            )
        )
        if len(entries) >= limit:
            break

    return entries
