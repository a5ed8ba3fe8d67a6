"""
GoodFork - Recommendation pipeline.

resolve user -> filter catalog -> score -> (optional) LLM rerank -> persist -> respond

Everything before persistence is a pure computation over the catalog
snapshot taken at the start of the request. Persistence writes one
`recommendations` row per pick with status SHOWN.
"""

import asyncio
import logging
from dataclasses import dataclass

from goodfork.config import Settings
from goodfork.db.store import RecommendationStore
from goodfork.engine.filters import FilterStats, clamp_limit, filter_candidates
from goodfork.engine.rationale import normalize_image_url, truncate
from goodfork.engine.reranker import LLMReranker, RerankFatal, RerankOk
from goodfork.engine.scoring import rank_candidates
from goodfork.errors import ProfileMissingError, RecommendationError, UserNotFoundError
from goodfork.models.catalog import ScoredCandidate
from goodfork.models.profile import UserRecord
from goodfork.models.recommendation import (
    AdjustmentPayload,
    CardMetadata,
    InventorySummary,
    MacroSummary,
    RankingSource,
    RecommendationCard,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationStatus,
    SwapRecipe,
    Telemetry,
)

logger = logging.getLogger(__name__)


@dataclass
class FinalPick:
    """A scored candidate with the copy and swap chosen for it."""
    candidate: ScoredCandidate
    ranking_source: RankingSource
    rationale: str
    healthy_swap_copy: str | None
    swap_recipe_id: str | None = None


class RecommendationEngine:
    """
    Builds and persists a personalized menu for one request.

    Dependencies are passed in at construction; the engine keeps no
    per-user caches of its own.
    """

    def __init__(self, store: RecommendationStore, settings: Settings, reranker: LLMReranker | None = None):
        self.store = store
        self.settings = settings
        self.reranker = reranker or LLMReranker(settings)

    async def generate(
        self,
        request: RecommendationRequest,
        *,
        abort: asyncio.Event | None = None,
    ) -> RecommendationResponse:
        """
        Generate recommendations for the requested user.

        Raises:
            UserNotFoundError, ProfileMissingError, InventoryEmptyError,
            LLMRequiredError
        """
        limit = clamp_limit(request.limit)
        user = await self._resolve_user(request)
        profile = user.profile

        catalog = await self.store.list_catalog()
        candidates, stats = filter_candidates(catalog, profile.allergens, limit)

        scored = rank_candidates(candidates, profile)
        shortlist = scored[: self.settings.llm_candidate_cap]

        picks: list[FinalPick] | None = None
        outcome = await self.reranker.rerank(
            profile,
            shortlist,
            limit,
            deterministic_only=request.deterministic_only,
            abort=abort,
        )
        if isinstance(outcome, RerankFatal):
            raise outcome.error
        if isinstance(outcome, RerankOk):
            picks = self._llm_picks(outcome, shortlist, limit)

        if not picks:
            picks = [
                FinalPick(
                    candidate=entry,
                    ranking_source="deterministic",
                    rationale=entry.rationale,
                    healthy_swap_copy=entry.swap,
                )
                for entry in scored[:limit]
            ]

        assign_fallback_swaps(picks, scored)

        rows = await self._persist(user, picks, request.session_id)
        rows_by_recipe = {str(row.get("recipe_id")): row for row in rows}
        cards = [build_card(rows_by_recipe.get(pick.candidate.id), pick, scored) for pick in picks]

        source: RankingSource = "llm" if any(c.metadata.ranking_source == "llm" for c in cards) else "deterministic"
        logger.info(f"Delivered {len(cards)}/{limit} recommendations to {user.id} (source={source})")

        return RecommendationResponse(
            user_id=user.id,
            requested=limit,
            delivered=len(cards),
            source=source,
            recommendations=cards,
            telemetry=build_telemetry(stats, len(candidates)),
        )

    async def _resolve_user(self, request: RecommendationRequest) -> UserRecord:
        user = await self.store.get_user(user_id=request.user_id, email=request.email)
        if user is None:
            raise UserNotFoundError("User not found for the provided identifier.")
        if user.profile is None:
            raise ProfileMissingError("User profile is required before requesting recommendations.")
        return user

    def _llm_picks(self, outcome: RerankOk, shortlist: list[ScoredCandidate], limit: int) -> list[FinalPick]:
        by_id = {entry.id: entry for entry in shortlist}
        picks = []
        for entry in outcome.entries:
            base = by_id.get(entry.recipe_id)
            if base is None:
                continue
            picks.append(
                FinalPick(
                    candidate=base,
                    ranking_source="llm",
                    rationale=truncate(entry.rationale or base.rationale) or "",
                    healthy_swap_copy=truncate(entry.healthy_swap_idea or base.swap) or base.swap,
                    swap_recipe_id=entry.swap_recipe_id,
                )
            )
        return picks[:limit]

    async def _persist(self, user: UserRecord, picks: list[FinalPick], session_id: str | None) -> list[dict]:
        rows = [
            {
                "user_id": user.id,
                "recipe_id": pick.candidate.id,
                "healthy_swap_recipe_id": pick.swap_recipe_id,
                "rationale": pick.rationale,
                "healthy_swap_rationale": pick.healthy_swap_copy,
                "session_id": session_id,
                "status": RecommendationStatus.SHOWN.value,
                "metadata": {
                    "rankingSource": pick.ranking_source,
                    "score": pick.candidate.score,
                    "adjustments": [a.to_dict() for a in pick.candidate.adjustments],
                },
            }
            for pick in picks
        ]
        try:
            created = await self.store.create_recommendations(rows)
        except Exception:
            logger.exception(f"Failed to persist {len(rows)} recommendations for {user.id}")
            raise

        if len(created) != len(rows):
            raise RecommendationError(
                f"Persisted {len(created)} of {len(rows)} recommendations.",
                status_code=500,
            )
        return created


def assign_fallback_swaps(picks: list[FinalPick], scored: list[ScoredCandidate]) -> None:
    """Give picks without a swap target the best other candidate; never themselves."""
    for pick in picks:
        if pick.swap_recipe_id is None:
            pick.swap_recipe_id = next((c.id for c in scored if c.id != pick.candidate.id), None)
        if pick.swap_recipe_id == pick.candidate.id:
            pick.swap_recipe_id = None


def build_card(row: dict | None, pick: FinalPick, scored: list[ScoredCandidate]) -> RecommendationCard:
    entry = pick.candidate
    recipe = entry.recipe
    if row is None:
        raise RecommendationError("Recommendation metadata mismatch.", status_code=500)

    swap = None
    if pick.swap_recipe_id:
        target = next((c for c in scored if c.id == pick.swap_recipe_id), None)
        if target is not None:
            swap = SwapRecipe(
                id=target.id,
                title=target.recipe.title,
                slug=target.recipe.slug or None,
                image_url=normalize_image_url(target.recipe.image_url),
                macros_label=target.macros_label or None,
            )

    inventory = recipe.inventory
    return RecommendationCard(
        recommendation_id=str(row["id"]),
        recipe_id=recipe.id,
        slug=recipe.slug,
        title=recipe.title,
        description=recipe.description,
        image_url=normalize_image_url(recipe.image_url),
        price_cents=recipe.price_cents,
        macros=MacroSummary(
            calories=recipe.calories,
            protein_grams=recipe.protein_grams,
            carbs_grams=recipe.carbs_grams,
            fat_grams=recipe.fat_grams,
            label=entry.macros_label,
        ),
        tags=list(recipe.tags),
        highlights=list(recipe.highlights),
        allergens=sorted(recipe.allergens),
        inventory=InventorySummary(
            status=inventory.status.value,
            quantity=inventory.quantity,
            unit=inventory.unit,
        ),
        rationale=row.get("rationale") or pick.rationale,
        healthy_swap_copy=row.get("healthy_swap_rationale") or pick.healthy_swap_copy,
        swap_recipe=swap,
        metadata=CardMetadata(
            ranking_source=pick.ranking_source,
            base_score=entry.score,
            adjustments=[AdjustmentPayload(reason=a.reason, delta=a.delta) for a in entry.adjustments],
        ),
    )


def build_telemetry(stats: FilterStats, candidate_count: int) -> Telemetry:
    return Telemetry(
        catalog_count=stats.catalog_count,
        candidate_count=candidate_count,
        unavailable_count=stats.unavailable_count,
        allergen_excluded_count=stats.allergen_excluded_count,
        low_stock_backfill_count=stats.low_stock_backfill_count,
    )
