"""
GoodFork - Goal alignment.

Looks back at the meals a user engaged with and scores each one 0-100
against their primary goal. When the user hasn't accepted, saved or
swapped anything yet, the most recent recommendations stand in and the
result is flagged with `used_fallback_data`.
"""

import logging
import math
from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from goodfork.db.store import RecommendationStore
from goodfork.engine.rationale import build_macros_label
from goodfork.models.profile import Goal
from goodfork.models.recommendation import CamelModel, RecommendationStatus

logger = logging.getLogger(__name__)

ENGAGED_SAMPLE_CAP = 16
FALLBACK_SAMPLE_CAP = 12
BASE_ALIGNMENT = 50

ALIGNED_THRESHOLD = 80
NUDGE_THRESHOLD = 60

DEFAULT_NOTE = "Balanced macros for your profile."

Band = Literal["aligned", "needs_nudge", "off_track"]

ENGAGED_STATUSES = [
    RecommendationStatus.ACCEPTED.value,
    RecommendationStatus.SAVED.value,
    RecommendationStatus.SWAPPED.value,
]


class GoalMeta(CamelModel):
    value: str
    label: str
    helper: str | None = None


class MacroAverages(CamelModel):
    calories: int | None = None
    protein: int | None = None
    carbs: int | None = None
    fat: int | None = None


class GoalAlignmentSample(CamelModel):
    id: str
    recipe_title: str
    recipe_slug: str
    created_at: datetime | None = None
    status: str
    macros_label: str
    calories: int | None = None
    protein: int | None = None
    carbs: int | None = None
    fat: int | None = None
    score: int
    band: Band
    note: str


class GoalAlignmentResult(CamelModel):
    goal: GoalMeta | None = None
    average_score: int = 0
    sample_count: int = 0
    aligned_count: int = 0
    needs_nudge_count: int = 0
    off_track_count: int = 0
    used_fallback_data: bool = False
    macro_averages: MacroAverages = Field(default_factory=MacroAverages)
    samples: list[GoalAlignmentSample] = Field(default_factory=list)


def round_half_up(value: float) -> int:
    """Round halves up (12.5 -> 13, 72.5 -> 73)."""
    return math.floor(value + 0.5)


def band_for(score: int) -> Band:
    if score >= ALIGNED_THRESHOLD:
        return "aligned"
    if score >= NUDGE_THRESHOLD:
        return "needs_nudge"
    return "off_track"


def evaluate_alignment(recipe: dict[str, Any], goal: Goal | None) -> tuple[int, Band, str]:
    """
    Score one recipe against a goal.

    Returns:
        (score clamped to 0-100, band, first note)
    """
    protein = recipe.get("protein_grams") or 0
    carbs = recipe.get("carbs_grams") or 0
    fat = recipe.get("fat_grams") or 0
    calories = recipe.get("calories") or 0
    highlights = [str(h).upper() for h in recipe.get("healthy_highlights") or []]

    score = BASE_ALIGNMENT
    notes: list[str] = []

    def add(delta: int, note: str) -> None:
        nonlocal score
        score += delta
        notes.append(note)

    if goal == Goal.LEAN_MUSCLE:
        if protein >= 35:
            add(35, "35g+ protein hits your lean muscle target.")
        elif protein >= 25:
            add(22, "Solid protein support for lean muscle days.")
        elif protein >= 18:
            add(10, "Moderate protein, consider bumping to 25g+.")
        else:
            add(-6, "Protein sits below lean muscle targets.")
        if fat > 24:
            add(-8, "Fat load is heavier than ideal for lean focus.")
        if calories > 700:
            add(-6, "Higher calories may slow lean muscle progress.")

    elif goal == Goal.ENERGY:
        if 35 <= carbs <= 65:
            add(25, "Carbs fall in the steady energy window (35-65g).")
        elif 25 <= carbs <= 80:
            add(12, "Carbs are serviceable for energy, but could be tighter.")
        elif carbs > 0:
            add(-8, "Carbs sit outside the energy-friendly range.")
        if protein >= 20:
            add(8, "Protein keeps energy steadier through the meal.")
        if fat >= 26:
            add(-8, "Fat load could slow energy delivery.")

    elif goal == Goal.RESET:
        if 0 < carbs <= 35:
            add(24, "Carbs stay low for reset days.")
        elif carbs <= 50:
            add(12, "Carbs are moderate, close to reset targets.")
        else:
            add(-10, "Carbs exceed the reset guardrail.")
        if 0 < calories <= 550:
            add(8, "Calories stay in a lighter range.")
        if 0 < fat <= 22:
            add(6, "Fats stay in check for reset.")

    elif goal == Goal.BRAINCARE:
        if "OMEGA_3" in highlights:
            add(18, "Omega-3 highlight aligns with brain care.")
        if fat >= 18:
            add(18, "Healthy fats support cognitive focus.")
        elif fat >= 12:
            add(10, "Solid fats for focus, could add a drizzle of oil.")
        else:
            add(-6, "Consider more healthy fats for brain care.")
        if protein >= 20:
            add(6, "Protein balance helps avoid crashes.")

    else:
        add(5, "General balance applied.")

    clamped = max(0, min(100, score))
    return clamped, band_for(clamped), notes[0] if notes else DEFAULT_NOTE


def average(values: list[int | None]) -> int | None:
    """Rounded mean over the values that are present; None if none are."""
    present = [v for v in values if isinstance(v, (int, float))]
    if not present:
        return None
    return round_half_up(sum(present) / len(present))


async def get_goal_alignment(store: RecommendationStore, user_id: str) -> GoalAlignmentResult:
    """Build the goal-alignment summary for a user."""
    profile = await store.get_profile(user_id)
    goal = profile.primary_goal if profile else None

    recommendations = await store.list_recommendations(
        user_id,
        statuses=ENGAGED_STATUSES,
        order_by="updated_at",
        limit=ENGAGED_SAMPLE_CAP,
    )
    used_fallback_data = not recommendations
    if used_fallback_data:
        recommendations = await store.list_recommendations(
            user_id,
            order_by="created_at",
            limit=FALLBACK_SAMPLE_CAP,
        )

    samples: list[GoalAlignmentSample] = []
    for rec in recommendations:
        recipe = rec["recipe"]
        score, band, note = evaluate_alignment(recipe, goal)
        samples.append(
            GoalAlignmentSample(
                id=rec["id"],
                recipe_title=recipe.get("title") or "Untitled",
                recipe_slug=recipe.get("slug") or "",
                created_at=rec.get("updated_at") or rec.get("created_at"),
                status=rec.get("status") or RecommendationStatus.SHOWN.value,
                macros_label=build_macros_label(
                    recipe.get("protein_grams"), recipe.get("carbs_grams"), recipe.get("fat_grams")
                ),
                calories=recipe.get("calories"),
                protein=recipe.get("protein_grams"),
                carbs=recipe.get("carbs_grams"),
                fat=recipe.get("fat_grams"),
                score=score,
                band=band,
                note=note,
            )
        )

    sample_count = len(samples)
    bands = [s.band for s in samples]

    logger.debug(f"Goal alignment for {user_id}: {sample_count} samples (fallback={used_fallback_data})")

    return GoalAlignmentResult(
        goal=GoalMeta(value=goal.value, label=goal.label, helper=goal.helper) if goal else None,
        average_score=round_half_up(sum(s.score for s in samples) / sample_count) if sample_count else 0,
        sample_count=sample_count,
        aligned_count=bands.count("aligned"),
        needs_nudge_count=bands.count("needs_nudge"),
        off_track_count=bands.count("off_track"),
        used_fallback_data=used_fallback_data,
        macro_averages=MacroAverages(
            calories=average([s.calories for s in samples]),
            protein=average([s.protein for s in samples]),
            carbs=average([s.carbs for s in samples]),
            fat=average([s.fat for s in samples]),
        ),
        samples=samples,
    )
