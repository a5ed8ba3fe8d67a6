"""
GoodFork - Rationale & healthy swap composer.

Pure functions that turn a recipe + profile into user-facing copy.
None of them raise; each falls back to a generic message.
"""

import re

from goodfork.models.catalog import CandidateRecipe, InventoryState, InventoryStatus
from goodfork.models.profile import DietaryPreference, Goal, Profile

MAX_COPY_LENGTH = 220
ELLIPSIS = "…"

GENERIC_SWAP = "Add crunchy greens in place of starch for a lighter swap."

ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def build_macros_label(protein: int | None, carbs: int | None, fat: int | None) -> str:
    """Format known macros as '40g protein · 30g carbs · 12g fat'."""
    parts = []
    if protein is not None:
        parts.append(f"{protein}g protein")
    if carbs is not None:
        parts.append(f"{carbs}g carbs")
    if fat is not None:
        parts.append(f"{fat}g fat")
    return " · ".join(parts)


def build_inventory_text(inventory: InventoryState | None) -> str:
    if inventory is None or inventory.status == InventoryStatus.OUT_OF_STOCK or inventory.quantity <= 0:
        return "Currently sold out until the kitchen restocks."
    if inventory.status == InventoryStatus.LOW_STOCK:
        return f"Low stock, {inventory.quantity} left."
    return f"Ready now, {inventory.quantity} {inventory.unit} in stock."


def build_rationale(recipe: CandidateRecipe, profile: Profile, macros_label: str) -> str:
    """One sentence keyed to the primary goal, plus inventory urgency."""
    goal = profile.primary_goal
    highlights = ", ".join(h.lower().replace("_", "-") for h in recipe.highlights[:2])
    ready = build_inventory_text(recipe.inventory)

    if goal == Goal.LEAN_MUSCLE and recipe.protein_grams:
        return (
            f"Delivers {recipe.protein_grams}g protein with {macros_label}, "
            f"dialed for your lean muscle focus. {ready}"
        )
    if goal == Goal.ENERGY and recipe.carbs_grams:
        return f"Steady energy pick: {macros_label} plus {highlights or 'fresh greens'} to avoid crashes. {ready}"
    if goal == Goal.RESET and recipe.carbs_grams:
        return f"Lower glycemic load with {recipe.carbs_grams}g carbs and {highlights or 'crunchy veggies'}. {ready}"
    if goal == Goal.BRAINCARE:
        return f"Brain care boost featuring {highlights or 'healthy fats'} and {macros_label or 'balanced macros'}. {ready}"

    return f"{macros_label or 'Balanced macros'} with {highlights or 'inventory-fresh produce'}. {ready}"


def build_healthy_swap(recipe: CandidateRecipe, profile: Profile) -> str:
    """Propose at most one swap idea; always returns something."""
    calories = recipe.calories or 0
    carbs = recipe.carbs_grams or 0
    fat = recipe.fat_grams or 0

    if calories >= 600:
        return "Swap half the grain base for shaved greens to shave ~80 kcal."
    if profile.has_goal(Goal.RESET) and carbs >= 45:
        return "Ask for cauliflower rice instead of grains to drop net carbs."
    if fat >= 24:
        return "Choose citrus vinaigrette over creamy sauce to reduce fats."
    if profile.prefers(DietaryPreference.VEGAN) and "DAIRY" in recipe.allergens:
        return "Request toasted seeds instead of dairy toppings for vegan alignment."
    return GENERIC_SWAP


def truncate(text: str | None, max_length: int = MAX_COPY_LENGTH) -> str | None:
    """Cut text to max_length, marking the cut with an ellipsis."""
    if not text:
        return text
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + ELLIPSIS


def normalize_image_url(url: str | None) -> str | None:
    if not url or not url.strip():
        return None
    url = url.strip()
    if ABSOLUTE_URL.match(url):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    return url if url.startswith("/") else f"/{url}"
