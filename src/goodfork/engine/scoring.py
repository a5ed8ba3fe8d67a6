"""
GoodFork - Deterministic scoring engine.

Every candidate starts at BASE_SCORE and collects signed adjustments.
The adjustment list is the explanation shown to users and stored with
each recommendation, so rules run in a fixed order:

1. Inventory
2. Goal heuristics (+ calorie density)
3. Dietary preference match
4. Taste match
5. Budget
6. Macro balance

Zero deltas are never recorded. Scores are not clamped here.
"""

from typing import Callable

from goodfork.engine.rationale import build_healthy_swap, build_macros_label, build_rationale
from goodfork.models.catalog import (
    Adjustment,
    CandidateRecipe,
    InventoryState,
    InventoryStatus,
    ScoredCandidate,
)
from goodfork.models.profile import DietaryPreference, Goal, Profile, TastePreference

BASE_SCORE = 62

# Inventory tiers
ALMOST_GONE_QUANTITY = 4
LOW_STOCK_THRESHOLD = 10
MID_STOCK_THRESHOLD = 15
PLENTIFUL_THRESHOLD = 35

# Budget
BUDGET_CUSHION_CENTS = 150
BUDGET_MAX_REWARD = 8
BUDGET_MAX_PENALTY = 12

PREFERENCE_TAGS: dict[DietaryPreference, frozenset[str]] = {
    DietaryPreference.VEGETARIAN: frozenset({"VEGETARIAN", "PLANT_BASED"}),
    DietaryPreference.VEGAN: frozenset({"VEGAN", "PLANT_BASED"}),
    DietaryPreference.PESCATARIAN: frozenset({"PESCATARIAN", "SEAFOOD", "FISH"}),
    DietaryPreference.MEDITERRANEAN: frozenset({"MEDITERRANEAN", "GUT_HEALTH", "HEART_HEALTHY", "WHOLE_GRAIN"}),
    DietaryPreference.LOW_CARB: frozenset({"LOW_CARB", "LIGHTER_CHOICE", "KETO", "HIGH_PROTEIN"}),
}

TASTE_KEYWORDS: dict[TastePreference, tuple[str, ...]] = {
    TastePreference.SPICY: ("spicy", "harissa", "ginger", "chili", "szechuan"),
    TastePreference.COMFORT: ("comfort", "roasted", "braised", "butter", "creamy"),
    TastePreference.BRIGHT: ("citrus", "lime", "lemon", "herb", "fresh"),
    TastePreference.UMAMI: ("umami", "miso", "soy", "tamari", "mushroom"),
    TastePreference.EXPLORER: ("fusion", "global", "street", "adventure", "bold"),
}


class Scorecard:
    """Running score plus the ordered adjustments that produced it."""

    def __init__(self, base: int = BASE_SCORE):
        self.score = base
        self.adjustments: list[Adjustment] = []

    def add(self, reason: str, delta: int) -> None:
        if not delta:
            return
        self.score += delta
        self.adjustments.append(Adjustment(reason=reason, delta=delta))


# =============================================================================
# Rules
# =============================================================================


def apply_inventory(inventory: InventoryState | None, card: Scorecard) -> None:
    if inventory is None or inventory.status == InventoryStatus.OUT_OF_STOCK or inventory.quantity <= 0:
        # Filtered upstream; only reachable if a caller skips the filter.
        card.add("Out of stock", -40)
        return

    quantity = inventory.quantity
    if inventory.status == InventoryStatus.LOW_STOCK:
        if quantity <= ALMOST_GONE_QUANTITY:
            card.add(f"Almost gone, only {quantity} left", -12)
        elif quantity <= LOW_STOCK_THRESHOLD:
            card.add("Low stock", -7)
        else:
            card.add("Limited stock", -3)
        return

    if quantity >= PLENTIFUL_THRESHOLD:
        card.add("Plentiful inventory", 10)
    elif quantity >= MID_STOCK_THRESHOLD:
        card.add("Healthy inventory", 6)
    else:
        card.add("In stock", 3)


def _lean_muscle(recipe: CandidateRecipe, card: Scorecard) -> None:
    protein = recipe.protein_grams or 0
    if protein >= 35:
        card.add("Lean muscle: high protein density", 18)
    elif protein >= 25:
        card.add("Lean muscle: solid protein support", 10)
    else:
        card.add("Lean muscle: limited protein", -8)


def _energy(recipe: CandidateRecipe, card: Scorecard) -> None:
    carbs = recipe.carbs_grams or 0
    if 35 <= carbs <= 65:
        card.add("Energy: steady carb window", 12)
    elif carbs > 80:
        card.add("Energy: heavy carbs", -8)


def _reset(recipe: CandidateRecipe, card: Scorecard) -> None:
    carbs = recipe.carbs_grams or 0
    if carbs <= 40:
        card.add("Reset: lower glycemic load", 14)
    else:
        card.add("Reset: carb-heavy", -10)


def _braincare(recipe: CandidateRecipe, card: Scorecard) -> None:
    if (recipe.fat_grams or 0) >= 18:
        card.add("Brain care: healthy fats in range", 10)
    if "OMEGA_3" in recipe.highlights:
        card.add("Brain care: omega-3 highlight", 8)


GOAL_RULES: dict[Goal, Callable[[CandidateRecipe, Scorecard], None]] = {
    Goal.LEAN_MUSCLE: _lean_muscle,
    Goal.ENERGY: _energy,
    Goal.RESET: _reset,
    Goal.BRAINCARE: _braincare,
}


def apply_goal_heuristics(recipe: CandidateRecipe, profile: Profile, card: Scorecard) -> None:
    for goal in profile.goals:
        GOAL_RULES[goal](recipe, card)

    calories = recipe.calories or 0
    if calories >= 650:
        card.add("Calorie dense", -8)
    elif 0 < calories <= 520:
        card.add("Approachable calorie load", 6)


def apply_dietary_preferences(recipe: CandidateRecipe, profile: Profile, card: Scorecard) -> None:
    tags = set(recipe.tags)
    for preference in profile.dietary_preferences:
        name = preference.value.lower().replace("_", " ")
        if PREFERENCE_TAGS[preference] & tags:
            card.add(f"Matches {name} preference", 12)
        else:
            card.add(f"{name.capitalize()} preference unmet", -8)


def apply_taste_match(recipe: CandidateRecipe, profile: Profile, card: Scorecard) -> None:
    if not profile.taste_preferences:
        return
    haystack = f"{recipe.title} {recipe.description or ''}".lower()
    for taste in profile.taste_preferences:
        if any(keyword in haystack for keyword in TASTE_KEYWORDS[taste]):
            card.add(f"Hits your {taste.value.lower()} vibe", 6)


def apply_budget(recipe: CandidateRecipe, profile: Profile, card: Scorecard) -> None:
    target = profile.budget_cents
    price = recipe.price_cents
    if not target or price is None:
        return

    if price <= target + BUDGET_CUSHION_CENTS:
        savings = max(0, target - price)
        card.add("Fits your budget", min(BUDGET_MAX_REWARD, 2 + savings // 200))
    else:
        overage = price - target
        card.add("Over your budget", -min(BUDGET_MAX_PENALTY, 2 + overage // 100))


def apply_macro_balance(recipe: CandidateRecipe, card: Scorecard) -> None:
    protein = recipe.protein_grams or 0
    carbs = recipe.carbs_grams
    fat = recipe.fat_grams

    if protein >= 30 and fat is not None and carbs is not None and fat <= 22 and carbs <= 65:
        card.add("Balanced macros", 5)

    if (fat or 0) >= 25:
        card.add("Higher fat load", -4)


# =============================================================================
# Entry points
# =============================================================================


def score_candidate(recipe: CandidateRecipe, profile: Profile) -> ScoredCandidate:
    """Score one candidate and compose its deterministic copy."""
    card = Scorecard()
    apply_inventory(recipe.inventory, card)
    apply_goal_heuristics(recipe, profile, card)
    apply_dietary_preferences(recipe, profile, card)
    apply_taste_match(recipe, profile, card)
    apply_budget(recipe, profile, card)
    apply_macro_balance(recipe, card)

    macros_label = build_macros_label(recipe.protein_grams, recipe.carbs_grams, recipe.fat_grams)
    return ScoredCandidate(
        recipe=recipe,
        score=card.score,
        adjustments=card.adjustments,
        macros_label=macros_label,
        rationale=build_rationale(recipe, profile, macros_label),
        swap=build_healthy_swap(recipe, profile),
    )


def score_candidates(candidates: list[CandidateRecipe], profile: Profile) -> list[ScoredCandidate]:
    return [score_candidate(recipe, profile) for recipe in candidates]


def rank_candidates(candidates: list[CandidateRecipe], profile: Profile) -> list[ScoredCandidate]:
    """Score and sort best-first. Ties keep candidate order."""
    scored = score_candidates(candidates, profile)
    scored.sort(key=lambda entry: entry.score, reverse=True)
    return scored
