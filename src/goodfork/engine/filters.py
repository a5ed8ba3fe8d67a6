"""
GoodFork - Availability & safety filter.

Narrows the catalog snapshot to recipes that can be served right now and
are safe for the user's allergens. IN_STOCK recipes are preferred; LOW_STOCK
recipes only backfill when there aren't enough IN_STOCK ones.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from goodfork.errors import InventoryEmptyError
from goodfork.models.catalog import CandidateRecipe, InventoryStatus

logger = logging.getLogger(__name__)

MIN_LIMIT = 3
MAX_LIMIT = 5
DEFAULT_LIMIT = 4


@dataclass
class FilterStats:
    catalog_count: int = 0
    unavailable_count: int = 0
    allergen_excluded_count: int = 0
    low_stock_backfill_count: int = 0


def clamp_limit(limit: int | None) -> int:
    """Default to 4 and clamp into [3, 5]."""
    if limit is None:
        return DEFAULT_LIMIT
    return min(max(int(limit), MIN_LIMIT), MAX_LIMIT)


def is_available(recipe: CandidateRecipe) -> bool:
    return recipe.inventory is not None and recipe.inventory.is_available


def is_allergen_safe(recipe: CandidateRecipe, allergens: Iterable[str]) -> bool:
    blocked = {a.upper() for a in allergens}
    if not blocked:
        return True
    return not (recipe.allergens & blocked)


def filter_candidates(
    catalog: list[CandidateRecipe],
    allergens: Iterable[str],
    limit: int,
) -> tuple[list[CandidateRecipe], FilterStats]:
    """
    Filter the catalog down to servable, allergen-safe candidates.

    Raises:
        InventoryEmptyError: nothing survived the filter
    """
    allergens = frozenset(allergens)
    stats = FilterStats(catalog_count=len(catalog))
    in_stock: list[CandidateRecipe] = []
    low_stock: list[CandidateRecipe] = []

    for recipe in catalog:
        if not is_available(recipe):
            stats.unavailable_count += 1
            continue
        if not is_allergen_safe(recipe, allergens):
            stats.allergen_excluded_count += 1
            continue
        if recipe.inventory.status == InventoryStatus.IN_STOCK:
            in_stock.append(recipe)
        else:
            low_stock.append(recipe)

    candidates = list(in_stock)
    if len(in_stock) < limit:
        candidates.extend(low_stock)
        stats.low_stock_backfill_count = len(low_stock)

    logger.debug(
        f"Filtered catalog: {stats.catalog_count} recipes -> {len(candidates)} candidates "
        f"({stats.unavailable_count} unavailable, {stats.allergen_excluded_count} allergen conflicts)"
    )

    if not candidates:
        raise InventoryEmptyError(
            "No in-stock inventory matches the stated allergens right now.",
        )

    return candidates, stats
