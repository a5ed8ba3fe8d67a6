"""
GoodFork - Catalog snapshot types.

A CandidateRecipe is a recipe joined 1:1 with its inventory row as read
at the start of a request. Inventory is owned by kitchen operators; the
engine never writes it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from goodfork.models.profile import normalize_allergen


class InventoryStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


@dataclass(frozen=True)
class InventoryState:
    status: InventoryStatus
    quantity: int = 0
    unit: str = "unit"

    @property
    def is_available(self) -> bool:
        return self.status != InventoryStatus.OUT_OF_STOCK and self.quantity > 0

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "quantity": self.quantity, "unit": self.unit}

    @classmethod
    def from_row(cls, row: dict[str, Any] | None) -> "InventoryState | None":
        if not row:
            return None
        try:
            status = InventoryStatus(str(row.get("status") or "").upper())
        except ValueError:
            status = InventoryStatus.OUT_OF_STOCK
        return cls(
            status=status,
            quantity=int(row.get("quantity") or 0),
            unit=row.get("unit_label") or row.get("unit") or "unit",
        )


@dataclass(frozen=True)
class CandidateRecipe:
    """Recipe attributes plus the inventory snapshot it was read with."""

    id: str
    title: str
    slug: str = ""
    description: str | None = None
    image_url: str | None = None
    price_cents: int | None = None
    calories: int | None = None
    protein_grams: int | None = None
    carbs_grams: int | None = None
    fat_grams: int | None = None
    tags: tuple[str, ...] = ()
    allergens: frozenset[str] = frozenset()
    highlights: tuple[str, ...] = ()
    inventory: InventoryState | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CandidateRecipe":
        """
        Build from a `recipes` row with an embedded inventory relation.

        PostgREST returns a 1:1 embed as either an object or a one-item list.
        """
        inventory = row.get("inventory_items") or row.get("inventory")
        if isinstance(inventory, list):
            inventory = inventory[0] if inventory else None
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "Untitled",
            slug=row.get("slug") or "",
            description=row.get("description"),
            image_url=row.get("image_url"),
            price_cents=row.get("price_cents"),
            calories=row.get("calories"),
            protein_grams=row.get("protein_grams"),
            carbs_grams=row.get("carbs_grams"),
            fat_grams=row.get("fat_grams"),
            tags=tuple(str(t).upper() for t in (row.get("tags") or [])),
            allergens=frozenset(normalize_allergen(a) for a in (row.get("allergens") or []) if a),
            highlights=tuple(str(h).upper() for h in (row.get("healthy_highlights") or [])),
            inventory=InventoryState.from_row(inventory),
        )


@dataclass(frozen=True)
class Adjustment:
    """A single signed scoring contribution."""
    reason: str
    delta: int

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason, "delta": self.delta}


@dataclass
class ScoredCandidate:
    """A candidate plus everything the deterministic pass derived for it."""

    recipe: CandidateRecipe
    score: int
    adjustments: list[Adjustment] = field(default_factory=list)
    macros_label: str = ""
    rationale: str = ""
    swap: str | None = None

    @property
    def id(self) -> str:
        return self.recipe.id
