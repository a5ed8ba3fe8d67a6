"""
GoodFork - User profile vocabulary.

Goals, dietary preferences and taste preferences are closed enums.
Profile rows store them as strings; anything we don't recognize is
dropped while parsing so it can never earn or lose points.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, TypeVar

logger = logging.getLogger(__name__)


class Goal(str, Enum):
    """Nutrition goals. The first goal on a profile is the primary one."""
    LEAN_MUSCLE = "LEAN_MUSCLE"
    ENERGY = "ENERGY"
    RESET = "RESET"
    BRAINCARE = "BRAINCARE"

    @property
    def label(self) -> str:
        return GOAL_META[self][0]

    @property
    def helper(self) -> str:
        return GOAL_META[self][1]


GOAL_META: dict[Goal, tuple[str, str]] = {
    Goal.LEAN_MUSCLE: ("Lean muscle", "High-protein focus"),
    Goal.ENERGY: ("Sustained energy", "Balanced macros"),
    Goal.RESET: ("Metabolic reset", "Lower sugar & refined carbs"),
    Goal.BRAINCARE: ("Brain care", "Omega-3 + micronutrient dense"),
}


class DietaryPreference(str, Enum):
    VEGETARIAN = "VEGETARIAN"
    VEGAN = "VEGAN"
    PESCATARIAN = "PESCATARIAN"
    MEDITERRANEAN = "MEDITERRANEAN"
    LOW_CARB = "LOW_CARB"


class TastePreference(str, Enum):
    SPICY = "SPICY"
    COMFORT = "COMFORT"
    BRIGHT = "BRIGHT"
    UMAMI = "UMAMI"
    EXPLORER = "EXPLORER"


E = TypeVar("E", bound=Enum)


def parse_enum_values(enum_cls: type[E], values: Iterable[Any] | None) -> list[E]:
    """
    Parse raw strings into enum members, keeping order and dropping duplicates.

    Unknown values are skipped (logged at DEBUG).
    """
    parsed: list[E] = []
    for raw in values or []:
        if raw is None:
            continue
        key = str(raw).strip().upper().replace("-", "_").replace(" ", "_")
        try:
            member = enum_cls(key)
        except ValueError:
            logger.debug(f"Ignoring unknown {enum_cls.__name__} value: {raw!r}")
            continue
        if member not in parsed:
            parsed.append(member)
    return parsed


def normalize_allergen(value: str) -> str:
    return value.strip().upper().replace("-", "_").replace(" ", "_")


@dataclass(frozen=True)
class Profile:
    """Nutrition profile the engine ranks against. Read-only to scoring."""

    user_id: str
    goals: tuple[Goal, ...] = ()
    allergens: frozenset[str] = frozenset()
    dietary_preferences: tuple[DietaryPreference, ...] = ()
    taste_preferences: tuple[TastePreference, ...] = ()
    budget_cents: int | None = None

    @property
    def primary_goal(self) -> Goal | None:
        return self.goals[0] if self.goals else None

    def has_goal(self, goal: Goal) -> bool:
        return goal in self.goals

    def prefers(self, preference: DietaryPreference) -> bool:
        return preference in self.dietary_preferences

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Profile":
        """Build a Profile from a `user_profiles` row."""
        budget = row.get("budget_cents")
        return cls(
            user_id=str(row.get("user_id") or ""),
            goals=tuple(parse_enum_values(Goal, row.get("dietary_goals"))),
            allergens=frozenset(
                normalize_allergen(a) for a in (row.get("allergens") or []) if a and str(a).strip()
            ),
            dietary_preferences=tuple(
                parse_enum_values(DietaryPreference, row.get("dietary_preferences"))
            ),
            taste_preferences=tuple(parse_enum_values(TastePreference, row.get("taste_preferences"))),
            budget_cents=int(budget) if budget is not None else None,
        )

    def summary(self) -> dict[str, Any]:
        """Compact profile summary for the reranking prompt."""
        return {
            "goals": [goal.value for goal in self.goals],
            "allergens": sorted(self.allergens),
            "diet": [pref.value for pref in self.dietary_preferences],
            "tastes": [taste.value for taste in self.taste_preferences],
            "budgetCents": self.budget_cents,
        }


@dataclass
class UserRecord:
    """A resolved user with its (optional) profile."""
    id: str
    email: str | None = None
    profile: Profile | None = field(default=None)
