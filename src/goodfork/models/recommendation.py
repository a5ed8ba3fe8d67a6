"""
GoodFork - Recommendation request/response models.

Wire payloads use camelCase; Python code uses snake_case attributes.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class RecommendationStatus(str, Enum):
    SHOWN = "SHOWN"
    ACCEPTED = "ACCEPTED"
    SAVED = "SAVED"
    SWAPPED = "SWAPPED"


class FeedbackAction(str, Enum):
    ACCEPT = "ACCEPT"
    SAVE = "SAVE"
    SWAP = "SWAP"


class FeedbackSentiment(str, Enum):
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"


RankingSource = Literal["llm", "deterministic"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================


class RecommendationRequest(CamelModel):
    """Resolve the profile by user id or email; one of them is required."""
    user_id: str | None = None
    email: str | None = None
    limit: int | None = Field(default=None, ge=3, le=5)
    session_id: str | None = Field(default=None, min_length=2, max_length=64)
    deterministic_only: bool = False

    @field_validator("user_id", "email", "session_id", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        if value is not None and ("@" not in value or value.startswith("@") or value.endswith("@")):
            raise ValueError("Enter a valid email.")
        return value.lower() if value else value

    @model_validator(mode="after")
    def _require_identifier(self) -> "RecommendationRequest":
        if not self.user_id and not self.email:
            raise ValueError("Provide a user id or email.")
        return self


class FeedbackRequest(CamelModel):
    recommendation_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    action: FeedbackAction
    sentiment: FeedbackSentiment | None = None
    notes: str | None = None

    @field_validator("notes")
    @classmethod
    def _check_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if len(value) < 2:
            raise ValueError("Add at least 2 characters.")
        if len(value) > 280:
            raise ValueError("Keep feedback under 280 characters.")
        return value


# =============================================================================
# Responses
# =============================================================================


class AdjustmentPayload(CamelModel):
    reason: str
    delta: int


class MacroSummary(CamelModel):
    calories: int | None = None
    protein_grams: int | None = None
    carbs_grams: int | None = None
    fat_grams: int | None = None
    label: str = ""


class InventorySummary(CamelModel):
    status: str
    quantity: int
    unit: str


class SwapRecipe(CamelModel):
    id: str
    title: str
    slug: str | None = None
    image_url: str | None = None
    macros_label: str | None = None


class CardMetadata(CamelModel):
    ranking_source: RankingSource
    base_score: int
    adjustments: list[AdjustmentPayload] = Field(default_factory=list)


class RecommendationCard(CamelModel):
    recommendation_id: str
    recipe_id: str
    slug: str
    title: str
    description: str | None = None
    image_url: str | None = None
    price_cents: int | None = None
    macros: MacroSummary
    tags: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    inventory: InventorySummary
    rationale: str
    healthy_swap_copy: str | None = None
    swap_recipe: SwapRecipe | None = None
    metadata: CardMetadata


class Telemetry(CamelModel):
    catalog_count: int = 0
    candidate_count: int = 0
    unavailable_count: int = 0
    allergen_excluded_count: int = 0
    low_stock_backfill_count: int = 0


class RecommendationResponse(CamelModel):
    user_id: str
    requested: int
    delivered: int
    source: RankingSource
    recommendations: list[RecommendationCard] = Field(default_factory=list)
    telemetry: Telemetry = Field(default_factory=Telemetry)


class FeedbackRecord(CamelModel):
    id: str
    recommendation_id: str
    user_id: str
    action: FeedbackAction
    sentiment: FeedbackSentiment
    notes: str | None = None
    created_at: datetime | None = None
