"""
GoodFork - Domain models.
"""

from goodfork.models.catalog import (
    Adjustment,
    CandidateRecipe,
    InventoryState,
    InventoryStatus,
    ScoredCandidate,
)
from goodfork.models.profile import (
    DietaryPreference,
    Goal,
    Profile,
    TastePreference,
    UserRecord,
)
from goodfork.models.recommendation import (
    FeedbackAction,
    FeedbackRecord,
    FeedbackRequest,
    FeedbackSentiment,
    RecommendationCard,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationStatus,
)

__all__ = [
    "Adjustment",
    "CandidateRecipe",
    "DietaryPreference",
    "FeedbackAction",
    "FeedbackRecord",
    "FeedbackRequest",
    "FeedbackSentiment",
    "Goal",
    "InventoryState",
    "InventoryStatus",
    "Profile",
    "RecommendationCard",
    "RecommendationRequest",
    "RecommendationResponse",
    "RecommendationStatus",
    "ScoredCandidate",
    "TastePreference",
    "UserRecord",
]
