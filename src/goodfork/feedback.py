"""
GoodFork - Feedback events.

Records an accept / save / swap on a shown recommendation. The event row
and the recommendation status update are written atomically by the store.
Status has no enforced lifecycle: the latest action wins.
"""

import logging

from goodfork.db.store import RecommendationStore
from goodfork.errors import RecommendationNotFoundError
from goodfork.models.recommendation import (
    FeedbackAction,
    FeedbackRecord,
    FeedbackRequest,
    FeedbackSentiment,
    RecommendationStatus,
)

logger = logging.getLogger(__name__)

ACTION_STATUS: dict[FeedbackAction, RecommendationStatus] = {
    FeedbackAction.ACCEPT: RecommendationStatus.ACCEPTED,
    FeedbackAction.SAVE: RecommendationStatus.SAVED,
    FeedbackAction.SWAP: RecommendationStatus.SWAPPED,
}


def derive_sentiment(action: FeedbackAction) -> FeedbackSentiment:
    if action == FeedbackAction.ACCEPT:
        return FeedbackSentiment.POSITIVE
    return FeedbackSentiment.NEUTRAL


def map_action_to_status(action: FeedbackAction) -> RecommendationStatus:
    return ACTION_STATUS.get(action, RecommendationStatus.SHOWN)


async def log_feedback_event(store: RecommendationStore, request: FeedbackRequest) -> FeedbackRecord:
    """
    Record feedback for a recommendation the user owns.

    Raises:
        RecommendationNotFoundError: unknown recommendation, or owned by
            someone else (reported the same way)
    """
    recommendation = await store.get_recommendation(request.recommendation_id)
    if not recommendation or recommendation.get("user_id") != request.user_id:
        logger.info(
            f"Rejected feedback for recommendation {request.recommendation_id} from user {request.user_id}"
        )
        raise RecommendationNotFoundError("Recommendation not found for the provided user.")

    sentiment = request.sentiment or derive_sentiment(request.action)
    status = map_action_to_status(request.action)

    row = await store.record_feedback(
        recommendation_id=request.recommendation_id,
        user_id=request.user_id,
        action=request.action.value,
        sentiment=sentiment.value,
        notes=request.notes,
        status=status.value,
    )
    if not row:
        # Ownership changed or the row vanished between the check and the write.
        raise RecommendationNotFoundError("Recommendation not found for the provided user.")

    logger.debug(f"Recommendation {request.recommendation_id} -> {status.value}")
    return FeedbackRecord.model_validate(row)
