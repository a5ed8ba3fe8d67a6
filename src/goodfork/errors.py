"""
GoodFork - Error taxonomy.

Every error carries an internal message (logged) and a short client
message (returned). Codes are stable and machine-readable.
"""


class RecommendationError(Exception):
    """Base error surfaced to callers with a stable code."""

    error_code: str = "recommendation_error"
    status_code: int = 400
    default_client_message: str = "Unable to generate recommendations right now."

    def __init__(
        self,
        message: str,
        *,
        client_message: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.client_message = client_message or self.default_client_message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        return {
            "success": False,
            "errorCode": self.error_code,
            "message": self.client_message,
        }


class InvalidRequestError(RecommendationError):
    error_code = "invalid_request"
    status_code = 400
    default_client_message = "Please review the highlighted fields."


class UserNotFoundError(RecommendationError):
    error_code = "user_not_found"
    status_code = 404
    default_client_message = (
        "We couldn't find an onboarding profile for that email yet. "
        "Start onboarding to unlock personalized menus."
    )


class ProfileMissingError(RecommendationError):
    error_code = "profile_missing"
    status_code = 400
    default_client_message = "Complete onboarding before fetching menus so we can personalize your menus."


class InventoryEmptyError(RecommendationError):
    error_code = "inventory_empty"
    status_code = 404
    default_client_message = (
        "Nothing on today's menu fits your allergens right now. "
        "Check back after the next restock or adjust your allergens."
    )


class LLMRequiredError(RecommendationError):
    error_code = "llm_required"
    status_code = 503
    default_client_message = "LLM rankings are warming up. Try again in a moment for fresh menus."


class RecommendationNotFoundError(RecommendationError):
    error_code = "not_found"
    status_code = 404
    default_client_message = "Recommendation not found."
