"""
GoodFork Web API - FastAPI application.

Routes:
    POST /api/recommendations     Generate a personalized menu
    POST /api/feedback            Accept / save / swap a recommendation
    GET  /api/goal-alignment/{id} Retrospective goal alignment
    GET  /health                  Health check
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from goodfork import __version__
from goodfork.config import Settings, get_settings
from goodfork.db.store import RecommendationStore, get_store
from goodfork.engine.pipeline import RecommendationEngine
from goodfork.errors import RecommendationError
from goodfork.feedback import log_feedback_event
from goodfork.goal_alignment import get_goal_alignment
from goodfork.llm.prompt_logger import enable_prompt_logging
from goodfork.models.recommendation import FeedbackRequest, RecommendationRequest

logger = logging.getLogger(__name__)

app = FastAPI(title="GoodFork", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Next.js dev server
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Configure logging and report ranking mode."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    if settings.goodfork_log_prompts and settings.is_development:
        enable_prompt_logging(True)
    logger.info("GoodFork starting up...")
    logger.info(f"  AI ranking configured: {settings.ai_ranking_configured}")
    logger.info(f"  AI ranking required: {settings.require_ai_ranking}")


# =============================================================================
# Dependencies
# =============================================================================


def get_recommendation_store() -> RecommendationStore:
    return get_store()


def get_engine(
    store: RecommendationStore = Depends(get_recommendation_store),
    settings: Settings = Depends(get_settings),
) -> RecommendationEngine:
    return RecommendationEngine(store=store, settings=settings)


# =============================================================================
# Error handlers
# =============================================================================


@app.exception_handler(RecommendationError)
async def recommendation_error_handler(request: Request, exc: RecommendationError):
    logger.warning(f"{request.url.path} failed [{exc.error_code}]: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field_errors.setdefault(".".join(loc) or "body", []).append(error.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "errorCode": "invalid_request",
            "message": "Please review the highlighted fields.",
            "fieldErrors": field_errors,
        },
    )


# =============================================================================
# Routes
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.post("/api/recommendations")
async def create_recommendations(
    req: RecommendationRequest,
    engine: RecommendationEngine = Depends(get_engine),
):
    """Generate and persist 3-5 recommendations for a user."""
    try:
        data = await engine.generate(req)
    except RecommendationError:
        raise
    except Exception:
        logger.exception("Recommendations API error")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Unable to generate recommendations right now. Try again shortly.",
            },
        )
    return {
        "success": True,
        "message": "Recommendations generated.",
        "data": data.model_dump(by_alias=True, mode="json"),
    }


@app.post("/api/feedback")
async def create_feedback(
    req: FeedbackRequest,
    store: RecommendationStore = Depends(get_recommendation_store),
):
    """Record feedback on a recommendation the user owns."""
    try:
        feedback = await log_feedback_event(store, req)
    except RecommendationError:
        raise
    except Exception:
        logger.exception("Feedback API error")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Unable to save feedback right now."},
        )
    return {
        "success": True,
        "message": "Feedback recorded.",
        "data": feedback.model_dump(by_alias=True, mode="json"),
    }


@app.get("/api/goal-alignment/{user_id}")
async def read_goal_alignment(
    user_id: str,
    store: RecommendationStore = Depends(get_recommendation_store),
):
    """Score the user's engaged meals against their primary goal."""
    result = await get_goal_alignment(store, user_id)
    return {"success": True, "data": result.model_dump(by_alias=True, mode="json")}
