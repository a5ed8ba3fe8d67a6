"""
GoodFork - Personalization engine.

Filter -> score -> optional LLM rerank -> persist.
"""

from goodfork.engine.filters import clamp_limit, filter_candidates
from goodfork.engine.pipeline import RecommendationEngine
from goodfork.engine.reranker import LLMReranker, RerankDegraded, RerankFatal, RerankOk
from goodfork.engine.scoring import BASE_SCORE, rank_candidates, score_candidate

__all__ = [
    "BASE_SCORE",
    "LLMReranker",
    "RecommendationEngine",
    "RerankDegraded",
    "RerankFatal",
    "RerankOk",
    "clamp_limit",
    "filter_candidates",
    "rank_candidates",
    "score_candidate",
]
