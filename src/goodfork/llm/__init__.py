"""
GoodFork - LLM Client.

Provides JSON chat completions for the reranker.
"""

from goodfork.llm.client import complete_json, get_client

__all__ = [
    "complete_json",
    "get_client",
]
