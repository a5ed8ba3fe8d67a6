"""
GoodFork - Personalized prepared-meal recommendations.

Ranks live kitchen inventory against a user's nutrition profile:
- Engine: availability filter, deterministic scoring, optional LLM rerank
- Feedback: accept / save / swap events on shown recommendations
- Goal alignment: retrospective scoring of engaged meals
"""

__version__ = "1.0.0"
