"""
GoodFork - LLM Client.

Thin wrapper over the OpenAI chat-completions API (or any compatible
endpoint configured through OPENAI_BASE_URL). Errors propagate to the
caller; the reranker decides what a failure means.
"""

from openai import AsyncOpenAI

from goodfork.config import settings
from goodfork.llm.prompt_logger import log_prompt

# Singleton client instance
_client: AsyncOpenAI | None = None


def get_client() -> AsyncOpenAI:
    """
    Get the async OpenAI client.

    Uses singleton pattern to reuse connection. Retries are disabled;
    a failed rerank falls back to deterministic ranking instead.
    """
    global _client

    if _client is None:
        _client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url.rstrip("/"),
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )

    return _client


def reset_client() -> None:
    """Drop the cached client (settings changed, or tests)."""
    global _client
    _client = None


async def complete_json(
    *,
    system_prompt: str,
    user_prompt: str,
    model: str,
    temperature: float = 0.4,
    node: str = "rerank",
) -> str | None:
    """
    Request a JSON-object completion and return the raw message content.

    Returns:
        The message content, or None when the model returned no choices
    """
    client = get_client()
    try:
        completion = await client.chat.completions.create(
            model=model,
            temperature=temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
    except Exception as e:
        log_prompt(node=node, model=model, system_prompt=system_prompt, user_prompt=user_prompt, error=str(e))
        raise

    content = completion.choices[0].message.content if completion.choices else None
    log_prompt(node=node, model=model, system_prompt=system_prompt, user_prompt=user_prompt, response=content)
    return content
