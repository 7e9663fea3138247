"""LLM access through LangChain chat models."""

import os
from typing import Any, AsyncIterator, Optional, Union

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from src.utils.errors import DraftingError, RateLimitedError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def get_llm_model(max_tokens: Optional[int] = None):
    """
    Get configured chat model.

    SDK-level retries are disabled; rate-limit retry policy lives in
    src.utils.retry and is applied only to batch call sites.
    """
    provider = os.environ.get("LLM_PROVIDER", "anthropic").lower()
    model_name = os.environ.get("LLM_MODEL", DEFAULT_MODEL)
    max_tokens = max_tokens or int(os.environ.get("LLM_MAX_TOKENS", "1024"))

    logger.debug(
        "Getting LLM model",
        llm_provider=provider,
        llm_model=model_name
    )

    if provider == "anthropic":
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise DraftingError("ANTHROPIC_API_KEY not set")
        return ChatAnthropic(model=model_name, api_key=api_key, max_tokens=max_tokens, max_retries=0)
    elif provider == "openai":
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise DraftingError("OPENAI_API_KEY not set")
        return ChatOpenAI(model=model_name, api_key=api_key, max_tokens=max_tokens, max_retries=0)
    else:
        raise DraftingError(f"Unsupported LLM provider: {provider}")


def build_messages(system_prompt: str, user_content: Union[str, list]) -> list[BaseMessage]:
    return [SystemMessage(content=system_prompt), HumanMessage(content=user_content)]


def chunk_text(content: Any) -> str:
    """Text of a message or chunk; content may be a string or a list of blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


def translate_error(error: Exception) -> DraftingError:
    """Map provider SDK errors onto our taxonomy. 429 stays distinct."""
    if isinstance(error, DraftingError):
        return error
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(getattr(error, "response", None), "status_code", None)
    if status == 429:
        return RateLimitedError("Rate limit exceeded. Please try again in a moment.")
    return DraftingError(f"AI service temporarily unavailable: {error}")


async def stream_completion(messages: list[BaseMessage], model=None) -> AsyncIterator[str]:
    """Yield text deltas in arrival order."""
    model = model or get_llm_model()
    try:
        async for chunk in model.astream(messages):
            text = chunk_text(chunk.content)
            if text:
                yield text
    except Exception as e:
        raise translate_error(e) from e


async def complete(messages: list[BaseMessage], model=None) -> str:
    """Single non-streaming completion."""
    model = model or get_llm_model()
    try:
        response = await model.ainvoke(messages)
    except Exception as e:
        raise translate_error(e) from e
    return chunk_text(response.content)
