"""Unified LLM client using LiteLLM.

Every curator call goes through `get_completion_async`, so the provider
(OpenAI, Anthropic, Gemini, a local model...) is chosen by the model id alone.
"""

import json
import logging
import re
from typing import Any, Optional, Union

import litellm

# Suppress verbose LiteLLM logging
litellm.set_verbose = False
logging.getLogger("LiteLLM").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

JSON_MODE = {"type": "json_object"}


def is_llm_configured(model: str) -> bool:
    """Return True if credentials for `model` are present in the environment."""
    try:
        env = litellm.validate_environment(model=model)
    except Exception as e:
        logger.warning("[LLM] Could not validate environment for %s: %s", model, e)
        return False
    if not env.get("keys_in_environment", False):
        logger.info("[LLM] Missing keys for %s: %s", model, env.get("missing_keys"))
        return False
    return True


async def get_completion_async(
    model: str,
    messages: list[dict],
    max_tokens: int = 4096,
    temperature: float = 0.3,
    response_format: Optional[dict] = None,
    timeout: Optional[float] = None,
    return_full_response: bool = False,
) -> Union[str, tuple[str, Any]]:
    """
    Get a completion from any supported model via LiteLLM.

    Args:
        model: Model identifier, e.g. "gpt-4o-mini" or "gemini/gemini-2.5-flash"
        messages: List of message dicts with role and content
        max_tokens: Maximum response tokens
        temperature: Sampling temperature
        response_format: Optional response format (e.g. JSON_MODE)
        timeout: Per-call deadline in seconds
        return_full_response: If True, return (text, response) tuple for cost tracking

    Returns:
        Response text content, or (text, response) tuple if return_full_response=True
    """
    kwargs = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }

    if response_format:
        kwargs["response_format"] = response_format
    if timeout:
        kwargs["timeout"] = timeout

    response = await litellm.acompletion(**kwargs)
    text = response.choices[0].message.content or ""

    if return_full_response:
        return text, response
    return text


def extract_json(text: Optional[str]) -> Optional[dict | list]:
    """
    Parse JSON out of a model response.

    Handles pure JSON, JSON wrapped in markdown code blocks and JSON
    embedded in surrounding prose.
    """
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    json_patterns = [
        r"```json\s*([\s\S]*?)\s*```",
        r"```\s*([\s\S]*?)\s*```",
        r"\{[\s\S]*\}",
        r"\[[\s\S]*\]",
    ]

    for pattern in json_patterns:
        match = re.search(pattern, text)
        if match:
            try:
                json_str = match.group(1) if "```" in pattern else match.group(0)
                return json.loads(json_str)
            except (json.JSONDecodeError, IndexError):
                continue

    return None
