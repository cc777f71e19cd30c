"""Base agent class for LiteLLM-backed curator calls.

Every call asks for a JSON object, records token usage against the
pipeline stage that made it, and turns any failure (missing credentials,
timeout, malformed JSON) into None so the caller can pass its input
through unchanged.
"""

import logging
from typing import Optional

from ..config.settings import settings
from ..utils.cost_tracker import PipelineCosts
from ..utils.llm_client import JSON_MODE, extract_json, get_completion_async, is_llm_configured

logger = logging.getLogger(__name__)


class BaseAgent:
    """
    Base class for agents talking to a chat model through LiteLLM.

    Subclasses build prompts and interpret the parsed JSON; this class owns
    the transport, the JSON extraction and the usage bookkeeping.
    """

    def __init__(
        self,
        model_id: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
        costs: Optional[PipelineCosts] = None,
    ):
        """
        Initialize the base agent.

        Args:
            model_id: LiteLLM model id (default: settings.llm_model)
            max_tokens: Maximum tokens for a response
            temperature: Sampling temperature
            timeout: Per-call deadline in seconds
            enabled: Force the agent on/off; by default it is on when
                settings.llm_enabled is set and credentials are present
            costs: Usage accumulator shared with the pipeline run
        """
        self.model_id = model_id or settings.llm_model
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.timeout = timeout or settings.llm_timeout
        self.costs = costs or PipelineCosts()
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        if self._enabled is None:
            self._enabled = settings.llm_enabled and is_llm_configured(self.model_id)
            if not self._enabled:
                logger.warning("[AI] Curator disabled: no usable credentials for %s", self.model_id)
        return self._enabled

    async def _complete_json(self, stage: str, prompt: str, user_content: Optional[str] = None) -> Optional[dict]:
        """
        Run one JSON-mode completion.

        Args:
            stage: Pipeline stage name, used for logs and cost tracking
            prompt: System prompt
            user_content: Optional user message

        Returns:
            Parsed JSON object, or None on any failure
        """
        if not self.enabled:
            return None

        messages = [{"role": "system", "content": prompt}]
        if user_content:
            messages.append({"role": "user", "content": user_content})

        try:
            text, response = await get_completion_async(
                model=self.model_id,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format=JSON_MODE,
                timeout=self.timeout,
                return_full_response=True,
            )
        except Exception as e:
            logger.error("[AI] %s call failed: %s", stage, e)
            return None

        self.costs.add_response(stage, self.model_id, response)

        data = extract_json(text)
        if not isinstance(data, dict):
            logger.warning("[AI] %s returned no JSON object (%d chars)", stage, len(text))
            return None
        return data
