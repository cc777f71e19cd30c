"""Token and cost accounting for curator LLM calls.

One `PipelineCosts` is kept per pipeline run; each AI stage records its
calls under its own stage name so the run summary shows where money went.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import litellm

logger = logging.getLogger(__name__)


@dataclass
class StageCost:
    """Cost data for a single pipeline stage."""

    stage: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    call_count: int = 0


@dataclass
class PipelineCosts:
    """Aggregate cost tracking for one run."""

    stages: dict[str, StageCost] = field(default_factory=dict)

    def add_usage(
        self,
        stage: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cost_usd: float,
    ) -> None:
        if stage not in self.stages:
            self.stages[stage] = StageCost(stage=stage, model=model)

        entry = self.stages[stage]
        entry.input_tokens += input_tokens
        entry.output_tokens += output_tokens
        entry.cost_usd += cost_usd
        entry.call_count += 1

    def add_response(self, stage: str, model: str, response: Any) -> None:
        """Record usage straight from a LiteLLM response object."""
        try:
            input_tokens, output_tokens, cost = extract_usage_from_litellm_response(response)
        except AttributeError:
            return
        self.add_usage(stage, model, input_tokens, output_tokens, cost)

    def total_cost(self) -> float:
        return sum(s.cost_usd for s in self.stages.values())

    def total_calls(self) -> int:
        return sum(s.call_count for s in self.stages.values())

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return {
            "total_cost_usd": round(self.total_cost(), 6),
            "total_calls": self.total_calls(),
            "stages": {
                name: {
                    "model": s.model,
                    "input_tokens": s.input_tokens,
                    "output_tokens": s.output_tokens,
                    "cost_usd": round(s.cost_usd, 6),
                    "call_count": s.call_count,
                }
                for name, s in self.stages.items()
            },
        }


def extract_usage_from_litellm_response(response: Any) -> tuple[int, int, float]:
    """Return (input_tokens, output_tokens, cost_usd) for a LiteLLM response."""
    input_tokens = response.usage.prompt_tokens
    output_tokens = response.usage.completion_tokens

    try:
        cost = litellm.completion_cost(completion_response=response)
        cost = cost if cost else 0.0
    except Exception as e:
        logger.debug("Failed to extract cost from LiteLLM response: %s", e)
        cost = 0.0

    return input_tokens, output_tokens, cost
