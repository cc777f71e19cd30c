"""Curator prompts, one template per pipeline stage.

A stage's text lives in templates/<stage>.txt with `$name` placeholders.
Literal JSON in the text (response shapes shown to the model) is left alone.
"""

from functools import lru_cache
from pathlib import Path
from string import Template

TEMPLATES_DIR = Path(__file__).parent / "templates"

STAGES = (
    "rubric",
    "triage",
    "content_card",
    "scoring",
    "dedup",
    "plan_links",
    "micro_questions",
    "refine_interest",
    "discovery_queries",
)


class PromptError(Exception):
    """Unknown stage, unreadable template, or a placeholder left without a value."""


@lru_cache(maxsize=len(STAGES))
def load_template(stage: str) -> Template:
    if stage not in STAGES:
        raise PromptError(f"No prompt for curator stage {stage!r}")
    try:
        return Template((TEMPLATES_DIR / f"{stage}.txt").read_text())
    except OSError as e:
        raise PromptError(f"Cannot read prompt for {stage!r}: {e}") from e


def placeholders(stage: str) -> set[str]:
    """Names the stage's template expects a value for."""
    template = load_template(stage)
    return {
        named or braced
        for _, named, braced, _ in template.pattern.findall(template.template)
        if named or braced
    }


def render(stage: str, **values: str) -> str:
    """Fill in a stage's prompt; extra values are ignored."""
    missing = placeholders(stage) - values.keys()
    if missing:
        raise PromptError(f"Prompt {stage!r} needs {', '.join(sorted(missing))}")
    return load_template(stage).substitute(values)
