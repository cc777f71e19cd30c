"""Prompt templates for the curator agent."""

from .loader import STAGES, PromptError, placeholders, render

__all__ = ["STAGES", "PromptError", "placeholders", "render"]
