"""Prompt rendering for the generative model.

Provides ``PromptManager``, a Jinja2-based template engine that renders
reflection and completion prompts with JSON response format instructions.
"""

from intake_engine.prompt.manager import PromptManager

__all__ = ["PromptManager"]
