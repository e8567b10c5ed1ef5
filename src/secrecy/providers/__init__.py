"""Completion providers."""

from .base import CompletionProvider, build_prompt
from .gemini import GeminiProvider
from .groq import GroqProvider

__all__ = ["CompletionProvider", "GeminiProvider", "GroqProvider", "build_prompt"]
