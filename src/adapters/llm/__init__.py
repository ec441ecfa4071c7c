"""Language-model adapters for the concierge operations console.

This module contains adapters that implement the LanguageModelPort interface.
"""

from src.adapters.llm.openai_adapter import OpenAIChatAdapter

__all__ = ["OpenAIChatAdapter"]
