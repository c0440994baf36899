"""
Base LLM Interface
==================

Abstract interface for the model that drafts SQL from a question.
"""

from abc import ABC, abstractmethod

from sql_guard.models import LLMResponse


class LLMInterface(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def generate(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        """
        Generate a response from the LLM.

        Args:
            prompt: The user prompt, including schema and question
            system_prompt: Optional system prompt for context

        Returns:
            LLMResponse with generated content
        """
        pass
