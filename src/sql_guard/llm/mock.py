"""
Mock LLM
========

Deterministic stand-in for the translation model, used in tests and demos.
"""

from sql_guard.llm.base import LLMInterface
from sql_guard.models import LLMResponse


class MockLLM(LLMInterface):
    """
    Returns canned SQL keyed by substrings of the question.

    In production, replace with a real provider behind the same interface.
    """

    model_name = "mock-llm-v1"

    def __init__(
        self,
        responses: dict[str, str] | None = None,
        default: str = "SELECT * FROM unknown_table",
        error: Exception | None = None,
    ) -> None:
        """
        Initialize with canned responses.

        Args:
            responses: Mapping of question substrings to the SQL to return.
                       Keys are matched case-insensitively, first match wins.
            default: SQL returned when no key matches
            error: Raised from every call, to simulate provider outages
        """
        self.responses = responses or {}
        self.default = default
        self.error = error
        self.prompts: list[str] = []

    def generate(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error

        question = _question_of(prompt).lower()
        for key, sql in self.responses.items():
            if key.lower() in question:
                return LLMResponse(content=sql, model=self.model_name)

        return LLMResponse(content=self.default, model=self.model_name)


def _question_of(prompt: str) -> str:
    # Match on the question only, so schema text cannot trigger a response
    marker = "Natural Language Query:"
    if marker in prompt:
        return prompt.split(marker, 1)[1].split("\n", 1)[0]
    return prompt
