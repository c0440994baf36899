"""
LLM Module
==========

Pluggable LLM interfaces for SQL drafting.
"""

from sql_guard.llm.base import LLMInterface
from sql_guard.llm.mock import MockLLM

__all__ = [
    "LLMInterface",
    "MockLLM",
]
