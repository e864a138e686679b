"""
LLM Module
==========

Pluggable completion clients for SQL generation.
"""

from tender_sql.llm.base import LLMInterface
from tender_sql.llm.mock import MockLLM
from tender_sql.llm.openai import OpenAICompatibleLLM

__all__ = [
    "LLMInterface",
    "MockLLM",
    "OpenAICompatibleLLM",
]
