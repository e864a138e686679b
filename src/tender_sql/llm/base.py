"""
Base LLM Interface
==================

Abstract interface for completion providers. A client is built once at
process start and handed to the pipeline, so tests can pass a stub.
"""

from abc import ABC, abstractmethod
from typing import Optional

from tender_sql.models import LLMResponse


class LLMInterface(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Send one prompt and return the raw generated text.

        The response is untrusted; implementations must not parse it.

        Args:
            prompt: Complete instruction prompt
            temperature: Sampling temperature override
            max_tokens: Completion length override

        Returns:
            LLMResponse with generated content

        Raises:
            ModelUnavailableError: On transport, quota or protocol failure
        """
        pass

    async def aclose(self) -> None:
        """Release transport resources."""
        return None
