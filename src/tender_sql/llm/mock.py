"""
Mock LLM
========

Mock LLM implementation for testing and demonstration.
"""

from typing import Optional

from tender_sql.errors import ModelUnavailableError
from tender_sql.llm.base import LLMInterface
from tender_sql.models import LLMResponse


class MockLLM(LLMInterface):
    """
    Mock LLM for demonstration and testing purposes.

    In production, use OpenAICompatibleLLM.
    """

    def __init__(
        self,
        responses: dict[str, list[str]] | None = None,
        default: str = "",
        fail: bool = False,
    ) -> None:
        """
        Initialize with canned responses.

        Args:
            responses: Dict mapping question substrings to a list of outputs.
                       Each output is returned in sequence, the last one repeats.
            default: Output when no key matches
            fail: Raise ModelUnavailableError on every call
        """
        self.responses = responses or {}
        self.default = default
        self.fail = fail
        self.call_counts: dict[str, int] = {}
        self.prompts: list[str] = []

    async def complete(
        self,
        prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Return the canned output for the first key found in the prompt.

        Keys are matched against the USER QUESTION line only, so schema
        text and examples in the prompt do not trigger matches.
        """
        self.prompts.append(prompt)
        if self.fail:
            raise ModelUnavailableError("Mock model is unavailable")

        question_line = next(
            (line for line in prompt.splitlines() if line.startswith("USER QUESTION:")),
            prompt,
        ).lower()

        for key, outputs in self.responses.items():
            if key.lower() in question_line:
                count = self.call_counts.get(key, 0)
                self.call_counts[key] = count + 1
                return LLMResponse(
                    content=outputs[min(count, len(outputs) - 1)],
                    model="mock-llm-v1",
                )

        return LLMResponse(content=self.default, model="mock-llm-v1")

    def reset(self) -> None:
        """Reset call counts and recorded prompts for fresh test runs."""
        self.call_counts = {}
        self.prompts = []
