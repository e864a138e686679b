"""
OpenAI-Compatible Client
========================

Chat-completions client for OpenAI and API-compatible providers
(Mistral, Azure gateways, local servers).
"""

import time
from typing import Any, Optional

import httpx
import structlog

from tender_sql.errors import ModelUnavailableError
from tender_sql.llm.base import LLMInterface
from tender_sql.models import LLMResponse

logger = structlog.get_logger(__name__)


class OpenAICompatibleLLM(LLMInterface):
    """
    Single request/response client for a ``/chat/completions`` endpoint.

    No retries are attempted here; the pipeline answers a failed call with
    a fallback query instead of asking the model again.

    Example:
        llm = OpenAICompatibleLLM(api_key="sk-...", model="gpt-4o-mini")
        response = await llm.complete(prompt)
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(
        self, prompt: str, temperature: Optional[float], max_tokens: Optional[int]
    ) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature if temperature is not None else self.temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }

    async def complete(
        self,
        prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        start_time = time.perf_counter()
        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                json=self._payload(prompt, temperature, max_tokens),
                headers=self._headers(),
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Model endpoint returned an error",
                status_code=e.response.status_code,
                model=self.model,
            )
            raise ModelUnavailableError(
                f"Model endpoint returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Model endpoint unreachable", error=str(e), model=self.model)
            raise ModelUnavailableError(f"Model request failed: {e}") from e
        except ValueError as e:
            raise ModelUnavailableError("Model endpoint returned invalid JSON") from e

        try:
            content = data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ModelUnavailableError("Model response has no choices") from e

        usage = data.get("usage") or {}
        logger.debug(
            "Model call completed",
            model=data.get("model", self.model),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            total_tokens=usage.get("total_tokens", 0),
        )
        return LLMResponse(
            content=content.strip(),
            model=data.get("model", self.model),
            tokens_used=usage.get("total_tokens", 0),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
