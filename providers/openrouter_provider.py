"""
OpenRouter provider — one vision model reached through OpenRouter's
OpenAI-compatible gateway.

OpenRouter (https://openrouter.ai) exposes models from OpenAI, Anthropic,
Google, Meta, Qwen and others behind one API key, which is why the whole
cascade runs through it: each cascade step is the same client pointed at a
different model id.

Every failure leaves this module as a ProviderError with a FailureKind taken
from the HTTP status / SDK exception type, so the cascade never has to look
at provider-specific error wording.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Optional

import openai

from providers.base import AnalysisRequest, VisionProvider
from providers.errors import FailureKind, ProviderError, classify_status, from_openai_error

logger = logging.getLogger(__name__)

_OR_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(VisionProvider):
    """Provider for any OpenRouter-hosted model."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = _OR_BASE_URL,
        app_title: str = "Hairmama",
        referer: str = "https://hairmama.app",
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.name     = "openrouter"
        self.model_id = model

        # Retries are the cascade's job, not the SDK's
        self._client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=0,
            default_headers={
                "HTTP-Referer": referer,
                "X-Title":      app_title,
            },
        )

    async def complete(self, request: AnalysisRequest) -> str:
        return await self._create(
            messages=request.messages(),
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )

    async def chat(
        self,
        messages: list[dict[str, Any]],
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str:
        return await self._create(messages=messages, max_tokens=max_tokens, temperature=temperature)

    async def _create(self, messages: list[dict[str, Any]], max_tokens: int, temperature: float) -> str:
        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model_id,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as exc:
            raise from_openai_error(exc, self.model_id) from exc

        latency_ms = int((time.monotonic() - t0) * 1000)

        # OpenRouter can answer 200 with an error envelope instead of choices
        error = getattr(response, "error", None)
        if error:
            raise _envelope_error(error, self.model_id)

        content = _first_content(response)
        if not content:
            raise ProviderError(
                FailureKind.TRANSIENT,
                "No response content received from AI",
                model=self.model_id,
            )

        logger.debug("[%s] reply in %dms (%d chars)", self.model_id, latency_ms, len(content))
        return content


def _envelope_error(error: Any, model: str) -> ProviderError:
    if isinstance(error, dict):
        code, message = error.get("code"), error.get("message", "unknown error")
    else:
        code, message = getattr(error, "code", None), getattr(error, "message", str(error))
    status = code if isinstance(code, int) else None
    return ProviderError(classify_status(status), f"API Error: {message}", status=status, model=model)


def _first_content(response: Any) -> Optional[str]:
    """Text of the first choice; None when the choice or its message is missing."""
    choices = getattr(response, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    return content if isinstance(content, str) else None
