"""Chat-completions call to the AI gateway.

The gateway is OpenAI-compatible: POST {model, messages, temperature} with a
bearer key, answer in `choices[0].message.content`. Failures are translated
into coarse caller-safe errors here; nothing is retried.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from isthisnormal.config import Settings
from isthisnormal.utils.exceptions import (
    ConfigurationError,
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger("isthisnormal")

BUSY_MESSAGE = "Service is busy. Please try again in a moment."
UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again later."
ANALYZE_FAILED_MESSAGE = "Unable to analyze symptom. Please try again."
EMPTY_CONTENT_MESSAGE = "Unable to generate response. Please try again."


def _extract_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


class GatewayClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        # tests hand in httpx.MockTransport
        self._transport = transport

    async def generate_chat(self, messages: List[Dict[str, str]]) -> str:
        if not self.settings.provider_configured:
            logger.error("AI gateway API key is not configured")
            raise ConfigurationError()

        payload = {
            "model": self.settings.model,
            "messages": messages,
            "temperature": self.settings.temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout_s, transport=self._transport) as client:
                r = await client.post(self.settings.gateway_url, headers=headers, json=payload)
        except httpx.TimeoutException:
            logger.warning({"function": "generate_chat", "stage": "timeout", "timeout_s": self.settings.timeout_s})
            raise ProviderUnavailableError(ANALYZE_FAILED_MESSAGE, status_code=500)
        except httpx.HTTPError as e:
            logger.warning({"function": "generate_chat", "stage": "transport", "error": type(e).__name__})
            raise ProviderUnavailableError(ANALYZE_FAILED_MESSAGE, status_code=500)

        if not r.is_success:
            logger.error({"function": "generate_chat", "stage": "gateway_error", "status": r.status_code})
            if r.status_code == 429:
                raise RateLimitError(BUSY_MESSAGE)
            if r.status_code == 402:
                raise ProviderUnavailableError(UNAVAILABLE_MESSAGE, status_code=402)
            raise ProviderUnavailableError(ANALYZE_FAILED_MESSAGE, status_code=500)

        try:
            data = r.json()
        except ValueError:
            data = None
        content = _extract_content(data)
        if not content.strip():
            logger.error({"function": "generate_chat", "stage": "empty_content"})
            raise ProviderUnavailableError(EMPTY_CONTENT_MESSAGE, status_code=500)

        logger.info({"function": "generate_chat", "stage": "done", "chars": len(content)})
        return content


__all__ = ["GatewayClient"]
