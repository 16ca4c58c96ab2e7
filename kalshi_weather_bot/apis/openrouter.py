"""
OpenRouter API Client

Chat-completions client used by the LLM brain. Returns the raw completion
text; parsing the verdict is the brain's job.
"""

import asyncio
import re
from typing import Optional

import httpx

from ..config import config


class OpenRouterError(Exception):
    """Raised when a completion cannot be obtained."""


class OpenRouterClient:
    """Async OpenRouter chat completion client with a single timeout retry."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = (api_key if api_key is not None else config.api.openrouter_api_key).strip()
        self.model = (model or config.api.openrouter_model).strip()
        self.base_url = base_url or config.api.openrouter_url
        self.client = httpx.AsyncClient(timeout=timeout or config.api.openrouter_timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 1200,
        temperature: float = 0.2,
    ) -> str:
        """
        Send one user message and return the completion text.

        Raises:
            OpenRouterError: missing key, transport failure, or empty content
        """
        if not self.api_key:
            raise OpenRouterError("OPENROUTER_API_KEY is not configured")

        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Kalshi Weather Bot",
        }

        for attempt in range(2):
            try:
                response = await self.client.post(self.base_url, headers=headers, json=payload)
                response.raise_for_status()
                body = response.json()
            except httpx.TimeoutException as exc:
                if attempt == 0:
                    await asyncio.sleep(0.5)
                    continue
                raise OpenRouterError("OpenRouter timeout after retry") from exc
            except httpx.HTTPStatusError as exc:
                excerpt = _response_excerpt(exc.response.text, limit=500)
                raise OpenRouterError(
                    f"OpenRouter request failed (status={exc.response.status_code}, body={excerpt!r})"
                ) from exc
            except (httpx.HTTPError, ValueError) as exc:
                raise OpenRouterError(f"OpenRouter request failed: {exc}") from exc

            choices = body.get("choices") if isinstance(body, dict) else None
            if not isinstance(choices, list) or not choices:
                raise OpenRouterError("OpenRouter response without choices")
            message = choices[0].get("message") or {}
            content = message.get("content")
            if not isinstance(content, str) or not content.strip():
                raise OpenRouterError("No content in OpenRouter response")
            return content

        raise OpenRouterError("OpenRouter request failed unexpectedly")


def _response_excerpt(raw_text: str, limit: int) -> str:
    """Collapse whitespace and truncate a response body for diagnostics."""
    compact = re.sub(r"\s+", " ", raw_text).strip()
    if not compact:
        return "<empty>"
    return compact[:limit]
