"""Real-time lookups through xAI's OpenAI-compatible chat endpoint."""

from __future__ import annotations

import httpx
from loguru import logger

from huddle.integrations.errors import IntegrationError, NotConfiguredError

_SYSTEM = (
    "You are a research assistant with access to current events and X posts. "
    "Answer concisely and factually."
)


class GrokClient:
    def __init__(
        self,
        api_key: str,
        api_base: str = "https://api.x.ai/v1",
        model: str = "grok-beta",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise NotConfiguredError("xai", "HUDDLE_XAI__API_KEY")
        self.api_base = api_base.rstrip("/")
        self.model = model
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def ask(self, query: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": _SYSTEM},
                {"role": "user", "content": query},
            ],
            "stream": False,
            "temperature": 0,
        }
        try:
            response = await self._client.post(
                f"{self.api_base}/chat/completions", json=payload, headers=self._headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IntegrationError("xai", e.response.text[:300], e.response.status_code) from e
        except httpx.HTTPError as e:
            raise IntegrationError("xai", str(e)) from e
        body = response.json()
        try:
            answer = body["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise IntegrationError("xai", "unexpected response shape") from e
        logger.debug(f"Grok answered {len(answer)} chars")
        return answer
