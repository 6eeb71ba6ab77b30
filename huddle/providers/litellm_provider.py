"""LiteLLM provider, used for Bedrock and any route LiteLLM understands."""

import asyncio
import json
import os
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from huddle.providers.base import LLMProvider, LLMResponse, ToolCallRequest

_TRANSIENT_MARKERS = (
    "timeout",
    "rate limit",
    "throttl",
    "429",
    "500",
    "502",
    "503",
    "504",
    "overloaded",
    "connection",
)


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM.

    Bedrock model ids (``bedrock/...``) authenticate through the usual AWS
    environment; other routes take ``api_key``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "bedrock/us.anthropic.claude-3-5-haiku-20241022-v1:0",
        provider_name: str | None = None,
        max_attempts: int = 3,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.provider_name = (provider_name or "").strip().lower() or None
        self.max_attempts = max(1, max_attempts)

        if api_key and self.provider_name == "openrouter":
            os.environ.setdefault("OPENROUTER_API_KEY", api_key)

        litellm.suppress_debug_info = True

    def get_default_model(self) -> str:
        return self.default_model

    def _resolve_model(self, model: str | None) -> str:
        model = model or self.default_model
        if self.provider_name == "openrouter" and not model.startswith("openrouter/"):
            model = f"openrouter/{model}"
        return model

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        tool_choice: Any | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": self._resolve_model(model),
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.api_key and self.provider_name not in (None, "bedrock"):
            kwargs["api_key"] = self.api_key
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = tool_choice or "auto"

        for attempt in range(self.max_attempts):
            try:
                response = await acompletion(**kwargs)
                return self._parse_response(response)
            except Exception as e:
                error_str = str(e).lower()
                transient = any(tok in error_str for tok in _TRANSIENT_MARKERS)
                if not transient or attempt == self.max_attempts - 1:
                    raise
                wait = 2 ** attempt
                logger.warning(
                    f"LLM call failed (attempt {attempt + 1}/{self.max_attempts}), "
                    f"retrying in {wait}s: {e}"
                )
                await asyncio.sleep(wait)
        raise RuntimeError("unreachable")

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        try:
            choice = response.choices[0]
        except (IndexError, AttributeError):
            logger.warning("LLM response has no choices")
            return LLMResponse(content=None, finish_reason="error")

        message = choice.message
        tool_calls = []
        for tc in getattr(message, "tool_calls", None) or []:
            try:
                args = tc.function.arguments
                if isinstance(args, str):
                    try:
                        args = json.loads(args or "{}")
                    except json.JSONDecodeError:
                        args = {"raw": args}
                tool_calls.append(ToolCallRequest(
                    id=tc.id or f"call_{id(tc)}",
                    name=tc.function.name,
                    arguments=args,
                ))
            except (AttributeError, TypeError) as e:
                logger.warning(f"Skipping malformed tool call: {e}")

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )
