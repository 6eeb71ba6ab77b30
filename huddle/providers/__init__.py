"""LLM provider abstraction module."""

from huddle.providers.base import LLMProvider, LLMResponse, ToolCallRequest

__all__ = ["LLMProvider", "LLMResponse", "ToolCallRequest"]
