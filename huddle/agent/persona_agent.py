"""One persona's reply: model call, tool rounds, final text."""

from __future__ import annotations

import json
from typing import Any, Sequence

from loguru import logger

from huddle.agent.context import TurnContext, build_message_envelope
from huddle.agent.tools.dispatch import ToolDispatcher, ToolResult
from huddle.notify import EMPTY_SENTINEL
from huddle.personas import Persona
from huddle.providers.base import LLMProvider, LLMResponse
from huddle.storage import ChatMessage


class PersonaAgent:
    """
    Runs the tool-calling loop for whichever persona the router picked.

    Each round calls the model with the persona's tools; tool calls are
    dispatched concurrently and their results fed back. When the persona's
    round limit is reached the model is asked once more without tools, so
    the turn always ends in text (or the empty sentinel).
    """

    def __init__(
        self,
        provider: LLMProvider,
        dispatcher: ToolDispatcher,
        model: str | None = None,
        max_tokens: int = 4096,
    ):
        self.provider = provider
        self.dispatcher = dispatcher
        self.model = model or provider.get_default_model()
        self.max_tokens = max_tokens

    @property
    def registry(self):
        return self.dispatcher.registry

    async def respond(
        self,
        persona: Persona,
        history: Sequence[ChatMessage],
        message: str,
        context: TurnContext,
    ) -> str:
        context = context.for_persona(persona.name)
        messages = self._build_messages(persona, history, message, context)
        tools = self.registry.get_definitions(toolsets=persona.toolsets)
        model = persona.model or self.model

        rounds = 0
        while True:
            offer_tools = bool(tools) and rounds < persona.max_tool_rounds
            response = await self.provider.chat(
                messages=messages,
                tools=tools if offer_tools else None,
                model=model,
                max_tokens=self.max_tokens,
                temperature=persona.temperature,
            )
            if not (offer_tools and response.has_tool_calls):
                break

            results = await self.dispatcher.dispatch(response, persona, context)
            if not results:
                # Every call named a tool this persona does not have.
                break
            rounds += 1
            messages.append(self._build_tool_call_message(response, results))
            messages.extend(r.to_message() for r in results)
            if rounds >= persona.max_tool_rounds:
                logger.warning(f"{persona.name} used all {persona.max_tool_rounds} tool rounds")

        content = (response.content or "").strip()
        if not content:
            logger.info(f"{persona.name} produced no content")
            return EMPTY_SENTINEL
        return content

    def _build_system_prompt(self, persona: Persona, context: TurnContext) -> str:
        parts = [persona.instructions.strip()]
        lines = [
            "## Current Context",
            f"Session: {context.session_id}",
            f"Created by: {context.created_by}",
            f"You are: {persona.name} (characterId {persona.name})",
        ]
        if context.wallets:
            lines.append("Known wallets: " + ", ".join(f"{k}={v}" for k, v in context.wallets.items()))
        parts.append("\n".join(lines))
        return "\n\n".join(parts)

    def _build_messages(
        self,
        persona: Persona,
        history: Sequence[ChatMessage],
        message: str,
        context: TurnContext,
    ) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self._build_system_prompt(persona, context)}
        ]
        for item in history:
            if item.author.lower() == persona.key:
                messages.append({"role": "assistant", "content": item.body})
            else:
                messages.append({"role": "user", "content": f"{item.author}: {item.body}"})
        messages.append({"role": "user", "content": build_message_envelope(context, message)})
        return messages

    def _build_tool_call_message(self, response: LLMResponse, results: list[ToolResult]) -> dict[str, Any]:
        """Assistant message carrying only the calls that produced a result."""
        answered = {r.id for r in results}
        tool_calls = [
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
            }
            for tc in response.tool_calls
            if tc.id in answered
        ]
        # Duplicate ids were dispatched once; replay them once.
        seen: set[str] = set()
        unique = []
        for call in tool_calls:
            if call["id"] not in seen:
                seen.add(call["id"])
                unique.append(call)
        return {"role": "assistant", "content": response.content or None, "tool_calls": unique}
