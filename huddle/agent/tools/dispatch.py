"""Runs the tool calls of one model response."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from huddle.agent.tools.errors import is_tool_error, tool_error
from huddle.agent.tools.registry import ToolRegistry
from huddle.notify import Notifier
from huddle.providers.base import LLMResponse

if TYPE_CHECKING:
    from huddle.agent.context import TurnContext
    from huddle.personas import Persona


@dataclass(frozen=True)
class ToolInvocation:
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class ToolResult:
    id: str
    name: str
    result: dict[str, Any]

    @property
    def ok(self) -> bool:
        return not is_tool_error(self.result)

    def to_message(self) -> dict[str, Any]:
        """The tool-role message fed back to the model."""
        return {
            "role": "tool",
            "tool_call_id": self.id,
            "name": self.name,
            "content": json.dumps(self.result, ensure_ascii=False, default=str),
        }


class ToolDispatcher:
    """
    Executes a response's tool calls for one persona.

    Calls are looked up by exact name among the persona's toolsets. Unknown
    names are logged and produce no result. Any narrative text in the
    response is queued on the persona's push lane before the first tool
    runs, so it reaches the viewer ahead of their status lines; the
    calls run concurrently and the dispatcher waits for all of
    them. Each correlation id runs at most once.
    """

    def __init__(self, registry: ToolRegistry, notifier: Notifier):
        self.registry = registry
        self.notifier = notifier

    def invocations(self, response: LLMResponse, persona: Persona) -> list[ToolInvocation]:
        """Known, de-duplicated calls from ``response`` in their original order."""
        allowed = self.registry.tools_for(persona.toolsets)
        seen: set[str] = set()
        calls: list[ToolInvocation] = []
        for call in response.tool_calls:
            if call.name not in allowed:
                logger.warning(f"Tool {call.name} not found for {persona.name}")
                continue
            if call.id in seen:
                logger.warning(f"Duplicate tool call id {call.id} ignored")
                continue
            seen.add(call.id)
            calls.append(ToolInvocation(call.id, call.name, call.arguments))
        return calls

    async def dispatch(
        self,
        response: LLMResponse,
        persona: Persona,
        context: TurnContext,
    ) -> list[ToolResult]:
        if not response.has_tool_calls:
            return []
        context = context.for_persona(persona.name)
        narrative = (response.content or "").strip()
        if narrative:
            self.notifier.push_text_nowait(context.session_id, persona.name, narrative)

        calls = self.invocations(response, persona)
        if not calls:
            return []
        results = await asyncio.gather(*(self._run(call, context) for call in calls))
        for res in results:
            logger.info(f"Response from {res.name}: {json.dumps(res.result, default=str)[:500]}")
        return list(results)

    async def _run(self, call: ToolInvocation, context: TurnContext) -> ToolResult:
        if not isinstance(call.arguments, dict):
            return ToolResult(
                call.id, call.name, tool_error("InvalidInput", "Tool arguments must be a JSON object")
            )
        try:
            result = await self.registry.execute(call.name, dict(call.arguments), context=context)
        except Exception as e:
            logger.exception(f"Error executing {call.name}")
            result = tool_error("ToolExecutionError", str(e) or type(e).__name__)
        return ToolResult(call.id, call.name, result)
