from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from fakes import RecordingSink, ScriptedProvider
from huddle.agent import PersonaAgent
from huddle.agent.tools import Tool, ToolDispatcher, ToolError, ToolRegistry, ToolResult
from huddle.notify import EMPTY_SENTINEL, Notifier
from huddle.personas import Persona
from huddle.providers.base import LLMResponse, ToolCallRequest

TRADER = Persona(name="Harper", description="", instructions="", toolsets=("trading",))


class _EchoTool(Tool):
    def __init__(self, name: str = "Echo_Tool", toolset: str = "trading", delay: float = 0.0, log: list | None = None):
        self._name = name
        self._toolset = toolset
        self.delay = delay
        self.log = log if log is not None else []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Echoes its input."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"value": {"type": "string"}},
            "required": ["value"],
        }

    @property
    def toolset(self) -> str:
        return self._toolset

    async def execute(self, value: str, **kwargs: Any) -> dict[str, Any]:
        self.log.append(("start", value))
        await asyncio.sleep(self.delay)
        self.log.append(("end", value))
        return {"echo": value, "persona": kwargs["context"].persona}


class _BoomTool(_EchoTool):
    async def execute(self, value: str, **kwargs: Any) -> dict[str, Any]:
        raise KeyError("missing field")


class _RefusingTool(_EchoTool):
    async def execute(self, value: str, **kwargs: Any) -> dict[str, Any]:
        raise ToolError("Nope", code="NOPE", details={"value": value})


def _call(call_id: str, name: str = "Echo_Tool", **arguments: Any) -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, arguments=arguments or {"value": call_id})


def _dispatcher(*tools: Tool) -> tuple[ToolDispatcher, RecordingSink]:
    registry = ToolRegistry()
    for tool in tools:
        registry.register(tool)
    sink = RecordingSink()
    return ToolDispatcher(registry, Notifier(sink)), sink


@pytest.mark.asyncio
@pytest.mark.parametrize("n", [1, 2, 5])
async def test_one_result_per_known_call(context, n: int) -> None:
    dispatcher, _ = _dispatcher(_EchoTool())
    response = LLMResponse(content=None, tool_calls=[_call(f"c{i}") for i in range(n)])

    results = await dispatcher.dispatch(response, TRADER, context)

    assert [r.id for r in results] == [f"c{i}" for i in range(n)]
    assert all(r.ok for r in results)
    assert results[0].result == {"echo": "c0", "persona": "Harper"}


@pytest.mark.asyncio
async def test_calls_run_concurrently(context) -> None:
    log: list = []
    dispatcher, _ = _dispatcher(_EchoTool(delay=0.05, log=log))
    response = LLMResponse(content=None, tool_calls=[_call("a"), _call("b"), _call("c")])

    results = await dispatcher.dispatch(response, TRADER, context)

    assert len(results) == 3
    starts = [i for i, (kind, _) in enumerate(log) if kind == "start"]
    # All three started before any finished.
    assert starts == [0, 1, 2]


@pytest.mark.asyncio
async def test_exceptions_become_structured_errors(context) -> None:
    dispatcher, _ = _dispatcher(
        _EchoTool(),
        _BoomTool(name="Boom_Tool"),
        _RefusingTool(name="Refuse_Tool"),
    )
    response = LLMResponse(
        content=None,
        tool_calls=[
            _call("ok"),
            _call("boom", name="Boom_Tool"),
            _call("no", name="Refuse_Tool"),
            ToolCallRequest(id="bad", name="Echo_Tool", arguments={}),
        ],
    )

    results = {r.id: r for r in await dispatcher.dispatch(response, TRADER, context)}

    assert results["ok"].ok
    boom = results["boom"].result
    assert boom["error"] == "ToolExecutionError"
    assert "missing field" in boom["message"]
    assert results["no"].result == {"error": "ToolError", "message": "Nope", "code": "NOPE", "details": {"value": "no"}}
    assert results["bad"].result["error"] == "InvalidInput"
    for r in results.values():
        assert set(r.result) >= ({"error", "message"} if not r.ok else {"echo"})


@pytest.mark.asyncio
async def test_unknown_tool_yields_no_result(context) -> None:
    dispatcher, _ = _dispatcher(_EchoTool(), _EchoTool(name="Tweet_Tool", toolset="twitter"))
    response = LLMResponse(
        content=None,
        tool_calls=[_call("a"), _call("b", name="Does_Not_Exist"), _call("c", name="Tweet_Tool")],
    )

    results = await dispatcher.dispatch(response, TRADER, context)

    # Tweet_Tool exists but is outside Harper's toolsets.
    assert [r.id for r in results] == ["a"]


@pytest.mark.asyncio
async def test_narrative_pushed_before_tools_run(context) -> None:
    class _Sink(RecordingSink):
        async def send_text(self, session_id: str, persona: str, text: str) -> None:
            # A slow viewer must not let tool lines overtake the narrative.
            if text.startswith("Buying"):
                await asyncio.sleep(0.05)
            await super().send_text(session_id, persona, text)

    sink = _Sink()
    notifier = Notifier(sink, timeout=1.0)

    class _Ordered(_EchoTool):
        async def execute(self, value: str, **kwargs: Any) -> dict[str, Any]:
            notifier.push_text_nowait(kwargs["context"].session_id, "Harper", f"tool:{value}")
            return {"echo": value}

    registry = ToolRegistry()
    registry.register(_Ordered())
    dispatcher = ToolDispatcher(registry, notifier)
    response = LLMResponse(content="  Buying now, one sec.  ", tool_calls=[_call("x"), _call("y")])

    results = await dispatcher.dispatch(response, TRADER, context)
    await notifier.drain()

    assert len(results) == 2
    lines = sink.lines()
    assert lines[0] == "Buying now, one sec."
    assert sorted(lines[1:]) == ["tool:x", "tool:y"]


@pytest.mark.asyncio
async def test_duplicate_ids_execute_once(context) -> None:
    log: list = []
    dispatcher, _ = _dispatcher(_EchoTool(log=log))
    response = LLMResponse(content=None, tool_calls=[_call("same"), _call("same")])

    results = await dispatcher.dispatch(response, TRADER, context)

    assert len(results) == 1
    assert log.count(("start", "same")) == 1


@pytest.mark.asyncio
async def test_no_tool_calls_pushes_nothing(context) -> None:
    dispatcher, sink = _dispatcher(_EchoTool())
    results = await dispatcher.dispatch(LLMResponse(content="just chatting"), TRADER, context)
    assert results == []
    assert sink.texts == []


def test_tool_result_message_shape() -> None:
    message = ToolResult("c1", "Echo_Tool", {"echo": "hi"}).to_message()
    assert message["role"] == "tool"
    assert message["tool_call_id"] == "c1"
    assert json.loads(message["content"]) == {"echo": "hi"}


def test_definitions_leave_out_unconfigured_tools() -> None:
    class _Offline(_EchoTool):
        def is_available(self) -> bool:
            return False

    registry = ToolRegistry()
    registry.register(_EchoTool())
    registry.register(_Offline(name="Offline_Tool"))
    registry.register(_EchoTool(name="Tweet_Tool", toolset="twitter"))

    names = [d["function"]["name"] for d in registry.get_definitions()]
    assert names == ["Echo_Tool", "Tweet_Tool"]
    scoped = [d["function"]["name"] for d in registry.get_definitions(TRADER.toolsets)]
    assert scoped == ["Echo_Tool"]


@pytest.mark.asyncio
async def test_agent_replays_only_answered_calls(context) -> None:
    registry = ToolRegistry()
    registry.register(_EchoTool())
    provider = ScriptedProvider(
        [
            LLMResponse(
                content="Checking.",
                tool_calls=[_call("a"), _call("ghost", name="Not_A_Tool"), _call("a")],
            ),
            LLMResponse(content="All done."),
        ]
    )
    agent = PersonaAgent(provider, ToolDispatcher(registry, Notifier(RecordingSink())))

    reply = await agent.respond(TRADER, [], "do the thing", context)

    assert reply == "All done."
    second = provider.calls[1]["messages"]
    assistant = second[-2]
    assert [c["id"] for c in assistant["tool_calls"]] == ["a"]
    assert second[-1]["role"] == "tool" and second[-1]["tool_call_id"] == "a"


@pytest.mark.asyncio
async def test_agent_drops_tools_after_round_limit(context) -> None:
    registry = ToolRegistry()
    registry.register(_EchoTool())
    persona = TRADER.model_copy(update={"max_tool_rounds": 1})
    provider = ScriptedProvider(
        [
            LLMResponse(content=None, tool_calls=[_call("a")]),
            LLMResponse(content="   "),
        ]
    )
    agent = PersonaAgent(provider, ToolDispatcher(registry, Notifier(RecordingSink())))

    reply = await agent.respond(persona, [], "again", context)

    assert provider.calls[0]["tools"] and provider.calls[1]["tools"] is None
    assert reply == EMPTY_SENTINEL
