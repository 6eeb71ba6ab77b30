from __future__ import annotations

import asyncio

import pytest

from fakes import SESSION, FailingSink, HangingSink, RecordingSink
from huddle.notify import EMPTY_SENTINEL, GENERIC_FAILURE, EventName, NotificationEvent, NotificationSink, Notifier


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [EMPTY_SENTINEL, "", "   ", f"  {EMPTY_SENTINEL}\n"])
async def test_empty_replies_are_not_pushed(sink: RecordingSink, notifier: Notifier, text: str) -> None:
    assert await notifier.push_text(SESSION, "Eric", text) is False
    assert sink.texts == []


@pytest.mark.asyncio
async def test_push_text_strips_and_delivers(sink: RecordingSink, notifier: Notifier) -> None:
    assert await notifier.push_text(SESSION, "Eric", "  hold  ") is True
    assert sink.texts == [(SESSION, "Eric", "hold")]


@pytest.mark.asyncio
async def test_failures_are_swallowed() -> None:
    failing = FailingSink()
    notifier = Notifier(failing)

    assert await notifier.push_text(SESSION, "Eric", "hi") is False
    assert await notifier.emit(SESSION, "u1", "Rishi", EventName.WALLET_CREATED) is False
    assert failing.attempts == 2


@pytest.mark.asyncio
async def test_hung_viewer_times_out() -> None:
    notifier = Notifier(HangingSink(), timeout=0.01)
    assert await notifier.push_text(SESSION, "Eric", "hi") is False


@pytest.mark.asyncio
async def test_push_failure_sends_generic_line(sink: RecordingSink, notifier: Notifier) -> None:
    await notifier.push_failure(SESSION, "Yasmin")
    assert sink.texts == [(SESSION, "Yasmin", GENERIC_FAILURE)]


@pytest.mark.asyncio
async def test_emit_builds_event(sink: RecordingSink, notifier: Notifier) -> None:
    await notifier.emit(SESSION, "u1", "Harper", EventName.TRADE_EXECUTED, {"operation": "buy"})

    _, event = sink.events[0]
    payload = event.to_payload()
    assert payload["eventName"] == "trade_executed"
    assert payload["createdBy"] == "u1"
    assert payload["metadata"] == {"operation": "buy"}
    assert isinstance(payload["createdAt"], int)


@pytest.mark.asyncio
async def test_detached_pushes_drain(sink: RecordingSink, notifier: Notifier) -> None:
    notifier.push_text_nowait(SESSION, "Eric", "later")
    notifier.emit_nowait(SESSION, "u1", "Eric", EventName.TRADE_EXECUTED)
    await notifier.drain()
    assert sink.lines() == ["later"]
    assert sink.event_names() == [EventName.TRADE_EXECUTED.value]


@pytest.mark.asyncio
async def test_detached_lines_keep_their_order() -> None:
    class _SlowFirst(RecordingSink):
        async def send_text(self, session_id: str, persona: str, text: str) -> None:
            if text == "first":
                await asyncio.sleep(0.05)
            await super().send_text(session_id, persona, text)

    sink = _SlowFirst()
    notifier = Notifier(sink, timeout=1.0)

    for text in ("first", "second", "third"):
        notifier.push_text_nowait(SESSION, "Harper", text)
    await notifier.drain(SESSION)

    assert sink.lines() == ["first", "second", "third"]


@pytest.mark.asyncio
async def test_detached_push_returns_before_a_stalled_viewer() -> None:
    hanging = HangingSink()
    notifier = Notifier(hanging, timeout=0.2)

    task = notifier.push_text_nowait(SESSION, "Harper", "Waiting for transaction confirmation...")
    await asyncio.sleep(0)

    assert not task.done()
    await notifier.drain(SESSION)
    assert task.result() is False
    assert hanging.attempts == 1


@pytest.mark.asyncio
async def test_drain_only_waits_for_its_session() -> None:
    class _Split(NotificationSink):
        def __init__(self) -> None:
            self.delivered: list[str] = []

        async def send_text(self, session_id: str, persona: str, text: str) -> None:
            if session_id == "stuck":
                await asyncio.Event().wait()
            self.delivered.append(text)

        async def send_event(self, session_id: str, event: NotificationEvent) -> None:
            return None

    sink = _Split()
    notifier = Notifier(sink, timeout=0.3)
    stuck = notifier.push_text_nowait("stuck", "Eric", "never")
    notifier.push_text_nowait(SESSION, "Eric", "hello")

    await asyncio.wait_for(notifier.drain(SESSION), timeout=0.2)

    assert sink.delivered == ["hello"]
    assert not stuck.done()
    await notifier.drain()
