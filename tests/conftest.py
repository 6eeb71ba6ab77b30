from __future__ import annotations

from pathlib import Path

import pytest

from fakes import OWNER, SENDER_WALLET, SESSION, FakeChain, RecordingSink, no_sleep
from huddle.agent.context import TurnContext
from huddle.agent.tools import ToolDeps
from huddle.config.schema import Config
from huddle.notify import Notifier
from huddle.storage import HuddleStore


@pytest.fixture
def store(tmp_path: Path) -> HuddleStore:
    return HuddleStore(tmp_path / "huddle.db", message_ttl=3600)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifier(sink: RecordingSink) -> Notifier:
    return Notifier(sink, timeout=1.0)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def deps(store: HuddleStore, notifier: Notifier, chain: FakeChain) -> ToolDeps:
    return ToolDeps(store=store, notifier=notifier, settings=Config(), chain=chain, sleep=no_sleep)


@pytest.fixture
def context() -> TurnContext:
    return TurnContext(
        session_id=SESSION,
        created_by=OWNER,
        sender=OWNER,
        persona="Harper",
        sender_wallet=SENDER_WALLET,
    )
