from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio

from fakes import TOKEN, FailingSink, HangingSink, make_wallet
from huddle.agent.tools import ToolRegistry
from huddle.agent.tools.errors import InsufficientFundsError, InvalidInputError
from huddle.agent.tools.trading import TradingTool
from huddle.chain.units import apply_bps_floor, parse_wei
from huddle.notify import EventName, Notifier

ADDRESS = "0x" + "12" * 20


@pytest_asyncio.fixture
async def trader(deps) -> TradingTool:
    await make_wallet(deps.store, "Harper", ADDRESS)
    return TradingTool(deps)


def _router(deps) -> str:
    return deps.settings.chain.uniswap_router_address.lower()


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["buy", "sell"])
async def test_zero_balance_fails_before_signing(trader, context, chain, action) -> None:
    with pytest.raises(InsufficientFundsError) as exc:
        await trader.execute(tokenContractAddress=TOKEN, action=action, amountInWei="1000", context=context)

    assert exc.value.to_dict()["details"]["available"] == "0"
    assert chain.submitted == []


@pytest.mark.asyncio
async def test_buy_applies_slippage_floor(trader, context, chain, sink) -> None:
    chain.balances[ADDRESS.lower()] = 10**18
    chain.amounts_out = 20_000

    result = await trader.execute(
        tokenContractAddress=TOKEN, action="buy", amountInWei="5000", slippageBps=100, context=context
    )
    await trader.deps.notifier.drain()

    name, _, args, value = chain.submitted[0]
    assert name == "swapExactETHForTokens"
    assert value == 5000
    assert args[0] == 19_800
    assert result["minAmountOut"] == "19800"
    assert result["status"] == "success"
    assert sink.event_names() == [EventName.TRADE_EXECUTED.value]


@pytest.mark.asyncio
async def test_sell_skips_approve_when_allowance_suffices(trader, deps, context, chain, sink) -> None:
    chain.token_balances[(TOKEN.lower(), ADDRESS.lower())] = 10_000
    chain.allowances[(TOKEN.lower(), ADDRESS.lower(), _router(deps))] = 10_000

    await trader.execute(tokenContractAddress=TOKEN, action="sell", amountInWei="10000", context=context)
    await trader.deps.notifier.drain()

    assert chain.submitted_names() == ["swapExactTokensForETH"]
    assert "Approving tokens for swap..." not in sink.lines()


@pytest.mark.asyncio
async def test_sell_approves_exact_amount_when_allowance_short(trader, deps, context, chain) -> None:
    chain.token_balances[(TOKEN.lower(), ADDRESS.lower())] = 10_000
    chain.allowances[(TOKEN.lower(), ADDRESS.lower(), _router(deps))] = 10

    await trader.execute(tokenContractAddress=TOKEN, action="sell", amountInWei="4000", context=context)

    assert chain.submitted_names() == ["approve", "swapExactTokensForETH"]
    _, _, approve_args, _ = chain.submitted[0]
    assert approve_args[1] == 4000


@pytest.mark.asyncio
async def test_trade_succeeds_when_viewer_is_gone(deps, context, chain) -> None:
    failing = FailingSink()
    deps.notifier = Notifier(failing, timeout=1.0)
    await make_wallet(deps.store, "Harper", ADDRESS)
    chain.balances[ADDRESS.lower()] = 10**18

    result = await TradingTool(deps).execute(tokenContractAddress=TOKEN, action="buy", amountInWei="1", context=context)
    await deps.notifier.drain()

    assert result["status"] == "success"
    assert failing.attempts >= 2  # status line and trade event


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"action": "hold", "amountInWei": "1"},
        {"action": "buy", "amountInWei": "0"},
        {"action": "buy", "amountInWei": "abc"},
        {"action": "buy", "amountInWei": "1.9"},
        {"action": "buy", "amountInWei": "Infinity"},
        {"action": "buy", "amountInWei": "NaN"},
        {"action": "buy", "amountInWei": "-1"},
        {"action": "buy", "amountInWei": "1", "slippageBps": 10_000},
    ],
)
async def test_invalid_input(trader, context, chain, kwargs) -> None:
    with pytest.raises(InvalidInputError):
        await trader.execute(tokenContractAddress=TOKEN, context=context, **kwargs)
    assert chain.submitted == []


def test_bps_floor_rounds_down() -> None:
    assert apply_bps_floor(1_000, 9_900) == 990
    assert apply_bps_floor(999, 9_900) == 989
    assert apply_bps_floor(0, 9_900) == 0


@pytest.mark.parametrize("value,expected", [("1000", 1000), ("1e3", 1000), ("0x10", 16), (7, 7), ("", 0)])
def test_parse_wei_accepts_whole_amounts(value, expected) -> None:
    assert parse_wei(value) == expected


@pytest.mark.parametrize("value", ["1.9", "0.5", "Infinity", "-Infinity", "NaN", "ten"])
def test_parse_wei_rejects_fractions_and_non_finite(value) -> None:
    with pytest.raises(ValueError):
        parse_wei(value)


@pytest.mark.asyncio
async def test_trade_is_not_held_up_by_a_stalled_viewer(deps, context, chain) -> None:
    hanging = HangingSink()
    deps.notifier = Notifier(hanging, timeout=0.5)
    await make_wallet(deps.store, "Harper", ADDRESS)
    chain.balances[ADDRESS.lower()] = 10**18

    result = await asyncio.wait_for(
        TradingTool(deps).execute(tokenContractAddress=TOKEN, action="buy", amountInWei="1", context=context),
        timeout=0.25,
    )

    assert result["status"] == "success"
    assert chain.submitted_names() == ["swapExactETHForTokens"]
    await deps.notifier.drain()
    assert hanging.attempts >= 2


@pytest.mark.asyncio
async def test_registry_returns_insufficient_funds_as_data(deps, context, chain) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    registry = ToolRegistry()
    registry.register(TradingTool(deps))

    result = await registry.execute(
        "Trading_Tool",
        {"tokenContractAddress": TOKEN, "action": "buy", "amountInWei": "1000"},
        context=context,
    )

    assert result["error"] == "InsufficientFunds"
    assert result["code"] == "INSUFFICIENT_FUNDS"
    assert result["details"] == {"required": "1000", "available": "0", "asset": "ETH"}
    assert chain.submitted == []
