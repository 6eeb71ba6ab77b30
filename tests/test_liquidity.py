from __future__ import annotations

import pytest

from fakes import TOKEN, make_wallet
from huddle.agent.tools.errors import InsufficientFundsError
from huddle.agent.tools.liquidity import CreateUniswapPoolTool
from huddle.chain import checksum
from huddle.notify import EventName

ADDRESS = "0x" + "12" * 20


def _fund(chain, deps, tokens: int, eth: int, allowance: int = 0) -> None:
    chain.balances[ADDRESS.lower()] = eth
    chain.token_balances[(TOKEN.lower(), ADDRESS.lower())] = tokens
    router = deps.settings.chain.uniswap_router_address.lower()
    chain.allowances[(TOKEN.lower(), ADDRESS.lower(), router)] = allowance


@pytest.mark.asyncio
async def test_pool_uses_99_percent_floors(deps, context, chain, sink) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    _fund(chain, deps, tokens=10**24, eth=10**18)

    result = await CreateUniswapPoolTool(deps).execute(
        erc20TokenAddress=TOKEN,
        amountTokenDesiredInWei="1000000",
        amountEtherDesiredInWei="50000",
        context=context,
    )
    await deps.notifier.drain()

    assert chain.submitted_names() == ["approve", "addLiquidityETH"]
    _, _, approve_args, _ = chain.submitted[0]
    assert approve_args[1] == 1_000_000
    _, _, args, value = chain.submitted[1]
    token, desired, token_min, eth_min, to, _deadline = args
    assert (token, desired, token_min, eth_min) == (checksum(TOKEN), 1_000_000, 990_000, 49_500)
    assert to == checksum(ADDRESS)
    assert value == 50_000
    assert result["uniswapPoolAddress"] == checksum(chain.pair_address)
    assert sink.event_names() == [EventName.UNISWAP_POOL_CREATED.value]


@pytest.mark.asyncio
async def test_pool_skips_approve_when_allowance_covers(deps, context, chain, sink) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    _fund(chain, deps, tokens=10**24, eth=10**18, allowance=10**24)

    await CreateUniswapPoolTool(deps).execute(
        erc20TokenAddress=TOKEN,
        amountTokenDesiredInWei="1000",
        amountEtherDesiredInWei="1000",
        context=context,
    )
    await deps.notifier.drain()

    assert chain.submitted_names() == ["addLiquidityETH"]
    assert not any("approval" in line for line in sink.lines())


@pytest.mark.asyncio
async def test_pool_records_event(deps, context, chain) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    _fund(chain, deps, tokens=10**24, eth=10**18, allowance=10**24)

    await CreateUniswapPoolTool(deps).execute(
        erc20TokenAddress=TOKEN, amountTokenDesiredInWei="10", amountEtherDesiredInWei="10", context=context
    )

    records = await deps.store.events(context.session_id, EventName.UNISWAP_POOL_CREATED.value)
    assert records[0].data["poolAddress"] == chain.pair_address


@pytest.mark.asyncio
@pytest.mark.parametrize("tokens,eth", [(10**24, 0), (0, 10**18)])
async def test_pool_checks_both_balances_first(deps, context, chain, tokens, eth) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    _fund(chain, deps, tokens=tokens, eth=eth)

    with pytest.raises(InsufficientFundsError):
        await CreateUniswapPoolTool(deps).execute(
            erc20TokenAddress=TOKEN,
            amountTokenDesiredInWei="1000",
            amountEtherDesiredInWei="1000",
            context=context,
        )
    assert chain.submitted == []
