from __future__ import annotations

import pytest

from fakes import FakeChain
from huddle.agent.tools.analytics import (
    SAMPLE_COUNT,
    AnalyticsTool,
    PricePoint,
    pair_price,
    summarize_prices,
)
from huddle.agent.tools.errors import InvalidInputError, ToolError

PAIR = "0x" + "99" * 20
TOKEN0 = "0x" + "a0" * 20
TOKEN1 = "0x" + "a1" * 20


class _PairChain(FakeChain):
    """Reserves grow by 10 token0 per sampled block."""

    async def call(self, address, abi, fn_name, *args, block=None):
        if fn_name == "token0":
            return TOKEN0
        if fn_name == "token1":
            return TOKEN1
        if fn_name == "getReserves":
            block = 10_000 if block is None else block
            return (1_000 + block // 15, 1_000, 0)
        return await super().call(address, abi, fn_name, *args, block=block)


def test_pair_price_adjusts_for_decimals() -> None:
    assert pair_price(2 * 10**6, 10**18, 6, 18) == 2.0
    assert pair_price(5, 0, 18, 18) == 0.0


def test_summarize_prices() -> None:
    points = [
        PricePoint(1, 2, 1.0, 100, 10),
        PricePoint(2, 4, 3.0, 130, 10),
        PricePoint(3, 6, 2.0, 120, 10),
    ]

    summary = summarize_prices(points)

    assert summary["recentHigh"] == 3.0 and summary["recentLow"] == 1.0
    assert summary["volatility"] == pytest.approx(200.0)
    assert summary["priceChange"] == pytest.approx(1.0)
    assert summary["priceChangePercent"] == pytest.approx(100.0)
    assert summary["averageReserveChange"] == pytest.approx(40 / 3)
    assert summary["fibonacciLevels"]["level_50"] == pytest.approx(2.0)
    assert summary["fibonacciLevels"]["level_100"] == 3.0
    assert summary["overallTrend"] == "Upward"
    assert summary["liquidityTrend"] == "Increasing"


def test_summarize_prices_rejects_empty_series() -> None:
    with pytest.raises(ValueError):
        summarize_prices([])


@pytest.mark.asyncio
async def test_analytics_samples_last_hour(deps, context) -> None:
    deps.chain = _PairChain()

    result = await AnalyticsTool(deps).execute(pairContractAddress=PAIR, context=context)

    history = result["priceHistory"]
    assert len(history) == SAMPLE_COUNT
    assert [h["timestamp"] for h in history] == sorted(h["timestamp"] for h in history)
    assert result["analytics"]["overallTrend"] == "Upward"
    assert result["pairInfo"]["token0"] == TOKEN0


@pytest.mark.asyncio
async def test_analytics_reports_missing_reserves(deps, context) -> None:
    with pytest.raises(ToolError) as exc:
        await AnalyticsTool(deps).execute(pairContractAddress=PAIR, context=context)
    assert exc.value.code == "PRICE_DATA_UNAVAILABLE"


@pytest.mark.asyncio
async def test_analytics_rejects_bad_address(deps, context) -> None:
    with pytest.raises(InvalidInputError):
        await AnalyticsTool(deps).execute(pairContractAddress="not-an-address", context=context)
