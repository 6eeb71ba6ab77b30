"""Price analytics for a Uniswap V2 pair, read from historical reserves."""

from dataclasses import dataclass
from typing import Any

from huddle.agent.tools.common import PersonaTool, schema
from huddle.agent.tools.errors import InvalidInputError, ToolError
from huddle.chain import ChainError, checksum
from huddle.chain.abi import ERC20_ABI, UNISWAP_V2_PAIR_ABI

SAMPLE_INTERVAL_SECONDS = 300
SAMPLE_COUNT = 12
BLOCK_TIME_SECONDS = 2  # Base produces a block every two seconds
FIB_RATIOS = {"level_23_6": 0.236, "level_38_2": 0.382, "level_50": 0.5, "level_61_8": 0.618}


@dataclass
class PricePoint:
    block: int
    timestamp: int
    price: float
    reserve0: int
    reserve1: int


def pair_price(reserve0: int, reserve1: int, decimals0: int, decimals1: int) -> float:
    """Price of token1 in units of token0, adjusted for decimals."""
    if reserve1 == 0:
        return 0.0
    return (reserve0 / 10**decimals0) / (reserve1 / 10**decimals1)


def summarize_prices(points: list[PricePoint]) -> dict[str, Any]:
    """
    Summary statistics over an ordered price series.

    Volatility is the high-low range as a percentage of the low. The
    liquidity trend compares average absolute reserve0 movement between
    samples.
    """
    if not points:
        raise ValueError("No price points to summarise")
    prices = [p.price for p in points]
    high, low = max(prices), min(prices)
    span = high - low
    change = prices[-1] - prices[0]
    change_pct = (change / prices[0] * 100) if prices[0] else 0.0
    volatility = (span / low * 100) if low else 0.0

    moves = [abs(b.reserve0 - a.reserve0) for a, b in zip(points, points[1:])]
    avg_reserve_change = sum(moves) / len(points)

    fib = {name: low + span * ratio for name, ratio in FIB_RATIOS.items()}
    fib["level_100"] = high
    return {
        "recentHigh": high,
        "recentLow": low,
        "volatility": volatility,
        "priceChange": change,
        "priceChangePercent": change_pct,
        "averageReserveChange": avg_reserve_change,
        "fibonacciLevels": fib,
        "overallTrend": "Upward" if change > 0 else "Downward",
        "liquidityTrend": "Increasing" if avg_reserve_change > 0 else "Decreasing",
    }


class AnalyticsTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Analytics_Tool"

    @property
    def description(self) -> str:
        return (
            "Analyses the last hour of price action for a Uniswap pair: highs, lows, "
            "volatility, change, Fibonacci levels and trends."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "pairContractAddress": {
                    "type": "string",
                    "description": "The contract address of the pair to analyse.",
                },
            },
            required=["pairContractAddress"],
        )

    @property
    def toolset(self) -> str:
        return "analytics"

    async def execute(self, pairContractAddress: str, **kwargs: Any) -> dict[str, Any]:
        chain = self.require_chain()
        try:
            pair = checksum(pairContractAddress)
        except ValueError as e:
            raise InvalidInputError(f"Not an address: {pairContractAddress}") from e

        try:
            token0 = await chain.call(pair, UNISWAP_V2_PAIR_ABI, "token0")
            token1 = await chain.call(pair, UNISWAP_V2_PAIR_ABI, "token1")
            decimals0 = int(await chain.call(token0, ERC20_ABI, "decimals"))
            decimals1 = int(await chain.call(token1, ERC20_ABI, "decimals"))

            head = await chain.block_number()
            step = SAMPLE_INTERVAL_SECONDS // BLOCK_TIME_SECONDS
            points: list[PricePoint] = []
            for i in range(SAMPLE_COUNT):
                block = head - step * (SAMPLE_COUNT - i)
                if block < 0:
                    continue
                r0, r1, _ = await chain.call(pair, UNISWAP_V2_PAIR_ABI, "getReserves", block=block)
                ts = await chain.block_timestamp(block)
                points.append(PricePoint(block, ts, pair_price(r0, r1, decimals0, decimals1), r0, r1))
            r0, r1, _ = await chain.call(pair, UNISWAP_V2_PAIR_ABI, "getReserves")
        except ChainError as e:
            raise ToolError("Failed to fetch price data", code="PRICE_DATA_UNAVAILABLE", details={"reason": str(e)}) from e

        if not points:
            raise ToolError("Pair has no price history yet", code="PRICE_DATA_UNAVAILABLE")
        return {
            "currentPrice": pair_price(r0, r1, decimals0, decimals1),
            "priceHistory": [
                {"timestamp": p.timestamp, "price": p.price, "reserve0": str(p.reserve0), "reserve1": str(p.reserve1)}
                for p in points
            ],
            "analytics": summarize_prices(points),
            "pairInfo": {"token0": token0, "token1": token1, "pairAddress": pair},
        }
