"""Token swaps against the Uniswap V2 router."""

import time
from typing import Any

from loguru import logger

from huddle.agent.tools.common import PersonaTool, parse_amount, schema
from huddle.agent.tools.errors import InsufficientFundsError, InvalidInputError
from huddle.chain import checksum
from huddle.chain.abi import ERC20_ABI, UNISWAP_V2_ROUTER_ABI
from huddle.chain.units import apply_bps_floor
from huddle.notify import EventName

SWAP_GAS = 300_000
SWAP_DEADLINE_SECONDS = 600
DEFAULT_SLIPPAGE_BPS = 50


class TradingTool(PersonaTool):
    """
    Buy a token with ETH or sell it back for ETH.

    Balances are checked before anything is signed; a sell approves the
    router only when the current allowance is short. The minimum output
    is the router's quote less the slippage allowance.
    """

    @property
    def name(self) -> str:
        return "Trading_Tool"

    @property
    def description(self) -> str:
        return (
            "Executes a trade for an ERC20 token. 'buy' spends amountInWei of ETH; "
            "'sell' sells amountInWei base units of the token for ETH."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "tokenContractAddress": {
                    "type": "string",
                    "description": "Contract address of the ERC20 token to trade.",
                },
                "action": {"type": "string", "enum": ["buy", "sell"], "description": "buy or sell."},
                "amountInWei": {
                    "type": "string",
                    "description": "ETH to spend when buying, token base units when selling.",
                },
                "slippageBps": {
                    "type": "integer",
                    "description": "Allowed slippage in basis points (default 50 = 0.5%).",
                },
            },
            required=["tokenContractAddress", "action", "amountInWei"],
        )

    @property
    def toolset(self) -> str:
        return "trading"

    async def execute(
        self,
        tokenContractAddress: str,
        action: str,
        amountInWei: str,
        slippageBps: int = DEFAULT_SLIPPAGE_BPS,
        **kwargs: Any,
    ) -> dict[str, Any]:
        ident = self.identity(kwargs)
        chain = self.require_chain()
        action = action.strip().lower()
        if action not in ("buy", "sell"):
            raise InvalidInputError(f"Unknown action '{action}', expected buy or sell")
        if not 0 <= slippageBps < 10_000:
            raise InvalidInputError("slippageBps must be between 0 and 9999")
        amount = parse_amount(amountInWei, "amountInWei")
        if amount == 0:
            raise InvalidInputError("amountInWei must be greater than zero")

        wallet = await self.wallet_for(ident)
        cfg = self.deps.settings.chain
        router = cfg.uniswap_router_address
        weth = checksum(cfg.weth_address)
        token = checksum(tokenContractAddress)
        me = checksum(wallet.address)
        deadline = int(time.time()) + SWAP_DEADLINE_SECONDS

        if action == "buy":
            balance = await chain.get_balance(me)
            if balance < amount:
                raise InsufficientFundsError(
                    "Not enough ETH to execute trade. Need some ETH.", amount, balance
                )
            path = [weth, token]
            quote = await chain.call(router, UNISWAP_V2_ROUTER_ABI, "getAmountsOut", amount, path)
            min_out = apply_bps_floor(quote[-1], 10_000 - slippageBps)
            tx_hash = await chain.transact(
                wallet.private_key,
                router,
                UNISWAP_V2_ROUTER_ABI,
                "swapExactETHForTokens",
                min_out,
                path,
                me,
                deadline,
                value=amount,
                gas=SWAP_GAS,
            )
        else:
            balance = await chain.call(token, ERC20_ABI, "balanceOf", me)
            if balance < amount:
                raise InsufficientFundsError(
                    "Not enough tokens to execute trade.", amount, balance, asset=token
                )
            allowance = await chain.call(token, ERC20_ABI, "allowance", me, checksum(router))
            if allowance < amount:
                await self.say(ident, "Approving tokens for swap...")
                approve_hash = await chain.transact(
                    wallet.private_key, token, ERC20_ABI, "approve", checksum(router), amount
                )
                await self.confirm(approve_hash)
            else:
                logger.debug("Token allowance sufficient, skipping approval")
            path = [token, weth]
            quote = await chain.call(router, UNISWAP_V2_ROUTER_ABI, "getAmountsOut", amount, path)
            min_out = apply_bps_floor(quote[-1], 10_000 - slippageBps)
            tx_hash = await chain.transact(
                wallet.private_key,
                router,
                UNISWAP_V2_ROUTER_ABI,
                "swapExactTokensForETH",
                amount,
                min_out,
                path,
                me,
                deadline,
                gas=SWAP_GAS,
            )

        await self.say(ident, "Waiting for transaction confirmation...")
        await self.confirm(tx_hash)
        logger.info(f"{ident.character_id} {action} of {token} confirmed: {tx_hash}")
        await self.announce(
            ident,
            EventName.TRADE_EXECUTED,
            {"tokenAddress": token, "amount": str(amount), "operation": action},
        )
        return {
            "status": "success",
            "operation": action,
            "transactionHash": tx_hash,
            "amount": str(amount),
            "minAmountOut": str(min_out),
            "tokenAddress": token,
        }
