"""Uniswap V2 pool creation through ``addLiquidityETH``."""

import time
from typing import Any

from loguru import logger

from huddle.agent.tools.common import PersonaTool, parse_amount, schema
from huddle.agent.tools.errors import InsufficientFundsError, InvalidInputError
from huddle.chain import checksum
from huddle.chain.abi import ERC20_ABI, UNISWAP_V2_FACTORY_ABI, UNISWAP_V2_ROUTER_ABI
from huddle.chain.units import apply_bps_floor
from huddle.notify import EventName

LIQUIDITY_FLOOR_BPS = 9_900  # Accept no less than 99% of either side
LIQUIDITY_DEADLINE_SECONDS = 600


class CreateUniswapPoolTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Create_Uniswap_Pool_Tool"

    @property
    def description(self) -> str:
        return (
            "Creates a Uniswap pool for an ERC20 token paired with ETH and adds the "
            "given amounts as liquidity. Returns the pool address."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "erc20TokenAddress": {
                    "type": "string",
                    "description": "The token to create the pool for (usually one Rishi deployed).",
                },
                "amountTokenDesiredInWei": {
                    "type": "string",
                    "description": "Token liquidity in base units.",
                },
                "amountEtherDesiredInWei": {
                    "type": "string",
                    "description": "ETH liquidity in wei.",
                },
            },
            required=["erc20TokenAddress", "amountTokenDesiredInWei", "amountEtherDesiredInWei"],
        )

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(
        self,
        erc20TokenAddress: str,
        amountTokenDesiredInWei: str,
        amountEtherDesiredInWei: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        ident = self.identity(kwargs)
        chain = self.require_chain()
        token_amount = parse_amount(amountTokenDesiredInWei, "amountTokenDesiredInWei")
        eth_amount = parse_amount(amountEtherDesiredInWei, "amountEtherDesiredInWei")
        if token_amount == 0 or eth_amount == 0:
            raise InvalidInputError("Both liquidity amounts must be greater than zero")

        wallet = await self.wallet_for(ident)
        cfg = self.deps.settings.chain
        token = checksum(erc20TokenAddress)
        router = checksum(cfg.uniswap_router_address)
        me = checksum(wallet.address)

        eth_balance = await chain.get_balance(me)
        if eth_balance < eth_amount:
            raise InsufficientFundsError("Not enough ETH to add liquidity.", eth_amount, eth_balance)
        token_balance = await chain.call(token, ERC20_ABI, "balanceOf", me)
        if token_balance < token_amount:
            raise InsufficientFundsError(
                f"Insufficient token balance. Have {token_balance} wei, need {token_amount} wei",
                token_amount,
                token_balance,
                asset=token,
            )

        allowance = await chain.call(token, ERC20_ABI, "allowance", me, router)
        if allowance < token_amount:
            approve_hash = await chain.transact(
                wallet.private_key, token, ERC20_ABI, "approve", router, token_amount
            )
            await self.say(
                ident,
                "I've initiated the approval for the tokens. Waiting for the transaction to be confirmed...",
            )
            await self.confirm(approve_hash)
            await self.say(
                ident, "Great! The tokens are approved. Now creating the Uniswap pool and adding liquidity..."
            )
        else:
            logger.debug(f"Router allowance for {token} already covers {token_amount}")

        deadline = int(time.time()) + LIQUIDITY_DEADLINE_SECONDS
        tx_hash = await chain.transact(
            wallet.private_key,
            router,
            UNISWAP_V2_ROUTER_ABI,
            "addLiquidityETH",
            token,
            token_amount,
            apply_bps_floor(token_amount, LIQUIDITY_FLOOR_BPS),
            apply_bps_floor(eth_amount, LIQUIDITY_FLOOR_BPS),
            me,
            deadline,
            value=eth_amount,
        )
        await self.say(ident, "Liquidity provision transaction submitted! Waiting for confirmation...")
        await self.confirm(tx_hash)

        pool = await chain.call(
            cfg.uniswap_factory_address, UNISWAP_V2_FACTORY_ABI, "getPair", token, checksum(cfg.weth_address)
        )
        pool = checksum(pool)
        logger.info(f"Pool {pool} ready for {token}")

        metadata = {"tokenAddress": token, "poolAddress": pool.lower(), "transactionHash": tx_hash}
        await self.record(ident, EventName.UNISWAP_POOL_CREATED.value, metadata)
        await self.announce(ident, EventName.UNISWAP_POOL_CREATED, metadata)
        return {
            "status": "success",
            "transactionHash": tx_hash,
            "uniswapPoolAddress": pool,
            "erc20TokenAddress": token,
        }
