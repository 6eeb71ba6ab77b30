"""EVM access for the tools.

web3's HTTP provider is synchronous, so every RPC call runs in the
default executor to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import functools
import time
import weakref
from typing import Any, Callable

from eth_account import Account
from loguru import logger
from web3 import Web3

from huddle.chain.errors import ChainError, ConfirmationTimeout, TransactionReverted

_GAS_HEADROOM = 1.2


def new_keypair() -> tuple[str, str]:
    """Generate a fresh ``(address, private_key_hex)`` pair."""
    account = Account.create()
    return account.address, Web3.to_hex(account.key)


def checksum(address: str) -> str:
    return Web3.to_checksum_address(address)


def namehash(name: str) -> bytes:
    """ENS-style node hash for a lower-cased name such as ``harper-x.base.eth``."""
    node = b"\x00" * 32
    if name:
        for label in reversed(name.lower().split(".")):
            node = bytes(Web3.keccak(node + bytes(Web3.keccak(text=label))))
    return node


class ChainClient:
    """Signs and submits transactions, reads contract state, waits for confirmations."""

    def __init__(
        self,
        rpc_url: str,
        chain_id: int | None = None,
        confirmations: int = 2,
        receipt_timeout: float = 300.0,
        poll_interval: float = 2.0,
        web3: Web3 | None = None,
    ):
        self.rpc_url = rpc_url
        self.w3 = web3 or Web3(Web3.HTTPProvider(rpc_url))
        self._chain_id = chain_id
        self.confirmations = max(1, confirmations)
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        # One in-flight submission per sender keeps nonces sequential.
        self._nonce_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    async def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
        except ChainError:
            raise
        except Exception as e:
            raise ChainError(str(e)) from e

    def contract(self, address: str | None, abi: list[dict]) -> Any:
        if address is None:
            return self.w3.eth.contract(abi=abi)
        return self.w3.eth.contract(address=checksum(address), abi=abi)

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._run(lambda: self.w3.eth.chain_id)
        return self._chain_id

    async def get_balance(self, address: str) -> int:
        return await self._run(self.w3.eth.get_balance, checksum(address))

    async def gas_price(self) -> int:
        return await self._run(lambda: self.w3.eth.gas_price)

    async def block_number(self) -> int:
        return await self._run(lambda: self.w3.eth.block_number)

    async def block_timestamp(self, block: int) -> int:
        data = await self._run(self.w3.eth.get_block, block)
        return int(data["timestamp"])

    async def call(
        self,
        address: str,
        abi: list[dict],
        fn_name: str,
        *args: Any,
        block: int | str | None = None,
    ) -> Any:
        """Read-only contract call."""
        fn = self.contract(address, abi).get_function_by_name(fn_name)(*args)
        if block is None:
            return await self._run(fn.call)
        return await self._run(fn.call, block_identifier=block)

    def encode_call(self, address: str | None, abi: list[dict], fn_name: str, *args: Any) -> str:
        """ABI-encode a call without sending it (for multicall-style setup data)."""
        return self.contract(address, abi).encode_abi(fn_name, args=list(args))

    async def simulate(
        self,
        sender: str,
        address: str,
        abi: list[dict],
        fn_name: str,
        *args: Any,
        value: int = 0,
    ) -> Any:
        """Dry-run a state-changing call from ``sender`` and return its output."""
        fn = self.contract(address, abi).get_function_by_name(fn_name)(*args)
        return await self._run(fn.call, {"from": checksum(sender), "value": value})

    async def _submit(self, private_key: str, tx: dict[str, Any]) -> str:
        account = Account.from_key(private_key)
        lock = self._nonce_locks.setdefault(account.address, asyncio.Lock())
        async with lock:
            tx = dict(tx)
            tx.setdefault("from", account.address)
            tx["chainId"] = await self.chain_id()
            tx["nonce"] = await self._run(
                self.w3.eth.get_transaction_count, account.address, "pending"
            )
            if "gasPrice" not in tx and "maxFeePerGas" not in tx:
                tx["gasPrice"] = await self.gas_price()
            if "gas" not in tx:
                estimate = await self._run(self.w3.eth.estimate_gas, tx)
                tx["gas"] = int(estimate * _GAS_HEADROOM)
            signed = account.sign_transaction(tx)
            tx_hash = await self._run(self.w3.eth.send_raw_transaction, signed.raw_transaction)
        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"Submitted {tx_hex} from {account.address}")
        return tx_hex

    async def transact(
        self,
        private_key: str,
        address: str,
        abi: list[dict],
        fn_name: str,
        *args: Any,
        value: int = 0,
        gas: int | None = None,
    ) -> str:
        """Sign and submit a contract call. Returns the transaction hash."""
        sender = Account.from_key(private_key).address
        fn = self.contract(address, abi).get_function_by_name(fn_name)(*args)
        params: dict[str, Any] = {"from": sender, "value": value}
        if gas is not None:
            params["gas"] = gas
        tx = await self._run(fn.build_transaction, params)
        if gas is None and "gas" in tx:
            tx["gas"] = int(tx["gas"] * _GAS_HEADROOM)
        for key in ("nonce", "maxFeePerGas", "maxPriorityFeePerGas"):
            tx.pop(key, None)
        return await self._submit(private_key, tx)

    async def send_eth(self, private_key: str, to: str, value: int, gas: int = 21_000) -> str:
        return await self._submit(private_key, {"to": checksum(to), "value": value, "gas": gas})

    async def deploy(self, private_key: str, abi: list[dict], bytecode: str, *args: Any) -> str:
        sender = Account.from_key(private_key).address
        factory = self.w3.eth.contract(abi=abi, bytecode=bytecode)
        tx = await self._run(factory.constructor(*args).build_transaction, {"from": sender})
        if "gas" in tx:
            tx["gas"] = int(tx["gas"] * _GAS_HEADROOM)
        for key in ("nonce", "maxFeePerGas", "maxPriorityFeePerGas"):
            tx.pop(key, None)
        return await self._submit(private_key, tx)

    async def wait_for_receipt(
        self,
        tx_hash: str,
        confirmations: int | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Wait until ``tx_hash`` is mined and buried under ``confirmations`` blocks.

        Raises:
            TransactionReverted: mined with status 0.
            ConfirmationTimeout: not confirmed before ``timeout`` seconds.
        """
        confirmations = confirmations or self.confirmations
        timeout = timeout or self.receipt_timeout
        deadline = time.monotonic() + timeout
        try:
            receipt = await self._run(
                self.w3.eth.wait_for_transaction_receipt,
                tx_hash,
                timeout=timeout,
                poll_latency=self.poll_interval,
            )
        except ChainError as e:
            if "not in the chain" in str(e).lower() or "timed out" in str(e).lower():
                raise ConfirmationTimeout(tx_hash, timeout) from e
            raise
        if receipt["status"] != 1:
            raise TransactionReverted(tx_hash)

        mined_in = int(receipt["blockNumber"])
        while True:
            head = await self.block_number()
            if head - mined_in + 1 >= confirmations:
                break
            if time.monotonic() >= deadline:
                raise ConfirmationTimeout(tx_hash, timeout)
            await asyncio.sleep(self.poll_interval)

        logger.info(f"{tx_hash} confirmed in block {mined_in} ({confirmations} confirmations)")
        return dict(receipt)
