"""Wallet tools: persona wallets, balances, transfers, funding and basenames."""

from typing import Any

from loguru import logger

from huddle.agent.tools.common import PersonaTool, parse_amount, schema
from huddle.agent.tools.errors import InsufficientFundsError, InvalidInputError
from huddle.chain import checksum, namehash
from huddle.chain.abi import BASENAME_REGISTRAR_ABI, BASENAME_RESOLVER_ABI, ERC20_ABI
from huddle.chain.units import format_units, to_base_units
from huddle.notify import EventName

ETH_TRANSFER_GAS = 21_000
TOKEN_TRANSFER_GAS = 100_000
BASENAME_PRICE_WEI = 2 * 10**15  # 0.002 ETH
BASENAME_DURATION = 31_557_600  # One year in seconds


def _hex_bytes(data: str) -> bytes:
    return bytes.fromhex(data.removeprefix("0x"))


class CreateWalletTool(PersonaTool):
    """Create a persona wallet, or return the existing one."""

    @property
    def name(self) -> str:
        return "Create_Wallet_Tool"

    @property
    def description(self) -> str:
        return (
            "Creates a wallet for the given character if it does not have one yet "
            "and returns its address. Calling it again returns the same wallet."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema({})

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        wallet, created = await self.deps.store.create_wallet_if_absent(
            ident.created_by, ident.character_id, self.deps.keygen
        )
        if created:
            await self.announce(ident, EventName.WALLET_CREATED, {"walletAddress": wallet.address})
        return {"wallet_data": wallet.address, "created": created}


class GetWalletTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Get_Wallet_Tool"

    @property
    def description(self) -> str:
        return "Gets the wallet address (and basename, if any) of the given character."

    @property
    def parameters(self) -> dict[str, Any]:
        return schema({})

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        wallet = await self.wallet_for(ident)
        result: dict[str, Any] = {"walletAddress": wallet.address}
        if wallet.basename:
            result["basename"] = wallet.basename
        return result


class GetEthBalanceTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Get_ETH_Balance_Tool"

    @property
    def description(self) -> str:
        return (
            "Gets the ETH balance of the character's wallet, or of walletAddress "
            "when one is given."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema({
            "walletAddress": {
                "type": "string",
                "description": "Address to check instead of the character's own wallet.",
            },
        })

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, walletAddress: str | None = None, **kwargs: Any) -> dict[str, Any]:
        chain = self.require_chain()
        if walletAddress:
            address = checksum(walletAddress)
        else:
            address = (await self.wallet_for(self.identity(kwargs))).address
        balance = await chain.get_balance(address)
        return {
            "walletAddress": address,
            "balanceWei": str(balance),
            "balanceEth": format_units(balance),
        }


class GetTokenBalanceTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Get_Token_Balance_Tool"

    @property
    def description(self) -> str:
        return "Gets the ERC20 token balance of the character's wallet given a token address."

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "tokenAddress": {
                    "type": "string",
                    "description": "Contract address of the ERC20 token.",
                },
            },
            required=["tokenAddress"],
        )

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, tokenAddress: str, **kwargs: Any) -> dict[str, Any]:
        chain = self.require_chain()
        wallet = await self.wallet_for(self.identity(kwargs))
        balance = await chain.call(tokenAddress, ERC20_ABI, "balanceOf", checksum(wallet.address))
        decimals = await chain.call(tokenAddress, ERC20_ABI, "decimals")
        symbol = await chain.call(tokenAddress, ERC20_ABI, "symbol")
        return {
            "tokenAddress": checksum(tokenAddress),
            "symbol": symbol,
            "decimals": int(decimals),
            "balance": str(balance),
            "formatted": format_units(balance, int(decimals)),
        }


class TransferEthTool(PersonaTool):
    """Send ETH after checking the balance covers amount plus gas."""

    @property
    def name(self) -> str:
        return "Transfer_ETH_Tool"

    @property
    def description(self) -> str:
        return "Transfers ETH from the character's wallet to another address."

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "toAddress": {"type": "string", "description": "Recipient address."},
                "amountInWei": {"type": "string", "description": "Amount of ETH to send, in wei."},
            },
            required=["toAddress", "amountInWei"],
        )

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, toAddress: str, amountInWei: str, **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        chain = self.require_chain()
        amount = parse_amount(amountInWei, "amountInWei")
        wallet = await self.wallet_for(ident)

        balance = await chain.get_balance(wallet.address)
        if balance < amount:
            raise InsufficientFundsError("Insufficient funds, cannot transfer.", amount, balance)
        gas_price = await chain.gas_price()
        total = amount + ETH_TRANSFER_GAS * gas_price
        if balance < total:
            raise InsufficientFundsError("Insufficient funds to cover gas costs.", total, balance)

        tx_hash = await chain.send_eth(wallet.private_key, toAddress, amount, gas=ETH_TRANSFER_GAS)
        await self.say(ident, "Waiting for transaction confirmation...")
        receipt = await self.confirm(tx_hash)
        logger.info(f"{ident.character_id} sent {amount} wei to {toAddress}")
        return {
            "message": f"Sent {format_units(amount)} ETH to {checksum(toAddress)}",
            "transactionHash": tx_hash,
            "gasUsed": str(receipt.get("gasUsed", "")),
        }


class TransferTokenTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Transfer_Token_Tool"

    @property
    def description(self) -> str:
        return (
            "Transfers ERC20 tokens from the character's wallet. The amount is in "
            "whole tokens (e.g. '1.5'), not base units."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "tokenAddress": {"type": "string", "description": "ERC20 token contract address."},
                "toAddress": {"type": "string", "description": "Recipient address."},
                "amount": {"type": "string", "description": "Number of tokens to send."},
            },
            required=["tokenAddress", "toAddress", "amount"],
        )

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, tokenAddress: str, toAddress: str, amount: str, **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        chain = self.require_chain()
        wallet = await self.wallet_for(ident)

        decimals = int(await chain.call(tokenAddress, ERC20_ABI, "decimals"))
        try:
            raw = to_base_units(amount, decimals)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e
        balance = await chain.call(tokenAddress, ERC20_ABI, "balanceOf", checksum(wallet.address))
        if balance < raw:
            raise InsufficientFundsError(
                f"Insufficient balance. Have {format_units(balance, decimals)}, need {amount}",
                raw,
                balance,
                asset=checksum(tokenAddress),
            )

        tx_hash = await chain.transact(
            wallet.private_key,
            tokenAddress,
            ERC20_ABI,
            "transfer",
            checksum(toAddress),
            raw,
            gas=TOKEN_TRANSFER_GAS,
        )
        await self.say(ident, "Waiting for transaction confirmation...")
        receipt = await self.confirm(tx_hash)
        return {
            "message": f"Transferred {amount} tokens to {checksum(toAddress)}",
            "transactionHash": tx_hash,
            "gasUsed": str(receipt.get("gasUsed", "")),
        }


class RequestFundsTool(PersonaTool):
    """
    Ask the human for ETH.

    Nothing is signed here: the result is a transaction request the
    human's own wallet client submits. The fixed wait gives the viewer
    time to act before the persona carries on.
    """

    @property
    def name(self) -> str:
        return "Request_Funds_Tool"

    @property
    def description(self) -> str:
        return (
            "Requests a small amount of ETH from the user's wallet to the "
            "character's wallet. Use when the character is short on ETH."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema({
            "sendersWalletAddress": {
                "type": "string",
                "description": "The user's wallet address (from the message metadata).",
            },
        })

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, sendersWalletAddress: str | None = None, **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        context = kwargs.get("context")
        sender = sendersWalletAddress or (context.sender_wallet if context else None)
        if not sender:
            raise InvalidInputError("sendersWalletAddress is required to request funds")
        wallet = await self.wallet_for(ident)
        amount = self.deps.settings.funds.request_amount_wei

        transaction = {"to": wallet.address, "value": str(amount), "from": sender}
        await self.say(ident, "Going to send you a pre-made transaction request to your wallet.")
        metadata = {"requestedAmount": str(amount), "fromAddress": sender, "toAddress": wallet.address}
        await self.record(ident, EventName.FUNDS_REQUESTED.value, metadata)
        await self.announce(ident, EventName.FUNDS_REQUESTED, metadata)
        await self.deps.sleep(self.deps.settings.funds.wait_seconds)
        return {"transaction": transaction, "message": "Transaction request created successfully"}


class ManageBasenameTool(PersonaTool):
    """Register ``<persona>-<prefix>.base.eth`` once per wallet."""

    @property
    def name(self) -> str:
        return "Manage_Basename_Tool"

    @property
    def description(self) -> str:
        return (
            "Checks if the character's wallet already has a Basename. If not, "
            "registers <character>-<prefix>.base.eth for one year and points it "
            "at the wallet."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "baseNamePrefix": {
                    "type": "string",
                    "description": "Suffix after the character name, letters and digits only.",
                },
                "imageUrl": {"type": "string", "description": "Avatar image URL."},
            },
            required=["baseNamePrefix"],
        )

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(self, baseNamePrefix: str, imageUrl: str = "", **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        wallet = await self.wallet_for(ident)
        if wallet.basename:
            await self.say(ident, f"Your Basename is already set to: {wallet.basename}")
            return {"status": "success", "basename": wallet.basename}

        prefix = baseNamePrefix.strip().lower()
        if not prefix.isalnum():
            raise InvalidInputError("baseNamePrefix may only contain letters and digits")
        chain = self.require_chain()
        cfg = self.deps.settings.chain
        basename = f"{ident.character_id.lower()}-{prefix}.base.eth"
        label = basename.removesuffix(".base.eth")
        node = namehash(basename)

        balance = await chain.get_balance(wallet.address)
        if balance < BASENAME_PRICE_WEI:
            raise InsufficientFundsError(
                "Not enough ETH to register a Basename", BASENAME_PRICE_WEI, balance
            )

        resolver = cfg.basename_resolver_address
        records = [
            _hex_bytes(chain.encode_call(resolver, BASENAME_RESOLVER_ABI, "setAddr", node, wallet.address)),
            _hex_bytes(chain.encode_call(resolver, BASENAME_RESOLVER_ABI, "setName", node, basename)),
        ]
        request = (label, checksum(wallet.address), BASENAME_DURATION, checksum(resolver), records, True)
        tx_hash = await chain.transact(
            wallet.private_key,
            cfg.basename_registrar_address,
            BASENAME_REGISTRAR_ABI,
            "register",
            request,
            value=BASENAME_PRICE_WEI,
        )
        await self.confirm(tx_hash)

        await self.deps.store.set_basename(ident.created_by, ident.character_id, basename)
        await self.say(ident, f"Successfully registered and configured Basename: {basename}")
        await self.announce(ident, EventName.BASENAME_MANAGED, {"basename": basename, "avatar": imageUrl})
        return {"status": "success", "basename": basename, "avatar": imageUrl, "transactionHash": tx_hash}
