"""ERC-20 deployment with explorer verification and ownership renouncement."""

from typing import Any

from eth_abi import encode
from loguru import logger

from huddle.agent.progress import ProgressReporter
from huddle.agent.tools.common import Identity, PersonaTool, parse_amount, schema
from huddle.agent.tools.errors import (
    InsufficientFundsError,
    InvalidInputError,
    VerificationTimeout,
    tool_error,
)
from huddle.chain import checksum
from huddle.chain.abi import ERC20_ABI, OWNABLE_ABI
from huddle.integrations import IntegrationError, VerificationStatus
from huddle.notify import EventName

MIN_DEPLOY_BALANCE_WEI = 10**14  # 0.0001 ETH

DEPLOY_PINGS = [
    (5.0, "Still waiting for the deployment transaction to be confirmed..."),
    (10.0, "Almost there, just a few more blocks until confirmation..."),
]


class DeployContractTool(PersonaTool):
    """
    Deploy the bundled ERC-20 contract.

    Steps: balance check, deploy, wait for confirmations (with progress
    pings), announce, verify source on the primary network, renounce
    ownership, record the event. Verification problems are reported in the
    result's ``verification`` field and do not undo the deployment.
    """

    @property
    def name(self) -> str:
        return "Deploy_Contract_Tool"

    @property
    def description(self) -> str:
        return (
            "Deploys a new ERC20 token contract from the character's wallet and "
            "returns its address. Never deploy the same token twice."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "tokenName": {"type": "string", "description": "Token name, e.g. 'Huddle Coin'."},
                "tokenSymbol": {"type": "string", "description": "Ticker symbol, e.g. 'HUD'."},
                "totalSupply": {
                    "type": "string",
                    "description": "Total supply in whole tokens (the contract applies 18 decimals).",
                },
                "network": {
                    "type": "string",
                    "description": "Network to deploy on. Defaults to the configured network.",
                },
            },
            required=["tokenName", "tokenSymbol", "totalSupply"],
        )

    @property
    def toolset(self) -> str:
        return "wallet"

    async def execute(
        self,
        tokenName: str,
        tokenSymbol: str,
        totalSupply: str,
        network: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        ident = self.identity(kwargs)
        chain = self.require_chain()
        settings = self.deps.settings
        network = (network or settings.chain.network).strip().lower()
        if network != settings.chain.network.lower():
            raise InvalidInputError(
                f"Only {settings.chain.network} is configured, cannot deploy on {network}"
            )
        supply = parse_amount(totalSupply, "totalSupply")
        if supply == 0:
            raise InvalidInputError("totalSupply must be greater than zero")

        wallet = await self.wallet_for(ident)
        balance = await chain.get_balance(wallet.address)
        if balance < MIN_DEPLOY_BALANCE_WEI:
            raise InsufficientFundsError(
                "Insufficient funds, cannot deploy contract.", MIN_DEPLOY_BALANCE_WEI, balance
            )

        artifact = self.deps.load_contract_artifact()
        tx_hash = await chain.deploy(
            wallet.private_key, artifact["abi"], artifact["bytecode"], tokenName, tokenSymbol, supply
        )
        await self.say(
            ident,
            "I've initiated the contract deployment, waiting for it to be confirmed on the blockchain...",
        )
        async with ProgressReporter(lambda text: self.say(ident, text), DEPLOY_PINGS, sleep=self.deps.sleep):
            receipt = await self.confirm(tx_hash)
        address = checksum(receipt["contractAddress"])
        logger.info(f"{tokenSymbol} deployed at {address} by {ident.character_id}")

        await self.announce(
            ident,
            EventName.CONTRACT_DEPLOYED,
            {"contractAddress": address, "name": tokenName, "symbol": tokenSymbol, "totalSupply": str(supply)},
        )

        verification: dict[str, Any] | None = None
        if network == settings.chain.primary_network.lower():
            await self.say(ident, "Cool, I've deployed it, now just verifying it on Basescan.")
            verification = await self._verify(ident, address, artifact, tokenName, tokenSymbol, supply)

        await self.say(ident, "Renouncing contract ownership...")
        renounce_hash = await chain.transact(wallet.private_key, address, OWNABLE_ABI, "renounceOwnership")
        await self.confirm(renounce_hash)

        deployer_balance = await chain.call(address, ERC20_ABI, "balanceOf", checksum(wallet.address))
        await self.record(
            ident,
            EventName.CONTRACT_DEPLOYED.value,
            {"contractAddress": address, "name": tokenName, "symbol": tokenSymbol, "totalSupply": str(supply)},
        )
        result: dict[str, Any] = {
            "erc20TokenAddress": address,
            "deployerTokenBalance": str(deployer_balance),
            "transactionHash": tx_hash,
        }
        if verification is not None:
            result["verification"] = verification
        return result

    async def _verify(
        self,
        ident: Identity,
        address: str,
        artifact: dict[str, Any],
        name: str,
        symbol: str,
        supply: int,
    ) -> dict[str, Any]:
        verifier = self.deps.verifier
        if verifier is None:
            return tool_error("ServiceUnavailable", "Source verification is not configured", "SERVICE_UNAVAILABLE")
        if not artifact.get("source"):
            return tool_error("VerificationSkipped", "Contract artifact has no source to verify")

        cfg = self.deps.settings.verification
        constructor_args = encode(["string", "string", "uint256"], [name, symbol, supply]).hex()
        try:
            outcome = await verifier.verify(
                address,
                source=artifact["source"],
                contract_name=artifact.get("contractName", "Token"),
                constructor_args=constructor_args,
                compiler_version=cfg.compiler_version,
                optimization_runs=cfg.optimization_runs,
                evm_version=cfg.evm_version,
            )
        except IntegrationError as e:
            logger.warning(f"Verification of {address} failed: {e}")
            return tool_error("VerificationFailed", str(e), "VERIFICATION_FAILED")

        if outcome.status is VerificationStatus.TIMED_OUT:
            return VerificationTimeout(outcome.guid, outcome.attempts).to_dict()
        if outcome.status is VerificationStatus.FAILED:
            return tool_error(
                "VerificationFailed",
                outcome.message,
                "VERIFICATION_FAILED",
                {"guid": outcome.guid},
            )
        await self.say(ident, "The contract has been verified on Basescan.")
        return outcome.to_dict()
