"""The dependency bundle every tool receives, and the registry built from it."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from huddle.agent.tools.analytics import AnalyticsTool
from huddle.agent.tools.contracts import DeployContractTool
from huddle.agent.tools.errors import ServiceUnavailableError
from huddle.agent.tools.liquidity import CreateUniswapPoolTool
from huddle.agent.tools.nft import CreateNFTTool
from huddle.agent.tools.registry import ToolRegistry
from huddle.agent.tools.social import CreateImageTool, CreateTweetTool, FetchTweetsTool, GetGrokInformationTool
from huddle.agent.tools.trading import TradingTool
from huddle.agent.tools.wallet import (
    CreateWalletTool,
    GetEthBalanceTool,
    GetTokenBalanceTool,
    GetWalletTool,
    ManageBasenameTool,
    RequestFundsTool,
    TransferEthTool,
    TransferTokenTool,
)
from huddle.chain import ChainClient, new_keypair
from huddle.config.schema import Config
from huddle.integrations import (
    AssetStore,
    BasescanVerifier,
    GrokClient,
    ImageGenerator,
    NotConfiguredError,
    PinataClient,
    TwitterClient,
)
from huddle.notify import Notifier
from huddle.storage import HuddleStore


@dataclass
class ToolDeps:
    """
    Everything a tool may touch, passed explicitly.

    Optional integrations are ``None`` when unconfigured; tools that need
    them report themselves unavailable and fail with a structured error.
    """

    store: HuddleStore
    notifier: Notifier
    settings: Config = field(default_factory=Config)
    chain: ChainClient | None = None
    nft_chain: ChainClient | None = None
    verifier: BasescanVerifier | None = None
    pinata: PinataClient | None = None
    twitter: TwitterClient | None = None
    grok: GrokClient | None = None
    images: ImageGenerator | None = None
    assets: AssetStore | None = None
    keygen: Callable[[], tuple[str, str]] = new_keypair
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    contract_artifact: dict[str, Any] | None = None

    def load_contract_artifact(self) -> dict[str, Any]:
        """The compiled ERC-20: ``{"abi", "bytecode", "source"?, "contractName"?}``."""
        if self.contract_artifact is None:
            path = self.settings.contract_artifact_path
            if not path.exists():
                raise ServiceUnavailableError(f"No contract artifact at {path}")
            try:
                artifact = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise ServiceUnavailableError(f"Unreadable contract artifact {path}: {e}") from e
            if "abi" not in artifact or "bytecode" not in artifact:
                raise ServiceUnavailableError(f"Contract artifact {path} lacks abi or bytecode")
            self.contract_artifact = artifact
        return self.contract_artifact

    @classmethod
    def from_config(cls, config: Config, store: HuddleStore, notifier: Notifier) -> ToolDeps:
        """Build clients for every configured service."""
        chain_cfg = config.chain
        verify_cfg = config.verification

        def optional(factory: Callable[[], Any]) -> Any:
            try:
                return factory()
            except NotConfiguredError as e:
                logger.info(f"Integration disabled: {e}")
                return None

        chain = None
        nft_chain = None
        if chain_cfg.rpc_url:
            chain = ChainClient(
                chain_cfg.rpc_url,
                chain_id=chain_cfg.chain_id,
                confirmations=chain_cfg.confirmations,
                receipt_timeout=chain_cfg.receipt_timeout,
                poll_interval=chain_cfg.poll_interval,
            )
        if chain_cfg.nft_rpc_url:
            nft_chain = ChainClient(
                chain_cfg.nft_rpc_url,
                chain_id=chain_cfg.nft_chain_id,
                confirmations=chain_cfg.confirmations,
                receipt_timeout=chain_cfg.receipt_timeout,
                poll_interval=chain_cfg.poll_interval,
            )

        images_key = config.images.api_key or config.providers.openai.api_key
        return cls(
            store=store,
            notifier=notifier,
            settings=config,
            chain=chain,
            nft_chain=nft_chain,
            verifier=optional(lambda: BasescanVerifier(
                verify_cfg.api_key,
                api_url=verify_cfg.api_url,
                poll_interval=verify_cfg.poll_interval,
                backoff_factor=verify_cfg.backoff_factor,
                max_interval=verify_cfg.max_interval,
                max_attempts=verify_cfg.max_attempts,
            )),
            pinata=optional(lambda: PinataClient(config.pinata.jwt, api_base=config.pinata.api_base)),
            twitter=optional(lambda: TwitterClient(
                config.twitter.consumer_key,
                config.twitter.consumer_secret,
                config.twitter.access_token,
                config.twitter.access_token_secret,
                config.twitter.bearer_token,
            )),
            grok=optional(lambda: GrokClient(config.xai.api_key, config.xai.api_base, config.xai.model)),
            images=optional(lambda: ImageGenerator(images_key, config.images.model, config.images.size)),
            assets=AssetStore(config.assets_path, config.storage.assets_base_url),
        )


def build_registry(deps: ToolDeps) -> ToolRegistry:
    """Register every persona tool against one dependency bundle."""
    registry = ToolRegistry()
    registry.register(CreateWalletTool(deps))
    registry.register(GetWalletTool(deps))
    registry.register(DeployContractTool(deps))
    registry.register(CreateUniswapPoolTool(deps))
    registry.register(CreateNFTTool(deps))
    registry.register(ManageBasenameTool(deps))
    # Funding and balance tools are shared with the trader.
    for tool in (
        GetEthBalanceTool(deps),
        GetTokenBalanceTool(deps),
        TransferEthTool(deps),
        TransferTokenTool(deps),
        RequestFundsTool(deps),
    ):
        registry.register(tool, toolsets=["trading"])
    registry.register(TradingTool(deps))
    registry.register(AnalyticsTool(deps))
    registry.register(CreateTweetTool(deps))
    registry.register(FetchTweetsTool(deps))
    registry.register(GetGrokInformationTool(deps))
    registry.register(CreateImageTool(deps))
    return registry
