"""Configuration schema using Pydantic."""

from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class AgentDefaults(BaseModel):
    """Default agent configuration."""
    provider: str = "openrouter"  # Which provider to use (references a key in providers)
    model: str = ""  # Falls back to the provider's model, then the built-in default
    classifier_model: str = ""  # Model used by the router; defaults to `model`
    max_tokens: int = 4096
    temperature: float = 0.0
    chat_mode: str = "recursive"  # "recursive" lets personas answer each other, "standard" stops after one reply
    max_recursions: int = 10
    history_limit: int = 20
    default_persona: str = "Yasmin"


class PersonaConfig(BaseModel):
    """Per-persona overrides."""
    model: str = ""
    max_tool_rounds: int | None = None


class AgentsConfig(BaseModel):
    """Agent configuration."""
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)
    personas: dict[str, PersonaConfig] = Field(default_factory=dict)


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None
    model: str = ""  # Selected model for this provider


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    bedrock: ProviderConfig = Field(default_factory=ProviderConfig)


# Built-in provider names (order matters for fallback detection)
BUILTIN_PROVIDERS = ["openrouter", "anthropic", "openai", "bedrock"]

# Providers served through the OpenAI-compatible client; the rest go via LiteLLM.
OPENAI_COMPATIBLE_PROVIDERS = {"openrouter", "openai", "anthropic"}


class ChainConfig(BaseModel):
    """EVM chain configuration (Base mainnet by default)."""
    rpc_url: str = "https://mainnet.base.org"
    chain_id: int = 8453
    network: str = "base"  # Name of the network tools default to
    primary_network: str = "base"  # Only deploys on this network get source verification
    confirmations: int = 2
    receipt_timeout: float = 300.0
    poll_interval: float = 2.0
    weth_address: str = "0x4200000000000000000000000000000000000006"
    uniswap_router_address: str = "0x4752ba5DBc23f44D87826276BF6Fd6b1C372aD24"
    uniswap_factory_address: str = "0x8909Dc15e40173Ff4699343b6eB8132c65e18eC6"
    basename_registrar_address: str = "0x4cCb0BB02FCABA27e82a56646E81d8c5bC4119a5"
    basename_resolver_address: str = "0xC6d566A56A1aFf6508b41f6c90ff131615583BCD"
    nft_rpc_url: str = "https://rpc.zora.energy"
    nft_chain_id: int = 7777777
    nft_factory_address: str = "0x777777C338d93e2C7adf08D102d45CA7CC4Ed021"
    nft_fixed_price_minter_address: str = "0x04E2516A2c207E84a1839755675dfd8eF6302F0a"
    nft_mint_price_wei: int = 10**15  # 0.001 ETH per token
    contract_artifact: str = "~/.huddle/contracts/ERC20Token.json"  # {"abi", "bytecode", "source", "contractName"}


class VerificationConfig(BaseModel):
    """Block explorer source verification."""
    api_key: str = ""
    api_url: str = "https://api.basescan.org/api"
    testnet_api_url: str = "https://api-sepolia.basescan.org/api"
    compiler_version: str = "v0.8.24+commit.e11b9ed9"
    evm_version: str = "paris"
    optimization_runs: int = 200
    poll_interval: float = 5.0
    backoff_factor: float = 1.5
    max_interval: float = 60.0
    max_attempts: int = 12


class PinataConfig(BaseModel):
    """IPFS pinning via Pinata."""
    jwt: str = ""
    api_base: str = "https://api.pinata.cloud"


class TwitterConfig(BaseModel):
    """X/Twitter API v2 credentials."""
    consumer_key: str = ""
    consumer_secret: str = ""
    access_token: str = ""
    access_token_secret: str = ""
    bearer_token: str = ""


class XaiConfig(BaseModel):
    """xAI (Grok) configuration."""
    api_key: str = ""
    api_base: str = "https://api.x.ai/v1"
    model: str = "grok-beta"


class ImagesConfig(BaseModel):
    """Image generation configuration."""
    api_key: str = ""  # Defaults to providers.openai.api_key
    model: str = "dall-e-3"
    size: str = "1024x1024"
    thumbnail_size: int = 256


class StorageConfig(BaseModel):
    """Local persistence."""
    database: str = "~/.huddle/huddle.db"
    message_ttl: int = 3600  # Seconds before a chat message expires
    assets_dir: str = "~/.huddle/assets"
    assets_base_url: str = ""  # Public URL prefix for stored assets, if served


class NotifyConfig(BaseModel):
    """Notification push behaviour."""
    timeout: float = 5.0
    viewer_timeout: float = 2.0  # per websocket connection


class FundsConfig(BaseModel):
    """Funds request tool."""
    request_amount_wei: int = 10**15  # 0.001 ETH
    wait_seconds: float = 15.0


class GatewayConfig(BaseModel):
    """Gateway/server configuration."""
    host: str = "0.0.0.0"
    port: int = 18790
    auth_token: str = ""  # Bearer token for the HTTP API


class Config(BaseSettings):
    """Root configuration for huddle."""
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    pinata: PinataConfig = Field(default_factory=PinataConfig)
    twitter: TwitterConfig = Field(default_factory=TwitterConfig)
    xai: XaiConfig = Field(default_factory=XaiConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)
    funds: FundsConfig = Field(default_factory=FundsConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @property
    def database_path(self) -> Path:
        """Get expanded database path."""
        return Path(self.storage.database).expanduser()

    @property
    def assets_path(self) -> Path:
        """Get expanded assets directory."""
        return Path(self.storage.assets_dir).expanduser()

    @property
    def contract_artifact_path(self) -> Path:
        return Path(self.chain.contract_artifact).expanduser()

    def _preferred_provider(self) -> str | None:
        """Return the explicitly configured provider, if any."""
        value = (self.agents.defaults.provider or "").strip().lower()
        return value or None

    def get_provider_name(self) -> str | None:
        """Return the selected provider name."""
        preferred = self._preferred_provider()
        if preferred:
            return preferred if hasattr(self.providers, preferred) else None
        for name in BUILTIN_PROVIDERS:
            prov = getattr(self.providers, name)
            if prov.api_key:
                return name
        return None

    def get_provider_config(self) -> ProviderConfig | None:
        name = self.get_provider_name()
        if not name:
            return None
        return getattr(self.providers, name)

    def get_api_key(self) -> str | None:
        """Get API key for the active provider."""
        provider = self.get_provider_config()
        return (provider.api_key or None) if provider else None

    def get_api_base(self) -> str | None:
        """Get API base URL for the active provider."""
        provider = self.get_provider_config()
        return (provider.api_base or None) if provider else None

    def get_model(self) -> str:
        """Get the chat model for personas."""
        if self.agents.defaults.model:
            return self.agents.defaults.model
        provider = self.get_provider_config()
        if provider and provider.model:
            return provider.model
        return "bedrock/us.anthropic.claude-3-5-haiku-20241022-v1:0"

    def get_classifier_model(self) -> str:
        """Get the model the router classifies with."""
        return self.agents.defaults.classifier_model or self.get_model()

    class Config:
        env_prefix = "HUDDLE_"
        env_nested_delimiter = "__"
