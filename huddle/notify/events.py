"""Structured events pushed to the session-wide viewer ("god") channel."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from huddle.utils.helpers import now_ms


class EventName(str, Enum):
    """Things a viewer can watch happen."""
    WALLET_CREATED = "wallet_created"
    TRADE_EXECUTED = "trade_executed"
    CONTRACT_DEPLOYED = "contract_deployed"
    UNISWAP_POOL_CREATED = "uniswap_pool_created"
    TWEET_CREATED = "tweet_created"
    IMAGE_CREATED = "image_created"
    FUNDS_REQUESTED = "funds_requested"
    BASENAME_MANAGED = "basename_managed"
    NFT_CREATED = "nft_created"


class NotificationEvent(BaseModel):
    """Event envelope: who did what, when, with which details."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    created_by: str
    character_id: str
    event_name: EventName
    created_at: int = Field(default_factory=now_ms)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
