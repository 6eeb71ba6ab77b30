"""Clients for the third-party services the tools call."""

from huddle.integrations.assets import AssetStore
from huddle.integrations.basescan import BasescanVerifier, VerificationOutcome, VerificationStatus
from huddle.integrations.errors import IntegrationError, NotConfiguredError
from huddle.integrations.grok import GrokClient
from huddle.integrations.images import ImageGenerator, make_thumbnail
from huddle.integrations.pinata import PinataClient
from huddle.integrations.twitter import TwitterClient

__all__ = [
    "AssetStore",
    "BasescanVerifier",
    "GrokClient",
    "ImageGenerator",
    "IntegrationError",
    "NotConfiguredError",
    "PinataClient",
    "TwitterClient",
    "VerificationOutcome",
    "VerificationStatus",
    "make_thumbnail",
]
