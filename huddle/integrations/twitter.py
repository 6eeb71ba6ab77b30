"""Posting and reading tweets through tweepy's v2 client."""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable

import tweepy
from loguru import logger

from huddle.integrations.errors import IntegrationError, NotConfiguredError


class TwitterClient:
    """Async facade over ``tweepy.Client``; calls run in the default executor."""

    def __init__(
        self,
        consumer_key: str = "",
        consumer_secret: str = "",
        access_token: str = "",
        access_token_secret: str = "",
        bearer_token: str = "",
        client: Any = None,
    ):
        if client is None:
            if not (consumer_key and consumer_secret and access_token and access_token_secret):
                raise NotConfiguredError("twitter", "HUDDLE_TWITTER__*")
            client = tweepy.Client(
                bearer_token=bearer_token or None,
                consumer_key=consumer_key,
                consumer_secret=consumer_secret,
                access_token=access_token,
                access_token_secret=access_token_secret,
            )
        self._client = client

    async def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
        except tweepy.TweepyException as e:
            raise IntegrationError("twitter", str(e)) from e

    async def create_tweet(self, text: str) -> dict[str, Any]:
        response = await self._run(self._client.create_tweet, text=text)
        data = dict(response.data or {})
        logger.info(f"Tweet posted: {data.get('id')}")
        return {"id": str(data.get("id", "")), "text": data.get("text", text)}

    async def latest_tweets(self, username: str, limit: int = 5) -> list[dict[str, Any]]:
        """Most recent tweets for ``username`` (the API minimum page is 5)."""
        user = await self._run(self._client.get_user, username=username.lstrip("@"))
        if not user.data:
            raise IntegrationError("twitter", f"user not found: {username}")
        response = await self._run(
            self._client.get_users_tweets,
            user.data.id,
            max_results=max(5, min(limit, 100)),
            tweet_fields=["created_at"],
        )
        tweets = response.data or []
        return [
            {
                "id": str(t.id),
                "text": t.text,
                "created_at": t.created_at.isoformat() if getattr(t, "created_at", None) else None,
            }
            for t in tweets[:limit]
        ]
