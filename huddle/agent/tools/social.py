"""Marketing tools: tweets, X lookups and image generation."""

import re
from typing import Any

from huddle.agent.tools.common import PersonaTool, schema
from huddle.agent.tools.errors import InvalidInputError, ServiceUnavailableError
from huddle.integrations import make_thumbnail
from huddle.notify import EventName

MAX_TWEET_LENGTH = 280
LANDSCAPE_QUERY = (
    "Summarise the current Web3 and crypto landscape: notable launches, "
    "market sentiment and what people on X are talking about today."
)


class CreateTweetTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Create_Tweet_Tool"

    @property
    def description(self) -> str:
        return "Posts a tweet with the given text."

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {"text": {"type": "string", "description": "Tweet text, under 200 characters."}},
            required=["text"],
        )

    @property
    def toolset(self) -> str:
        return "twitter"

    def is_available(self) -> bool:
        return self.deps.twitter is not None

    async def execute(self, text: str, **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        if self.deps.twitter is None:
            raise ServiceUnavailableError("Twitter is not configured")
        text = text.strip()
        if not text or len(text) > MAX_TWEET_LENGTH:
            raise InvalidInputError(f"Tweet must be 1-{MAX_TWEET_LENGTH} characters")
        tweet = await self.deps.twitter.create_tweet(text)
        metadata = {"tweetId": tweet["id"], "text": tweet["text"]}
        await self.record(ident, EventName.TWEET_CREATED.value, metadata)
        await self.announce(ident, EventName.TWEET_CREATED, metadata)
        return {"message": "Tweet posted", "tweet": tweet}


class FetchTweetsTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Fetch_Tweets_Tool"

    @property
    def description(self) -> str:
        return "Fetches the latest tweets from a Twitter user."

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {"username": {"type": "string", "description": "Twitter handle, with or without @."}},
            required=["username"],
        )

    @property
    def toolset(self) -> str:
        return "twitter"

    def is_available(self) -> bool:
        return self.deps.twitter is not None

    async def execute(self, username: str, **kwargs: Any) -> dict[str, Any]:
        if self.deps.twitter is None:
            raise ServiceUnavailableError("Twitter is not configured")
        tweets = await self.deps.twitter.latest_tweets(username, limit=5)
        return {"username": username.lstrip("@"), "tweets": tweets}


class GetGrokInformationTool(PersonaTool):
    @property
    def name(self) -> str:
        return "Get_Grok_Information_Tool"

    @property
    def description(self) -> str:
        return (
            "Fetches information about a Twitter account, or about the current "
            "Web3 and crypto landscape when no userHandle is given."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema({
            "userHandle": {
                "type": "string",
                "description": "Twitter handle to research; leave blank for the general landscape.",
            },
        })

    @property
    def toolset(self) -> str:
        return "twitter"

    def is_available(self) -> bool:
        return self.deps.grok is not None

    async def execute(self, userHandle: str = "", **kwargs: Any) -> dict[str, Any]:
        if self.deps.grok is None:
            raise ServiceUnavailableError("Grok is not configured")
        handle = userHandle.strip().lstrip("@")
        if handle:
            query = f"What is the X account @{handle} about, and what have they posted recently?"
        else:
            query = LANDSCAPE_QUERY
        return {"information": await self.deps.grok.ask(query)}


class CreateImageTool(PersonaTool):
    """Generate an image, store it with a thumbnail, hand its key onwards."""

    @property
    def name(self) -> str:
        return "Create_Image_Tool"

    @property
    def description(self) -> str:
        return (
            "Creates an image from a prompt and returns its imageKey, which Rishi "
            "needs to create an NFT."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "prompt": {"type": "string", "description": "What the image should show."},
                "imageName": {
                    "type": "string",
                    "description": "Short name for the image, letters and digits only.",
                },
            },
            required=["prompt"],
        )

    @property
    def toolset(self) -> str:
        return "twitter"

    def is_available(self) -> bool:
        return self.deps.images is not None and self.deps.assets is not None

    async def execute(self, prompt: str, imageName: str = "", **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        if self.deps.images is None or self.deps.assets is None:
            raise ServiceUnavailableError("Image generation is not configured")
        image_name = re.sub(r"[^A-Za-z0-9]", "", imageName) or "image"

        data = await self.deps.images.generate(prompt)
        base_key = f"character-{ident.created_by}-{ident.session_id}-{ident.character_id}"
        image_key = f"{base_key}/image.png"
        self.deps.assets.put(image_key, data)
        self.deps.assets.put(
            f"{base_key}/thumbnail.png",
            make_thumbnail(data, self.deps.settings.images.thumbnail_size),
        )
        url = self.deps.assets.url(image_key)

        metadata = {"imageName": image_name, "imageKey": image_key, "url": url}
        await self.record(ident, EventName.IMAGE_CREATED.value, metadata)
        await self.announce(ident, EventName.IMAGE_CREATED, metadata)
        return {
            "message": f"Image created successfully with imageKey: {image_key} and NFTName: {image_name}",
            "imageName": image_name,
            "imageKey": image_key,
            "url": url,
            "description": prompt,
        }
