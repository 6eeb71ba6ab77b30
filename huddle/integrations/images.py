"""Image generation plus thumbnailing."""

from __future__ import annotations

import base64
from io import BytesIO

from loguru import logger
from openai import AsyncOpenAI, OpenAIError
from PIL import Image

from huddle.integrations.errors import IntegrationError, NotConfiguredError


def make_thumbnail(data: bytes, size: int = 256) -> bytes:
    """Downscale a PNG/JPEG to fit in ``size`` x ``size``, returned as PNG."""
    with Image.open(BytesIO(data)) as img:
        img = img.convert("RGBA")
        img.thumbnail((size, size))
        out = BytesIO()
        img.save(out, format="PNG")
    return out.getvalue()


class ImageGenerator:
    def __init__(
        self,
        api_key: str,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        client: AsyncOpenAI | None = None,
    ):
        if client is None:
            if not api_key:
                raise NotConfiguredError("images", "HUDDLE_IMAGES__API_KEY")
            client = AsyncOpenAI(api_key=api_key)
        self._client = client
        self.model = model
        self.size = size

    async def generate(self, prompt: str) -> bytes:
        try:
            result = await self._client.images.generate(
                model=self.model,
                prompt=prompt,
                size=self.size,
                n=1,
                response_format="b64_json",
            )
        except OpenAIError as e:
            raise IntegrationError("images", str(e)) from e
        if not result.data or not result.data[0].b64_json:
            raise IntegrationError("images", "no image returned")
        data = base64.b64decode(result.data[0].b64_json)
        logger.info(f"Generated {len(data)} byte image with {self.model}")
        return data
