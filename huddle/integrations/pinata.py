"""IPFS pinning through Pinata."""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

from huddle.integrations.errors import IntegrationError, NotConfiguredError


class PinataClient:
    """Pins files and JSON documents; returns ``ipfs://`` URIs."""

    def __init__(
        self,
        jwt: str,
        api_base: str = "https://api.pinata.cloud",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not jwt:
            raise NotConfiguredError("pinata", "HUDDLE_PINATA__JWT")
        self.api_base = api_base.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {jwt}"}

    async def _post(self, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.post(
                f"{self.api_base}{path}", headers=self._headers, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IntegrationError("pinata", e.response.text[:300], e.response.status_code) from e
        except httpx.HTTPError as e:
            raise IntegrationError("pinata", str(e)) from e
        return response.json()

    async def pin_file(self, content: bytes, filename: str, name: str | None = None) -> str:
        """Pin a file wrapped in a directory so the URI keeps its filename."""
        data = {
            "pinataMetadata": json.dumps({"name": name or filename}),
            "pinataOptions": json.dumps({"wrapWithDirectory": True}),
        }
        body = await self._post(
            "/pinning/pinFileToIPFS", files={"file": (filename, content)}, data=data
        )
        uri = f"ipfs://{body['IpfsHash']}/{filename}"
        logger.info(f"Pinned {filename} as {uri}")
        return uri

    async def pin_json(self, payload: dict[str, Any], name: str) -> str:
        body = await self._post(
            "/pinning/pinJSONToIPFS",
            json={"pinataContent": payload, "pinataMetadata": {"name": name}},
        )
        uri = f"ipfs://{body['IpfsHash']}"
        logger.info(f"Pinned {name} as {uri}")
        return uri

    async def aclose(self) -> None:
        await self._client.aclose()
