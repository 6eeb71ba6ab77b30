"""Contract source verification on Basescan (Etherscan-compatible API)."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from huddle.integrations.errors import IntegrationError, NotConfiguredError

_PENDING_MARKERS = ("pending in queue", "in progress")


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class VerificationOutcome:
    status: VerificationStatus
    message: str
    guid: str = ""
    attempts: int = 0

    @property
    def verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "guid": self.guid,
            "attempts": self.attempts,
        }


class BasescanVerifier:
    """
    Submits single-file Solidity source and polls until the explorer decides.

    Polling is bounded: the interval grows by ``backoff_factor`` up to
    ``max_interval`` and gives up after ``max_attempts`` status checks.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.basescan.org/api",
        poll_interval: float = 5.0,
        backoff_factor: float = 1.5,
        max_interval: float = 60.0,
        max_attempts: int = 12,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not api_key:
            raise NotConfiguredError("basescan", "HUDDLE_VERIFICATION__API_KEY")
        self.api_key = api_key
        self.api_url = api_url
        self.poll_interval = poll_interval
        self.backoff_factor = max(1.0, backoff_factor)
        self.max_interval = max_interval
        self.max_attempts = max(1, max_attempts)
        self._client = client or httpx.AsyncClient(timeout=30.0)
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Wait before status check number ``attempt`` (0-based)."""
        return min(self.poll_interval * (self.backoff_factor ** attempt), self.max_interval)

    async def _request(self, method: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, self.api_url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise IntegrationError("basescan", e.response.text[:300], e.response.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            raise IntegrationError("basescan", str(e)) from e

    async def submit(
        self,
        address: str,
        source: str,
        contract_name: str,
        constructor_args: str,
        compiler_version: str,
        optimization_runs: int = 200,
        evm_version: str = "paris",
    ) -> str:
        """Submit source for verification and return the explorer's job guid."""
        form = {
            "apikey": self.api_key,
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": address,
            "sourceCode": source,
            "codeformat": "solidity-single-file",
            "contractname": contract_name,
            "compilerversion": compiler_version,
            "optimizationUsed": "1",
            "runs": str(optimization_runs),
            "evmversion": evm_version,
            "constructorArguements": constructor_args.removeprefix("0x"),
            "licenseType": "3",
        }
        body = await self._request("POST", data=form)
        if str(body.get("status")) != "1":
            raise IntegrationError("basescan", f"submission rejected: {body.get('result')}")
        guid = str(body["result"])
        logger.info(f"Verification submitted for {address} (guid {guid})")
        return guid

    async def check(self, guid: str) -> tuple[bool | None, str]:
        """One status check. Returns (True|False|None for pending, message)."""
        body = await self._request(
            "GET",
            params={
                "apikey": self.api_key,
                "module": "contract",
                "action": "checkverifystatus",
                "guid": guid,
            },
        )
        result = str(body.get("result", ""))
        lowered = result.lower()
        if any(marker in lowered for marker in _PENDING_MARKERS):
            return None, result
        if str(body.get("status")) == "1" or "already verified" in lowered:
            return True, result
        return False, result

    async def wait(self, guid: str) -> VerificationOutcome:
        for attempt in range(self.max_attempts):
            await self._sleep(self.delay_for(attempt))
            verified, message = await self.check(guid)
            if verified is None:
                logger.debug(f"Verification {guid} still pending (attempt {attempt + 1})")
                continue
            status = VerificationStatus.VERIFIED if verified else VerificationStatus.FAILED
            return VerificationOutcome(status, message, guid, attempt + 1)
        logger.warning(f"Verification {guid} timed out after {self.max_attempts} checks")
        return VerificationOutcome(
            VerificationStatus.TIMED_OUT,
            "Verification timed out",
            guid,
            self.max_attempts,
        )

    async def verify(self, address: str, **submit_kwargs: Any) -> VerificationOutcome:
        guid = await self.submit(address, **submit_kwargs)
        return await self.wait(guid)
