from __future__ import annotations

import urllib.parse

import httpx
import pytest

from fakes import make_wallet
from huddle.agent.tools.contracts import DeployContractTool
from huddle.agent.tools.errors import InsufficientFundsError
from huddle.integrations import BasescanVerifier, IntegrationError, VerificationStatus
from huddle.notify import EventName

ADDRESS = "0x" + "12" * 20
ARTIFACT = {
    "abi": [],
    "bytecode": "0x6080",
    "source": "pragma solidity ^0.8.24; contract Token {}",
    "contractName": "Token",
}


class _Explorer:
    """Scripted Basescan: accepts submissions, answers status checks in order."""

    def __init__(self, statuses: list[tuple[str, str]], submit_status: str = "1") -> None:
        self.statuses = list(statuses)
        self.submit_status = submit_status
        self.submissions: list[dict[str, str]] = []
        self.checks = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            form = dict(urllib.parse.parse_qsl(request.content.decode()))
            self.submissions.append(form)
            return httpx.Response(200, json={"status": self.submit_status, "result": "guid-1"})
        self.checks += 1
        status, result = self.statuses.pop(0) if self.statuses else ("0", "Pending in queue")
        return httpx.Response(200, json={"status": status, "result": result})


def _verifier(explorer: _Explorer, slept: list[float] | None = None, **kwargs) -> BasescanVerifier:
    async def sleep(seconds: float) -> None:
        if slept is not None:
            slept.append(seconds)

    client = httpx.AsyncClient(transport=httpx.MockTransport(explorer))
    return BasescanVerifier("key", client=client, sleep=sleep, **kwargs)


def test_verifier_requires_api_key() -> None:
    from huddle.integrations import NotConfiguredError

    with pytest.raises(NotConfiguredError):
        BasescanVerifier("")


def test_backoff_is_capped() -> None:
    verifier = BasescanVerifier("key", poll_interval=5.0, backoff_factor=2.0, max_interval=30.0)
    assert [verifier.delay_for(i) for i in range(5)] == [5.0, 10.0, 20.0, 30.0, 30.0]


@pytest.mark.asyncio
async def test_pending_then_verified() -> None:
    explorer = _Explorer([("0", "Pending in queue"), ("1", "Pass - Verified")])
    slept: list[float] = []
    verifier = _verifier(explorer, slept, poll_interval=1.0, backoff_factor=2.0)

    outcome = await verifier.verify(
        ADDRESS,
        source="contract Token {}",
        contract_name="Token",
        constructor_args="0xabcd",
        compiler_version="v0.8.24+commit.e11b9ed9",
    )

    assert outcome.verified
    assert outcome.attempts == 2
    assert slept == [1.0, 2.0]
    form = explorer.submissions[0]
    assert form["action"] == "verifysourcecode"
    assert form["constructorArguements"] == "abcd"


@pytest.mark.asyncio
async def test_verification_times_out_after_max_attempts() -> None:
    explorer = _Explorer([])
    verifier = _verifier(explorer, max_attempts=4)

    outcome = await verifier.wait("guid-1")

    assert outcome.status is VerificationStatus.TIMED_OUT
    assert outcome.message == "Verification timed out"
    assert explorer.checks == 4


@pytest.mark.asyncio
async def test_already_verified_counts_as_success() -> None:
    verifier = _verifier(_Explorer([("0", "Contract source code already verified")]))
    outcome = await verifier.wait("guid-1")
    assert outcome.verified


@pytest.mark.asyncio
async def test_rejected_submission_raises() -> None:
    verifier = _verifier(_Explorer([], submit_status="0"))
    with pytest.raises(IntegrationError):
        await verifier.submit(ADDRESS, "src", "Token", "", "v0.8.24")


@pytest.mark.asyncio
async def test_deploy_reports_verification_timeout_and_still_renounces(deps, context, chain, sink) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    chain.balances[ADDRESS.lower()] = 10**18
    deps.contract_artifact = ARTIFACT
    deps.verifier = _verifier(_Explorer([]), max_attempts=3)

    result = await DeployContractTool(deps).execute(
        tokenName="Huddle Coin", tokenSymbol="HUD", totalSupply="1000000", context=context
    )
    await deps.notifier.drain()

    assert chain.submitted_names() == ["deploy", "renounceOwnership"]
    assert chain.submitted[0][2] == ("Huddle Coin", "HUD", 1_000_000)
    assert result["erc20TokenAddress"].lower() == chain.deployed_address
    verification = result["verification"]
    assert verification["error"] == "VerificationTimeout"
    assert verification["message"] == "Verification timed out"
    assert verification["details"] == {"guid": "guid-1", "attempts": 3}
    assert sink.event_names() == [EventName.CONTRACT_DEPLOYED.value]
    assert "Renouncing contract ownership..." in sink.lines()


@pytest.mark.asyncio
async def test_deploy_without_verifier_still_completes(deps, context, chain) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    chain.balances[ADDRESS.lower()] = 10**18
    deps.contract_artifact = ARTIFACT

    result = await DeployContractTool(deps).execute(
        tokenName="Huddle Coin", tokenSymbol="HUD", totalSupply="5", context=context
    )

    assert result["verification"]["error"] == "ServiceUnavailable"
    assert "renounceOwnership" in chain.submitted_names()
    records = await deps.store.events(context.session_id, EventName.CONTRACT_DEPLOYED.value)
    assert records[0].data["symbol"] == "HUD"


@pytest.mark.asyncio
async def test_deploy_needs_gas_money(deps, context, chain) -> None:
    await make_wallet(deps.store, "Harper", ADDRESS)
    deps.contract_artifact = ARTIFACT

    with pytest.raises(InsufficientFundsError):
        await DeployContractTool(deps).execute(
            tokenName="Huddle Coin", tokenSymbol="HUD", totalSupply="5", context=context
        )
    assert chain.submitted == []
