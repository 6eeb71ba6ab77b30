from __future__ import annotations

from types import SimpleNamespace

import pytest

from huddle.providers.litellm_provider import LiteLLMProvider
from huddle.providers.openai_provider import OpenAIProvider, _normalize_api_key


def _completion(content, tool_calls=None, usage=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason="tool_calls" if tool_calls else "stop")],
        usage=usage,
    )


def _call(call_id: str, name: str, arguments: str):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("sk-abc", "sk-abc"), ("  Bearer sk-abc ", "sk-abc"), ("bearer sk-abc", "sk-abc"), (None, "")],
)
def test_normalize_api_key(raw, expected) -> None:
    assert _normalize_api_key(raw) == expected


def test_openai_provider_parses_tool_calls() -> None:
    provider = OpenAIProvider(api_key="sk-test", provider="openrouter")
    response = _completion(
        "Checking now.",
        tool_calls=[
            _call("c1", "Get_Wallet_Tool", '{"characterId": "Rishi"}'),
            _call("c2", "Trading_Tool", "{not json"),
        ],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )

    parsed = provider._parse_response(response)

    assert parsed.content == "Checking now."
    assert parsed.has_tool_calls
    assert [(c.id, c.name, c.arguments) for c in parsed.tool_calls] == [
        ("c1", "Get_Wallet_Tool", {"characterId": "Rishi"}),
        ("c2", "Trading_Tool", {}),
    ]
    assert parsed.finish_reason == "tool_calls"
    assert parsed.usage["total_tokens"] == 15


def test_openai_provider_defaults_per_route() -> None:
    provider = OpenAIProvider(api_key="sk-test", provider="openai")
    assert provider.get_default_model() == "gpt-4.1-mini"
    assert provider.api_base == "https://api.openai.com/v1"


def test_litellm_prefixes_openrouter_models(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENROUTER_API_KEY", "")
    monkeypatch.delenv("OPENROUTER_API_KEY")
    provider = LiteLLMProvider(api_key="or-key", provider_name="OpenRouter", default_model="x/y")

    assert provider._resolve_model(None) == "openrouter/x/y"
    assert provider._resolve_model("openrouter/a/b") == "openrouter/a/b"


def test_litellm_parse_keeps_raw_arguments() -> None:
    provider = LiteLLMProvider()
    parsed = provider._parse_response(_completion(None, tool_calls=[_call("c1", "Analytics_Tool", "oops")]))

    assert parsed.content is None
    assert parsed.tool_calls[0].arguments == {"raw": "oops"}


def test_litellm_parse_without_choices() -> None:
    parsed = LiteLLMProvider()._parse_response(SimpleNamespace(choices=[]))
    assert parsed.finish_reason == "error"
    assert not parsed.has_tool_calls
