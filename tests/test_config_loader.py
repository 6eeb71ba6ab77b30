from __future__ import annotations

import json
from pathlib import Path

import pytest

from huddle.config.loader import (
    SECRET_PATHS,
    config_has_secrets,
    convert_keys,
    env_var_for,
    load_config,
    save_config,
)
from huddle.config.schema import Config


@pytest.fixture(autouse=True)
def _clean_secret_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so teardown also removes keys that load_config injects.
    for keys in SECRET_PATHS:
        name = env_var_for(keys)
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def _paths(tmp_path: Path) -> tuple[Path, Path]:
    return tmp_path / "config.json", tmp_path / ".env"


def test_env_var_names() -> None:
    assert env_var_for(("pinata", "jwt")) == "HUDDLE_PINATA__JWT"
    assert env_var_for(("providers", "openrouter", "apiKey")) == "HUDDLE_PROVIDERS__OPENROUTER__API_KEY"


def test_defaults() -> None:
    config = Config()
    assert config.agents.defaults.max_recursions == 10
    assert config.agents.defaults.default_persona == "Yasmin"
    assert config.funds.request_amount_wei == 10**15
    assert config.funds.wait_seconds == 15.0


def test_save_moves_secrets_to_env_file(tmp_path: Path) -> None:
    config_path, env_path = _paths(tmp_path)
    config = Config()
    config.agents.defaults.max_recursions = 3
    config.pinata.jwt = "pinata secret"

    save_config(config, config_path, env_path)

    data = json.loads(config_path.read_text())
    assert data["agents"]["defaults"]["maxRecursions"] == 3
    assert data["pinata"]["jwt"] == ""
    assert 'HUDDLE_PINATA__JWT="pinata secret"' in env_path.read_text()
    assert not config_has_secrets(config_path)


def test_round_trip(tmp_path: Path) -> None:
    config_path, env_path = _paths(tmp_path)
    config = Config()
    config.agents.defaults.chat_mode = "standard"
    config.twitter.bearer_token = "bearer"
    save_config(config, config_path, env_path)

    loaded = load_config(config_path, env_path)

    assert loaded.agents.defaults.chat_mode == "standard"
    assert loaded.twitter.bearer_token == "bearer"


def test_real_environment_beats_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path, env_path = _paths(tmp_path)
    env_path.write_text("HUDDLE_XAI__API_KEY=from-file\n")
    monkeypatch.setenv("HUDDLE_XAI__API_KEY", "from-env")

    assert load_config(config_path, env_path).xai.api_key == "from-env"


def test_unreadable_config_falls_back_to_defaults(tmp_path: Path) -> None:
    config_path, env_path = _paths(tmp_path)
    config_path.write_text("{not json")

    config = load_config(config_path, env_path)

    assert config.agents.defaults.max_recursions == 10


def test_config_has_secrets_detects_plaintext_keys(tmp_path: Path) -> None:
    config_path, _ = _paths(tmp_path)
    config_path.write_text(json.dumps({"gateway": {"authToken": "oops"}}))
    assert config_has_secrets(config_path)


def test_convert_keys_is_recursive() -> None:
    assert convert_keys({"agents": {"defaults": {"maxToolRounds": 2}}}) == {
        "agents": {"defaults": {"max_tool_rounds": 2}}
    }
