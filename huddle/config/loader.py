"""Configuration loading utilities."""

import json
import os
import stat
from pathlib import Path
from typing import Any

from huddle.config.schema import Config


# Keys in the camelCase config that are considered secrets.
# Paths are relative to the root JSON object.
SECRET_PATHS: list[tuple[str, ...]] = [
    ("providers", "openrouter", "apiKey"),
    ("providers", "openai", "apiKey"),
    ("providers", "anthropic", "apiKey"),
    ("providers", "bedrock", "apiKey"),
    ("verification", "apiKey"),
    ("pinata", "jwt"),
    ("twitter", "consumerKey"),
    ("twitter", "consumerSecret"),
    ("twitter", "accessToken"),
    ("twitter", "accessTokenSecret"),
    ("twitter", "bearerToken"),
    ("xai", "apiKey"),
    ("images", "apiKey"),
    ("gateway", "authToken"),
]


def env_var_for(config_keys: tuple[str, ...]) -> str:
    """Env var name for a camelCase config path, e.g. HUDDLE_PINATA__JWT."""
    return "HUDDLE_" + "__".join(camel_to_snake(k).upper() for k in config_keys)


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".huddle" / "config.json"


def get_env_path() -> Path:
    """Get the default secrets .env file path."""
    return Path.home() / ".huddle" / ".env"


def _lock_file(path: Path) -> None:
    """Set file permissions to 600 (owner read/write only)."""
    try:
        path.chmod(stat.S_IRUSR | stat.S_IWUSR)
    except OSError:
        pass  # Windows or restricted FS


def _load_dotenv(env_path: Path) -> dict[str, str]:
    """Parse a simple .env file into a dict (no shell expansion)."""
    values: dict[str, str] = {}
    if not env_path.exists():
        return values
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        values[key.strip()] = value
    return values


def _inject_env(env_path: Path) -> None:
    """Load .env values into os.environ (existing vars take precedence)."""
    for key, value in _load_dotenv(env_path).items():
        os.environ.setdefault(key, value)


def load_config(config_path: Path | None = None, env_path: Path | None = None) -> Config:
    """
    Load configuration from file + .env secrets.

    Resolution order (highest priority wins):
      1. Real environment variables (e.g. export HUDDLE_PINATA__JWT=…)
      2. ~/.huddle/.env file
      3. ~/.huddle/config.json

    Args:
        config_path: Optional path to config file. Uses default if not provided.
        env_path: Optional path to the secrets file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()
    env_path = env_path or get_env_path()

    # Inject .env into os.environ before Pydantic reads env vars
    _inject_env(env_path)

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            config = Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            print(f"Warning: Failed to load config from {path}: {e}")
            print("Using default configuration.")
            config = Config()
    else:
        config = Config()

    # Secrets from the environment win over blanks left in config.json.
    _apply_env_secrets(config)

    return config


def save_config(config: Config, config_path: Path | None = None, env_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Secrets are written to the .env file (mode 600) and stripped from
    config.json so that the JSON file contains no credentials.
    """
    path = config_path or get_config_path()
    env_path = env_path or get_env_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    _write_secrets_to_env(data, env_path)
    _strip_secrets(data)

    with open(path, "w") as f:
        json.dump(data, f, indent=2)

    _lock_file(path)
    _lock_file(env_path)


# ── Secret extraction helpers ──


def _get_nested(data: dict, keys: tuple[str, ...]) -> str:
    """Retrieve a nested value from a dict by key path, returning '' on miss."""
    current: Any = data
    for k in keys:
        if not isinstance(current, dict):
            return ""
        current = current.get(k, "")
    return current if isinstance(current, str) else ""


def _set_nested(data: dict, keys: tuple[str, ...], value: str) -> None:
    """Set a nested value in a dict by key path."""
    current = data
    for k in keys[:-1]:
        if k not in current or not isinstance(current[k], dict):
            current[k] = {}
        current = current[k]
    current[keys[-1]] = value


def _write_secrets_to_env(data: dict, env_path: Path) -> None:
    """Extract secrets from camelCase config data and write to .env file."""
    existing = _load_dotenv(env_path) if env_path.exists() else {}

    for config_keys in SECRET_PATHS:
        value = _get_nested(data, config_keys)
        # Empty config values never clear a key set directly in .env
        if value:
            existing[env_var_for(config_keys)] = value

    env_path.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        "# huddle secrets, managed automatically. Do not commit this file.",
        "",
    ]
    for key in sorted(existing):
        val = existing[key]
        if " " in val or '"' in val or "'" in val or "#" in val:
            val = '"' + val.replace("\\", "\\\\").replace('"', '\\"') + '"'
        lines.append(f"{key}={val}")
    lines.append("")
    env_path.write_text("\n".join(lines), encoding="utf-8")
    _lock_file(env_path)


def _strip_secrets(data: dict) -> None:
    """Remove secret values from camelCase config data (in-place)."""
    for config_keys in SECRET_PATHS:
        _set_nested(data, config_keys, "")


def _apply_env_secrets(config: Config) -> None:
    """Overlay secret values from environment variables onto the config object."""
    for config_keys in SECRET_PATHS:
        value = os.environ.get(env_var_for(config_keys), "")
        if not value:
            continue
        obj: Any = config
        attrs = [camel_to_snake(k) for k in config_keys]
        for part in attrs[:-1]:
            obj = getattr(obj, part, None)
            if obj is None:
                break
        if obj is not None:
            setattr(obj, attrs[-1], value)


def config_has_secrets(config_path: Path | None = None) -> bool:
    """Check if config.json still contains non-empty secret values."""
    path = config_path or get_config_path()
    if not path.exists():
        return False
    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return False
    return any(_get_nested(data, keys) for keys in SECRET_PATHS)


# ── Key conversion helpers ──


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
