"""Utility functions for huddle."""

import re
import time
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the huddle data directory (~/.huddle)."""
    return ensure_dir(Path.home() / ".huddle")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def normalize_session_id(raw: str | None) -> str:
    """Collapse anything that is not a safe id character into dashes."""
    value = re.sub(r"[^A-Za-z0-9_.-]+", "-", (raw or "").strip()).strip("-")
    return value or "default"
