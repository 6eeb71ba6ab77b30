"""Local asset store for generated images."""

from __future__ import annotations

from pathlib import Path

from huddle.utils.helpers import ensure_dir


class AssetStore:
    """Keyed blobs under a directory, optionally served at ``base_url``."""

    def __init__(self, root: Path, base_url: str = ""):
        self.root = ensure_dir(Path(root).expanduser())
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Asset key escapes the store: {key}")
        return path

    def put(self, key: str, data: bytes) -> Path:
        path = self._path(key)
        ensure_dir(path.parent)
        path.write_bytes(data)
        return path

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(f"No asset stored under {key}")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def url(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        return self._path(key).as_uri()
