"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

SETTINGS_ENV_VAR = "PHOTO_TAGGER_SETTINGS"
USER_SETTINGS_PATH = Path.home() / ".photo-tagger" / "settings.json"


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, settings_path: str | Path | None = None) -> None:
        self._path = Path(settings_path) if settings_path is not None else None
        self._data: dict[str, Any] = {}
        if self._path is None:
            return
        if not self._path.exists():
            raise FileNotFoundError(f"settings.json not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            self._data = json.load(f)

    @property
    def path(self) -> Path | None:
        return self._path

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def get_sort_keys(self) -> list[tuple[str, bool]]:
        """Parse `sorting.defaults`, a list like [{"field": "filename", "asc": true}]."""
        raw = self.get("sorting.defaults", [])
        result: list[tuple[str, bool]] = []
        if isinstance(raw, list):
            for item in raw:
                if isinstance(item, dict) and "field" in item:
                    result.append((str(item.get("field")), bool(item.get("asc", True))))
        return result


def load_settings(*candidates: str | Path) -> JsonSettings:
    """Load the first existing settings file.

    Looks at `$PHOTO_TAGGER_SETTINGS`, then `~/.photo-tagger/settings.json`,
    then `candidates`; returns empty settings when none exists.
    """
    paths: list[Path] = []
    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        paths.append(Path(env_path))
    paths.append(USER_SETTINGS_PATH)
    paths.extend(Path(c) for c in candidates)
    for path in paths:
        if path.exists():
            return JsonSettings(path)
    return JsonSettings()
