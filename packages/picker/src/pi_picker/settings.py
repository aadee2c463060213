"""
Settings management for the picker.

Global settings:  ~/.pi/picker/settings.json
Project settings: <cwd>/.pi/picker.json

Project values override global ones; runtime overrides (e.g. CLI flags)
override both and are never written to disk.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Any

from .config import get_project_settings_path, get_settings_path

logger = logging.getLogger(__name__)


@dataclass
class PickerSettings:
    initial_buffer_size: int = 1000      # first GrowthBuffer capacity for streaming sources
    default_matcher: str = "fuzzy"       # fuzzy | substring | regexp
    highlight_style: str = "bold magenta"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PickerSettings":
        known = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in data.items() if k in known}
        return cls(**filtered)


_CAMEL_TO_SNAKE = {
    "initialBufferSize": "initial_buffer_size",
    "defaultMatcher": "default_matcher",
    "highlightStyle": "highlight_style",
}


def deep_merge_settings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Merge override into base. Nested objects merge one level deep;
    arrays and primitives: override wins. None values never override.
    """
    result = dict(base)
    for key, val in override.items():
        if val is None:
            continue
        base_val = result.get(key)
        if isinstance(val, dict) and isinstance(base_val, dict):
            result[key] = {**base_val, **val}
        else:
            result[key] = val
    return result


class SettingsManager:
    """Loads and merges global and project settings."""

    def __init__(
        self,
        cwd: str | None = None,
        global_settings_file: str | None = None,
        project_settings_file: str | None = None,
    ) -> None:
        self._global_settings_file = global_settings_file or get_settings_path()
        self._project_settings_file = project_settings_file or get_project_settings_path(cwd)
        self._global_raw: dict[str, Any] = {}
        self._project_raw: dict[str, Any] = {}
        self._runtime_overrides: dict[str, Any] = {}
        self._merged: dict[str, Any] = {}
        self._errors: list[dict[str, Any]] = []
        self._loaded = False

    @classmethod
    def create(cls, cwd: str | None = None) -> "SettingsManager":
        mgr = cls(cwd=cwd)
        mgr.load()
        return mgr

    @classmethod
    def in_memory(cls, settings: dict[str, Any] | None = None) -> "SettingsManager":
        """Create an in-memory settings manager (no file I/O)."""
        mgr = cls(global_settings_file=os.devnull, project_settings_file=os.devnull)
        if settings:
            mgr._global_raw = dict(settings)
            mgr._rebuild()
        mgr._loaded = True
        return mgr

    # ── Load ──────────────────────────────────────────────────────────────────

    def load(self) -> None:
        self._global_raw = self._load_file(self._global_settings_file, "global")
        self._project_raw = self._load_file(self._project_settings_file, "project")
        self._rebuild()
        self._loaded = True

    def _load_file(self, path: str, scope: str) -> dict[str, Any]:
        if not os.path.isfile(path):
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable %s settings %s: %s", scope, path, e)
            self._errors.append({"scope": scope, "path": path, "error": str(e)})
            return {}
        if not isinstance(raw, dict):
            self._errors.append({"scope": scope, "path": path, "error": "settings must be a JSON object"})
            return {}
        return {_CAMEL_TO_SNAKE.get(k, k): v for k, v in raw.items()}

    def _rebuild(self) -> None:
        self._merged = deep_merge_settings(self._global_raw, self._project_raw)
        if self._runtime_overrides:
            self._merged = deep_merge_settings(self._merged, self._runtime_overrides)

    def apply_overrides(self, overrides: dict[str, Any]) -> None:
        """Apply runtime overrides (not persisted to disk)."""
        self._runtime_overrides = deep_merge_settings(self._runtime_overrides, overrides)
        self._rebuild()

    # ── Read access ───────────────────────────────────────────────────────────

    def get(self) -> PickerSettings:
        if not self._loaded:
            self.load()
        return PickerSettings.from_dict(self._merged)

    def drain_errors(self) -> list[dict[str, Any]]:
        """Drain and return all accumulated settings errors."""
        drained = list(self._errors)
        self._errors = []
        return drained
