"""
Configuration paths for the picker (~/.pi/picker/*).
"""
from __future__ import annotations

import os

APP_NAME: str = "pi-picker"
CONFIG_DIR_NAME: str = ".pi"
VERSION: str = "0.0.1"

ENV_PICKER_DIR: str = "PI_PICKER_DIR"

PROJECT_SETTINGS_FILE: str = "picker.json"


def get_picker_dir() -> str:
    """Get the picker config directory (e.g., ~/.pi/picker/)."""
    env_dir = os.environ.get(ENV_PICKER_DIR)
    if env_dir:
        home = os.path.expanduser("~")
        if env_dir == "~":
            return home
        if env_dir.startswith("~/"):
            return home + env_dir[1:]
        return env_dir
    return os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME, "picker")


def get_settings_path() -> str:
    """Get path to the global settings.json."""
    return os.path.join(get_picker_dir(), "settings.json")


def get_project_settings_path(cwd: str | None = None) -> str:
    """Get path to the project settings file (<cwd>/.pi/picker.json)."""
    return os.path.join(cwd or os.getcwd(), CONFIG_DIR_NAME, PROJECT_SETTINGS_FILE)


def get_debug_log_path() -> str:
    """Get path to debug log file."""
    return os.path.join(get_picker_dir(), f"{APP_NAME}-debug.log")
