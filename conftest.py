"""
Root conftest.py — isolates picker configuration and registers custom markers.

Markers:
  @pytest.mark.subprocess   — spawns external processes; skipped with --no-subprocess
"""
from __future__ import annotations

import logging

import pytest


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolated_picker_dir(tmp_path, monkeypatch):
    """Point ~/.pi/picker and the project .pi/ directory into tmp_path."""
    monkeypatch.setenv("PI_PICKER_DIR", str(tmp_path / "picker"))
    monkeypatch.chdir(tmp_path)
    picker_logger = logging.getLogger("pi_picker")
    handlers = list(picker_logger.handlers)
    level = picker_logger.level
    yield
    # --debug attaches a file handler; drop anything a test added
    for handler in picker_logger.handlers[:]:
        if handler not in handlers:
            picker_logger.removeHandler(handler)
            handler.close()
    picker_logger.setLevel(level)


# ---------------------------------------------------------------------------
# Custom markers
# ---------------------------------------------------------------------------

def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "subprocess: mark test as spawning external processes (skip with --no-subprocess)",
    )


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--no-subprocess",
        action="store_true",
        default=False,
        help="Skip tests marked with @pytest.mark.subprocess",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip @pytest.mark.subprocess tests when --no-subprocess is given."""
    if not config.getoption("--no-subprocess"):
        return
    skip = pytest.mark.skip(reason="Subprocess test — skipped by --no-subprocess")
    for item in items:
        if "subprocess" in item.keywords:
            item.add_marker(skip)
