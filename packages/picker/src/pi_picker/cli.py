"""
CLI entry point for pi-picker.

    pi-picker filter QUERY [FILE]     rank lines of FILE (or stdin)
    pi-picker run QUERY -- CMD ...    rank the output lines of CMD
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console

from .config import get_debug_log_path
from .errors import FilterError
from .matchers import get_matcher, sort_by_score
from .render import render_highlighted, render_plain
from .session import Session
from .settings import PickerSettings, SettingsManager
from .source import BASE_SOURCE, Source, SourceTemplate
from .streaming import make_linewise_generator

app = typer.Typer(
    name="pi-picker",
    help="Incremental fuzzy/substring/regexp candidate selection",
    no_args_is_help=True,
)

console = Console()

logger = logging.getLogger(__name__)


def _setup_debug_logging() -> None:
    path = get_debug_log_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("pi_picker")
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    logger.debug("Debug logging to %s", path)


@app.callback()
def main_callback(
    debug: bool = typer.Option(False, "--debug", help="Write debug log to ~/.pi/picker/"),
) -> None:
    if debug:
        _setup_debug_logging()


def _read_lines(file: Path | None) -> list[str]:
    if file is None:
        text = sys.stdin.read()
    else:
        text = file.read_text(encoding="utf-8", errors="replace")
    return [line for line in text.splitlines() if line]


def _template(
    name: str,
    matcher: str | None,
    plain: bool,
    settings: PickerSettings,
    **fields: Any,
) -> SourceTemplate:
    try:
        matcher_fn = get_matcher(matcher or settings.default_matcher)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(2)
    return BASE_SOURCE.derive(
        name=name,
        matcher=matcher_fn,
        sorter=sort_by_score,
        renderer=render_plain if plain else render_highlighted,
        **fields,
    )


def _print_results(session: Session, limit: int) -> int:
    shown = 0
    for _header, rows in session.render():
        for row in rows[:limit - shown]:
            console.print(row, highlight=False, markup=False, soft_wrap=True)
            shown += 1
    return shown


@app.command("filter")
def filter_cmd(
    query: str = typer.Argument(..., help="Query (whitespace separates tokens)"),
    file: Optional[Path] = typer.Argument(None, help="Candidate file (default: stdin)"),
    matcher: Optional[str] = typer.Option(None, "--matcher", "-m", help="fuzzy | substring | regexp"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows to print"),
    plain: bool = typer.Option(False, "--plain", help="Do not highlight matches"),
) -> None:
    """Rank the lines of FILE (or stdin) against QUERY."""
    settings = SettingsManager.create().get()
    template = _template(str(file) if file else "stdin", matcher, plain, settings, candidates=_read_lines(file))
    with Session([template], settings=settings) as session:
        try:
            session.set_query(query)
        except FilterError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(2)
        if not _print_results(session, limit):
            raise typer.Exit(1)


async def _run_streaming(template: SourceTemplate, settings: PickerSettings, query: str, limit: int) -> int:
    async with Session([template], settings=settings) as session:
        session.set_query(query)
        await session.wait_idle()
        for error in session.errors:
            typer.echo(str(error), err=True)
        return _print_results(session, limit)


@app.command("run")
def run_cmd(
    query: str = typer.Argument(..., help="Query (whitespace separates tokens)"),
    command: List[str] = typer.Argument(..., help="Command whose output lines are the candidates"),
    matcher: Optional[str] = typer.Option(None, "--matcher", "-m", help="fuzzy | substring | regexp"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows to print"),
    plain: bool = typer.Option(False, "--plain", help="Do not highlight matches"),
) -> None:
    """Run COMMAND once and rank its output lines against QUERY."""

    def _argv(source: Source, session: Session) -> list[str] | None:
        # spawn once; later query edits only re-filter what has arrived
        return None if source.generation else list(command)

    settings = SettingsManager.create().get()
    template = _template(
        command[0], matcher, plain, settings,
        candidates=[],
        generator=make_linewise_generator(_argv),
    )
    try:
        shown = asyncio.run(_run_streaming(template, settings, query, limit))
    except FilterError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(2)
    if not shown:
        raise typer.Exit(1)


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
