"""Rich console output helpers for note-finder."""

from __future__ import annotations

import io
import logging
import os
import shutil
import subprocess
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.theme import Theme

# Set once by cli.py after argument parsing
_verbose_enabled: bool = False

# None pages automatically, True always, False never
_pager_mode: bool | None = None

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "path": "blue underline",
        "note.name": "bold",
        "note.tag": "magenta",
        "note.task": "yellow",
        "progress.description": "bold blue",
    }
)

console = Console(theme=THEME, stderr=False)
error_console = Console(theme=THEME, stderr=True)


def set_verbosity(*, verbose: bool = False, debug: bool = False) -> None:
    """Turn on verbose messages and, with ``debug``, log records.

    ``debug`` implies ``verbose`` and routes every ``note_finder.*`` logger
    through a rich handler on stderr. Otherwise only warnings are logged.
    """
    global _verbose_enabled
    _verbose_enabled = verbose or debug

    logger = logging.getLogger("note_finder")
    if not debug:
        logger.setLevel(logging.WARNING)
        return
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=error_console, show_path=False, rich_tracebacks=True))
    logger.setLevel(logging.DEBUG)


def set_color(enabled: bool) -> None:
    """Enable or disable color on both console instances."""
    console.no_color = not enabled
    error_console.no_color = not enabled


def set_pager(mode: bool | None) -> None:
    """Configure pager mode.

    Args:
        mode: True = always, False = never, None = auto (TTY + content > height).
    """
    global _pager_mode
    _pager_mode = mode


def _find_pager() -> list[str]:
    """Use $PAGER when set, else less with ANSI colors and quit-if-one-screen."""
    pager_env = os.environ.get("PAGER")
    if pager_env:
        return pager_env.split()

    return ["less", "-RFS"]


def pager_print(content: str, *, header_lines: int = 0) -> None:
    """Print content through a pager if appropriate.

    Uses auto-detection: pages only if stdout is a TTY and content
    exceeds the terminal height. Honors ``_pager_mode`` setting.

    Args:
        content: ANSI-formatted string to display.
        header_lines: Number of header lines to keep sticky (for less --header).
    """
    lines = content.count("\n")
    term_height = shutil.get_terminal_size().lines

    use_pager = _pager_mode
    if use_pager is None:
        use_pager = sys.stdout.isatty() and lines > term_height

    if not use_pager:
        sys.stdout.write(content)
        sys.stdout.flush()
        return

    cmd = _find_pager()
    if cmd[0] == "less" and header_lines > 0:
        cmd.append(f"--header={header_lines}")

    try:
        env = os.environ.copy()
        env.setdefault("LESSCHARSET", "utf-8")
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            env=env,
        )
        proc.communicate(input=content)
    except (OSError, subprocess.SubprocessError):
        # Pager failed, fall back to direct output
        sys.stdout.write(content)
        sys.stdout.flush()


def render_to_string(renderable: Any, *, width: int = 1000) -> str:
    """Render a rich object to a string honoring the current color setting."""
    buf = io.StringIO()
    render_console = Console(
        file=buf,
        theme=THEME,
        force_terminal=not console.no_color,
        width=width,
        no_color=console.no_color,
    )
    render_console.print(renderable)
    return buf.getvalue()


def info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/info]")


def warning(message: str) -> None:
    """Print a warning message to stderr."""
    error_console.print(f"[warning]Warning:[/warning] {message}")


def error(message: str, hint: str | None = None) -> None:
    """Print an error message to stderr.

    Args:
        message: The error message.
        hint: Optional hint for resolution.
    """
    error_console.print(f"[error]Error:[/error] {message}")
    if hint:
        error_console.print(f"  [info]Hint:[/info] {hint}")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/success]")


def verbose(message: str) -> None:
    """Print a message only when verbose mode is enabled."""
    if _verbose_enabled:
        error_console.print(f"[info]{message}[/info]")




def create_scan_progress() -> Progress:
    """Progress display on stderr for a vault scan of unknown size."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=error_console,
        transient=True,
    )


def create_note_table() -> Table:
    """Empty results table with the columns used for note listings.

    Rows are ``(name, tags, tasks, modified, path)`` and may contain rich
    markup, so callers escape note-derived text.
    """
    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="note.name", no_wrap=True)
    table.add_column("Tags", style="note.tag")
    table.add_column("Tasks", style="note.task", justify="center")
    table.add_column("Modified", justify="right", no_wrap=True)
    table.add_column("Path", style="path", no_wrap=True)
    return table
