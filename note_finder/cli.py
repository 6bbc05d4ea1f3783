"""Command-line interface for note-finder."""

from __future__ import annotations

import locale
import logging
import os
from pathlib import Path

import click

from note_finder import __version__
from note_finder.config import Config, load_config
from note_finder.exceptions import ConfigError
from note_finder.search.dates import DayMonthOrder, configure_day_month_order
from note_finder.utils.output import (
    error,
    set_color,
    set_pager,
    set_verbosity,
    warning,
)

log = logging.getLogger(__name__)


class Context:
    """Shared context for all commands."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: bool = False
        self.debug: bool = False
        self.quiet: bool = False
        self.pager: bool | None = None  # None = auto


pass_context = click.make_pass_decorator(Context, ensure=True)


def _apply_date_order(config: Config) -> None:
    """Use the configured day/month order, or the user's locale for ``auto``."""
    if config.date_order == "auto":
        configure_day_month_order(None)
        try:
            locale.setlocale(locale.LC_TIME, "")
        except locale.Error as e:
            log.debug("Could not apply LC_TIME from environment: %s", e)
    else:
        configure_day_month_order(DayMonthOrder(config.date_order))


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    help="Path to config file (default: ~/.config/note-finder/config.toml)",
)
@click.option(
    "--vault",
    "-V",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    help="Path to the notes vault (overrides config)",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug output (implies --verbose)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Suppress non-error output",
)
@click.option(
    "--pager/--no-pager",
    default=None,
    help="Force pager on/off (default: auto-detect)",
)
@click.version_option(version=__version__, prog_name="note-finder")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    vault: Path | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
    pager: bool | None,
) -> None:
    """note-finder: Filter a folder of Markdown notes from the command line.

    Queries combine name fragments, #tags, @dates and has:task, e.g.
    "#project/alpha OR #project/beta", "meeting @thisweek" or
    "-#archive has:task".

    Configuration is loaded from ~/.config/note-finder/config.toml by default.
    Use --config to specify an alternative configuration file.

    Examples:

        # Notes tagged #work modified this week
        note-finder search "#work @thisweek"

        # Show how a query is understood
        note-finder explain "#a OR #b #c"
    """
    ctx.ensure_object(Context)
    app_ctx = ctx.obj
    app_ctx.verbose = verbose or debug
    app_ctx.debug = debug
    app_ctx.quiet = quiet
    app_ctx.pager = pager

    set_verbosity(verbose=verbose, debug=debug)
    set_pager(pager)

    # Color is disabled by --no-color, NO_COLOR env, or config
    disable_color = no_color or os.environ.get("NO_COLOR") is not None
    if disable_color:
        set_color(False)

    try:
        loaded_config, warnings = load_config(config)
    except ConfigError as e:
        error(str(e), hint="Fix the file or create a new one with: note-finder init-config")
        ctx.exit(1)
        return

    app_ctx.config = loaded_config

    if vault is not None:
        loaded_config.vault = vault.expanduser().resolve()
        # Missing-vault warnings refer to the configured path, not --vault
        warnings = [w for w in warnings if not w.startswith("Notes vault")]

    if not disable_color and not loaded_config.colored_output:
        set_color(False)

    _apply_date_order(loaded_config)

    if not quiet:
        for warn in warnings:
            warning(warn)


@cli.command("help")
@click.argument("command", required=False, nargs=-1)
@click.pass_context
def help_cmd(ctx: click.Context, command: tuple[str, ...]) -> None:
    """Show help for a command."""
    group = cli
    for name in command:
        cmd = group.get_command(ctx, name)
        if cmd is None:
            error(f"Unknown command: {name}")
            ctx.exit(1)
            return
        if isinstance(cmd, click.Group):
            group = cmd
        else:
            click.echo(cmd.get_help(ctx))
            return
    click.echo(group.get_help(ctx))


def register_commands() -> None:
    """Register all commands from the commands package."""
    from note_finder.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


# Register commands on import
register_commands()
