"""Initialize configuration file for note-finder."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import click

from note_finder.cache.session import CACHE_DB_NAME
from note_finder.cli import Context, pass_context
from note_finder.config import get_default_config_path
from note_finder.utils.fileops import write_private_text
from note_finder.utils.output import error, info, success


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("note_finder").joinpath("config.example.toml").read_text()


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/note-finder/config.toml)",
)
@pass_context
def cli(ctx: Context, force: bool, output: Path | None) -> None:
    """Create a new configuration file with default settings.

    Creates a configuration file at the default location
    (~/.config/note-finder/config.toml) or at a custom path
    specified with --output.

    Examples:

    \b
      # Create config at default location
      note-finder init-config

    \b
      # Create config at custom location
      note-finder init-config --output ./my-config.toml

    \b
      # Overwrite existing config
      note-finder init-config --force
    """
    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()

    try:
        write_private_text(config_path, _load_example_config(), overwrite=force)
    except FileExistsError:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    success(f"Created config file: {config_path}")
    if not ctx.quiet:
        info("Edit this file to point [paths] vault at your notes.")
        info(f"Tip: Add '{CACHE_DB_NAME}' to your vault's .gitignore to exclude the search cache.")
