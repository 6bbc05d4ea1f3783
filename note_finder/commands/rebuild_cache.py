"""Rebuild the note metadata cache from the vault."""

from __future__ import annotations

import click

from note_finder.cache.builder import build_cache
from note_finder.cache.models import CacheNote
from note_finder.cache.session import clear_cache_tables, get_cache_session
from note_finder.cli import Context, pass_context
from note_finder.exceptions import CacheError, VaultNotFoundError
from note_finder.utils.output import create_scan_progress, error, info, success, verbose

EXIT_SUCCESS = 0
EXIT_CACHE_ERROR = 2
EXIT_NO_VAULT = 3


@click.command("rebuild-cache")
@pass_context
def cli(ctx: Context) -> None:
    """Rebuild the note metadata cache from scratch.

    Clears all cached notes and tags and rescans every note file in
    the vault.

    \b
    Examples:
      note-finder rebuild-cache
      note-finder --vault ~/Notes -v rebuild-cache
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_NO_VAULT)

    try:
        vault_path = config.require_vault()
    except VaultNotFoundError as e:
        error(str(e), hint="Set [paths] vault or use --vault")
        raise SystemExit(EXIT_NO_VAULT)

    try:
        with get_cache_session(vault_path) as session:
            verbose("Clearing cache tables...")
            clear_cache_tables(session)
            if not ctx.quiet:
                info("Rebuilding cache...")
            with create_scan_progress() as progress:
                task = progress.add_task("Scanning notes...", total=None)
                count = build_cache(vault_path, session, config.extensions)
                progress.update(task, completed=count, total=count)
            if not ctx.quiet:
                with_tasks = session.query(CacheNote).filter_by(has_unfinished_tasks=True).count()
                msg = f"Cache rebuilt with {count} notes"
                if with_tasks:
                    msg += f" ({with_tasks} with open tasks)"
                success(msg)
    except (CacheError, OSError) as e:
        error(f"Cache error: {e}")
        raise SystemExit(EXIT_CACHE_ERROR)

    raise SystemExit(EXIT_SUCCESS)
