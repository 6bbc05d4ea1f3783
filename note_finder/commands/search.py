"""Search the notes vault via the local metadata cache."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import PurePosixPath

import click
from rich.markup import escape

from note_finder.cache.builder import build_cache, load_documents, refresh_cache
from note_finder.cache.session import delete_cache, get_cache_session
from note_finder.cli import Context, pass_context
from note_finder.exceptions import CacheError, VaultNotFoundError
from note_finder.search.parser import parse_filter_search_tokens
from note_finder.search.query import filter_documents, filter_search_has_active_criteria
from note_finder.search.tokens import DateField, NoteDocument
from note_finder.utils.output import (
    create_note_table,
    create_scan_progress,
    error,
    info,
    pager_print,
    render_to_string,
    verbose,
)

EXIT_SUCCESS = 0
EXIT_NO_RESULTS = 0
EXIT_USAGE_ERROR = 1
EXIT_CACHE_ERROR = 2
EXIT_NO_VAULT = 3

# Sort keys accepted by --sort (prefix with - for descending)
SORT_KEYS: dict[str, str] = {
    "name": "name",
    "path": "path",
    "created": "created_ms",
    "modified": "modified_ms",
}


def _format_timestamp(timestamp_ms: int) -> str:
    """Format epoch milliseconds as a local ``YYYY-MM-DD HH:MM`` string."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")


def _display_name(document: NoteDocument) -> str:
    """File stem with its original casing."""
    return PurePosixPath(document.path).stem


def _sort_documents(
    documents: list[NoteDocument],
    sort_spec: str,
) -> list[NoteDocument]:
    descending = sort_spec.startswith("-")
    attr = SORT_KEYS[sort_spec.lstrip("-")]
    return sorted(documents, key=lambda doc: getattr(doc, attr), reverse=descending)


def _validate_sort(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> str | None:
    if value is not None and value.lstrip("-") not in SORT_KEYS:
        raise click.BadParameter(f"must be one of {', '.join(SORT_KEYS)} (prefix - to reverse)")
    return value


@click.command("search")
@click.argument("query", nargs=-1, required=True)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "paths", "json"]),
    default="table",
    help="Output format (default: table)",
)
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(min=1),
    default=None,
    help="Limit number of results",
)
@click.option(
    "--sort",
    "-s",
    "sort_spec",
    default="path",
    show_default=True,
    callback=_validate_sort,
    help="Sort by name, path, created or modified. Prefix with - for descending",
)
@click.option(
    "--date-field",
    type=click.Choice(["created", "modified"]),
    default=None,
    help="Timestamp used by @dates without c:/m: prefix (default: from config)",
)
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Worker threads for evaluating the query (default: from config)",
)
@click.option(
    "--rebuild-cache",
    is_flag=True,
    default=False,
    help="Force a full cache rebuild before searching",
)
@pass_context
def cli(
    ctx: Context,
    query: tuple[str, ...],
    output_format: str,
    limit: int | None,
    sort_spec: str,
    date_field: str | None,
    jobs: int | None,
    rebuild_cache: bool,
) -> None:
    """Find notes matching a filter query.

    QUERY words are joined with spaces. Words are lowercase name
    fragments unless prefixed:

    \b
      #tag/sub        note has the tag or one nested below it
      -#tag           note does not have the tag
      #   / -#        note has any tag / has no tags
      @today          date filters: today, yesterday, last7d, last30d,
                      thisweek, thismonth, 2026, 2026-02, 2026-Q2,
                      2026-W05, 2026-02-04, 04/02/2026, a..b
      @c:2026 @m:...  filter on created / modified time
      has:task        note has an unfinished "- [ ]" task
      -word           name does not contain word

    \b
    Tag-only queries may use AND / OR (AND binds tighter):
      note-finder search "#project/alpha OR #project/beta #urgent"

    \b
    Output formats:
      --format table   Rich table (default)
      --format paths   One note path per line (for piping)
      --format json    JSON array of note objects
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_USAGE_ERROR)

    try:
        vault_path = config.require_vault()
    except VaultNotFoundError as e:
        error(str(e), hint="Set [paths] vault or use --vault")
        raise SystemExit(EXIT_NO_VAULT)

    query_string = " ".join(query)
    tokens = parse_filter_search_tokens(query_string)
    if not filter_search_has_active_criteria(tokens):
        verbose(f"Query has no active criteria, listing every note: {query_string!r}")

    default_field = DateField(date_field) if date_field else config.date_field
    worker_count = jobs if jobs is not None else config.jobs

    try:
        if rebuild_cache:
            delete_cache(vault_path)

        with get_cache_session(vault_path) as session:
            if rebuild_cache:
                with create_scan_progress() as progress:
                    task = progress.add_task("Building cache...", total=None)
                    count = build_cache(vault_path, session, config.extensions)
                    progress.update(task, completed=count, total=count)
                if not ctx.quiet:
                    info(f"Cache built with {count} notes")
            else:
                result = refresh_cache(vault_path, session, config.extensions)
                if result and not ctx.quiet:
                    verbose(f"Cache refreshed: {result} notes updated")

            documents = load_documents(session)
    except (CacheError, OSError) as e:
        error(f"Cache error: {e}", hint="Try: note-finder rebuild-cache")
        raise SystemExit(EXIT_CACHE_ERROR)

    matches = filter_documents(documents, tokens, default_field, jobs=worker_count)
    matches = _sort_documents(matches, sort_spec)
    if limit is not None:
        matches = matches[:limit]

    if not matches:
        if not ctx.quiet:
            info(f"No results for: {escape(query_string)}")
        raise SystemExit(EXIT_NO_RESULTS)

    if output_format == "table":
        _print_table(matches, query_string, quiet=ctx.quiet)
    elif output_format == "paths":
        _print_paths(matches)
    else:
        _print_json(matches)

    raise SystemExit(EXIT_SUCCESS)


def _print_table(documents: list[NoteDocument], query_string: str, *, quiet: bool) -> None:
    """Print results as a Rich table, using pager when appropriate."""
    if not quiet:
        info(f"Search: {escape(query_string)} ({len(documents)} results)")

    table = create_note_table()
    for doc in documents:
        table.add_row(
            escape(_display_name(doc)),
            escape(" ".join(f"#{tag}" for tag in doc.tags)),
            "\u2610" if doc.has_unfinished_tasks else "",
            _format_timestamp(doc.modified_ms),
            escape(doc.path),
        )

    # Table header = top border + header + header border
    pager_print(render_to_string(table), header_lines=3)


def _print_paths(documents: list[NoteDocument]) -> None:
    """Print one note path per line."""
    for doc in documents:
        click.echo(doc.path)


def _print_json(documents: list[NoteDocument]) -> None:
    """Print results as JSON array."""
    results = [
        {
            "path": doc.path,
            "name": _display_name(doc),
            "tags": list(doc.tags),
            "has_unfinished_tasks": doc.has_unfinished_tasks,
            "created_ms": doc.created_ms,
            "modified_ms": doc.modified_ms,
        }
        for doc in documents
    ]
    click.echo(json.dumps(results, indent=2))
