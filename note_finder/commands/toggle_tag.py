"""Add or remove a tag in a query string."""

from __future__ import annotations

import click

from note_finder.cli import Context, pass_context
from note_finder.search.mutate import update_filter_query_with_tag
from note_finder.search.tokens import InclusionOperator
from note_finder.utils.output import verbose


@click.command("toggle-tag")
@click.argument("query")
@click.argument("tag")
@click.option(
    "--operator",
    "-o",
    type=click.Choice(["AND", "OR"], case_sensitive=False),
    default="AND",
    show_default=True,
    help="Connector inserted before an added tag in tag-only queries",
)
@pass_context
def cli(ctx: Context, query: str, tag: str, operator: str) -> None:
    """Toggle TAG in QUERY and print the resulting query.

    The tag is removed if the query already contains it, and added
    otherwise. A leading # on TAG is optional.

    \b
    Examples:
      note-finder toggle-tag "#alpha" beta --operator OR
      note-finder toggle-tag "#alpha OR #beta" "#beta"
    """
    normalized = tag.strip().lstrip("#").lower()
    update = update_filter_query_with_tag(query, normalized, InclusionOperator(operator.upper()))

    verbose(f"#{normalized} {update.action.value}" if update.changed else "Query unchanged")
    click.echo(update.query)
