"""Show how a filter query is compiled."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, assert_never

import click

from note_finder.cli import Context, pass_context
from note_finder.search.parser import parse_filter_search_tokens
from note_finder.search.query import (
    filter_search_has_active_criteria,
    filter_search_needs_date_lookup,
    filter_search_needs_tag_lookup,
    filter_search_requires_tags_for_every_match,
)
from note_finder.search.tokens import (
    DateFilterRange,
    ExpressionOperator,
    FilterSearchTokens,
    NotTagOperand,
    RequireTaggedOperand,
    TagExpressionToken,
    TagOperand,
    UntaggedOperand,
)


def _format_bound(timestamp_ms: int | None) -> str | None:
    if timestamp_ms is None:
        return None
    return datetime.fromtimestamp(timestamp_ms / 1000).isoformat()


def _range_to_dict(date_range: DateFilterRange) -> dict[str, Any]:
    return {
        "field": date_range.field.value,
        "start_ms": date_range.start_ms,
        "end_ms": date_range.end_ms,
        "start": _format_bound(date_range.start_ms),
        "end": _format_bound(date_range.end_ms),
    }


def expression_element_to_str(token: TagExpressionToken) -> str:
    """Render one postfix element in query syntax (``#a``, ``-#a``, ``AND``)."""
    if isinstance(token, ExpressionOperator):
        return token.operator.value
    if isinstance(token, TagOperand):
        return f"#{token.value}"
    if isinstance(token, NotTagOperand):
        return f"-#{token.value}"
    if isinstance(token, RequireTaggedOperand):
        return "#"
    if isinstance(token, UntaggedOperand):
        return "-#"
    assert_never(token)


def tokens_to_dict(tokens: FilterSearchTokens) -> dict[str, Any]:
    """Convert compiled tokens to a JSON-serializable dict."""
    return {
        "mode": tokens.mode.value,
        "expression": [expression_element_to_str(t) for t in tokens.expression],
        "has_inclusions": tokens.has_inclusions,
        "requires_tags": tokens.requires_tags,
        "all_require_tags": tokens.all_require_tags,
        "included_tag_tokens": list(tokens.included_tag_tokens),
        "name_tokens": list(tokens.name_tokens),
        "tag_tokens": list(tokens.tag_tokens),
        "date_ranges": [_range_to_dict(r) for r in tokens.date_ranges],
        "exclude_date_ranges": [_range_to_dict(r) for r in tokens.exclude_date_ranges],
        "exclude_name_tokens": list(tokens.exclude_name_tokens),
        "exclude_tag_tokens": list(tokens.exclude_tag_tokens),
        "require_tagged": tokens.require_tagged,
        "include_untagged": tokens.include_untagged,
        "exclude_tagged": tokens.exclude_tagged,
        "require_unfinished_tasks": tokens.require_unfinished_tasks,
        "exclude_unfinished_tasks": tokens.exclude_unfinished_tasks,
        "summary": {
            "has_active_criteria": filter_search_has_active_criteria(tokens),
            "needs_tag_lookup": filter_search_needs_tag_lookup(tokens),
            "needs_date_lookup": filter_search_needs_date_lookup(tokens),
            "every_match_is_tagged": filter_search_requires_tags_for_every_match(tokens),
        },
    }


@click.command("explain")
@click.argument("query", nargs=-1, required=True)
@pass_context
def cli(ctx: Context, query: tuple[str, ...]) -> None:
    """Print the compiled form of QUERY as JSON.

    Shows whether the query runs in tag mode (boolean expression over
    tags, in postfix order) or filter mode, and which date ranges the
    @ fragments resolved to.

    \b
    Examples:
      note-finder explain "#a OR #b #c"
      note-finder explain "meeting @thisweek -#archive"
    """
    tokens = parse_filter_search_tokens(" ".join(query))
    click.echo(json.dumps(tokens_to_dict(tokens), indent=2))
