"""Toggle tag tokens inside a raw query string."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from note_finder.search.parser import CONNECTOR_WORDS
from note_finder.search.tokens import InclusionOperator


class QueryAction(enum.Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class QueryUpdate:
    """Result of :func:`update_filter_query_with_tag`."""

    query: str
    action: QueryAction
    changed: bool


def _is_connector(token: str) -> bool:
    return token.lower() in CONNECTOR_WORDS


def _is_tag_only_query(tokens: list[str]) -> bool:
    """Whether every token is a connector or a (negated) tag operand."""
    return all(
        _is_connector(token) or token.startswith("#") or token.startswith("-#")
        for token in tokens
    )


def _prune_connectors(tokens: list[str], removal_index: int) -> list[str]:
    """Drop connectors left dangling by removing ``tokens[removal_index]``."""
    pruned = tokens[:removal_index] + tokens[removal_index + 1 :]

    if removal_index > 0 and _is_connector(pruned[removal_index - 1]):
        del pruned[removal_index - 1]

    while pruned and _is_connector(pruned[0]):
        pruned.pop(0)

    collapsed: list[str] = []
    for token in pruned:
        if collapsed and _is_connector(token) and _is_connector(collapsed[-1]):
            continue
        collapsed.append(token)

    while collapsed and _is_connector(collapsed[-1]):
        collapsed.pop()

    return collapsed


def update_filter_query_with_tag(
    query: str,
    normalized_tag: str,
    operator: InclusionOperator = InclusionOperator.AND,
) -> QueryUpdate:
    """Add ``#normalized_tag`` to ``query``, or remove it if already present.

    In queries made only of tags and connectors, ``operator`` is inserted
    before an added tag and the connector before a removed tag is pruned.
    Other queries treat connector words as text: tags are appended or
    removed without touching them.
    """
    trimmed = query.strip()
    if not normalized_tag:
        return QueryUpdate(query=trimmed, action=QueryAction.REMOVED, changed=False)

    formatted_tag = f"#{normalized_tag}"
    target = formatted_tag.lower()
    tokens = trimmed.split()
    tag_only = _is_tag_only_query(tokens)

    removal_index = next(
        (index for index, token in enumerate(tokens) if token.lower() == target),
        None,
    )
    if removal_index is not None:
        if tag_only:
            remaining = _prune_connectors(tokens, removal_index)
        else:
            remaining = tokens[:removal_index] + tokens[removal_index + 1 :]
        next_query = " ".join(remaining)
        return QueryUpdate(
            query=next_query,
            action=QueryAction.REMOVED,
            changed=next_query != trimmed,
        )

    next_tokens = list(tokens)
    if not next_tokens or not tag_only:
        next_tokens.append(formatted_tag)
    elif _is_connector(next_tokens[-1]):
        next_tokens[-1] = operator.value
        next_tokens.append(formatted_tag)
    else:
        next_tokens.extend([operator.value, formatted_tag])

    next_query = " ".join(next_tokens)
    return QueryUpdate(query=next_query, action=QueryAction.ADDED, changed=next_query != trimmed)
