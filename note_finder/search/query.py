"""Evaluate compiled filter search tokens against note attributes."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import assert_never

from note_finder.search.tokens import (
    DateField,
    DateFilterRange,
    ExpressionOperator,
    FilterMode,
    FilterSearchTokens,
    InclusionOperator,
    NoteDocument,
    NotTagOperand,
    RequireTaggedOperand,
    TagExpressionToken,
    TagOperand,
    UntaggedOperand,
)

# Documents per worker task when evaluating in parallel
_CHUNK_SIZE = 512


def tag_matches_token(tag: str, token: str) -> bool:
    """Whether ``tag`` equals ``token`` or is nested under ``token/``."""
    if not tag or not token:
        return False
    return tag == token or tag.startswith(f"{token}/")


def _has_tag_match(tags: Sequence[str], token: str) -> bool:
    return any(tag_matches_token(tag, token) for tag in tags)


def evaluate_tag_expression(
    expression: Sequence[TagExpressionToken],
    tags: Sequence[str],
) -> bool:
    """Evaluate a postfix tag expression against lowercase tag paths.

    An empty expression matches everything.
    """
    if not expression:
        return True

    stack: list[bool] = []
    for token in expression:
        if isinstance(token, ExpressionOperator):
            if len(stack) < 2:
                return False
            right = stack.pop()
            left = stack.pop()
            if token.operator is InclusionOperator.AND:
                stack.append(left and right)
            else:
                stack.append(left or right)
        elif isinstance(token, TagOperand):
            stack.append(_has_tag_match(tags, token.value))
        elif isinstance(token, NotTagOperand):
            stack.append(not _has_tag_match(tags, token.value))
        elif isinstance(token, RequireTaggedOperand):
            stack.append(len(tags) > 0)
        elif isinstance(token, UntaggedOperand):
            stack.append(len(tags) == 0)
        else:
            assert_never(token)

    return stack[-1] if stack else True


def _matches_filter_mode(name: str, tags: Sequence[str], tokens: FilterSearchTokens) -> bool:
    if any(token in name for token in tokens.exclude_name_tokens):
        return False

    if tokens.exclude_tagged:
        if tags:
            return False
    elif tokens.exclude_tag_tokens and tags:
        if any(_has_tag_match(tags, token) for token in tokens.exclude_tag_tokens):
            return False

    if not all(token in name for token in tokens.name_tokens):
        return False

    if tokens.require_tagged or tokens.tag_tokens:
        if not tags:
            return False
        if not all(_has_tag_match(tags, token) for token in tokens.tag_tokens):
            return False

    return True


def file_matches_filter_tokens(
    name: str,
    tags: Sequence[str],
    tokens: FilterSearchTokens,
    *,
    has_unfinished_tasks: bool = False,
) -> bool:
    """Check the name, tag and task criteria of ``tokens``.

    Args:
        name: Lowercase display name.
        tags: Lowercase tag paths without ``#``.
        tokens: Compiled query.
        has_unfinished_tasks: Whether the note has an open task.

    Returns:
        True when the note passes. Date criteria are checked separately
        by :func:`file_matches_date_filter_tokens`.
    """
    if tokens.exclude_unfinished_tasks and has_unfinished_tasks:
        return False
    if tokens.require_unfinished_tasks and not has_unfinished_tasks:
        return False

    if tokens.mode is FilterMode.FILTER:
        return _matches_filter_mode(name, tags, tokens)

    if tokens.exclude_tagged and tags:
        return False
    return evaluate_tag_expression(tokens.expression, tags)


def _resolve_timestamp(
    date_range: DateFilterRange,
    created_ms: int,
    modified_ms: int,
    default_field: DateField,
) -> int:
    date_field = date_range.field
    if date_field is DateField.DEFAULT:
        date_field = default_field
    return created_ms if date_field is DateField.CREATED else modified_ms


def file_matches_date_filter_tokens(
    tokens: FilterSearchTokens,
    *,
    created_ms: int,
    modified_ms: int,
    default_field: DateField = DateField.MODIFIED,
) -> bool:
    """Check every inclusion range holds and no exclusion range does.

    Ranges without an explicit ``c:``/``m:`` prefix use ``default_field``.
    """
    for date_range in tokens.date_ranges:
        timestamp = _resolve_timestamp(date_range, created_ms, modified_ms, default_field)
        if not date_range.contains(timestamp):
            return False

    for date_range in tokens.exclude_date_ranges:
        timestamp = _resolve_timestamp(date_range, created_ms, modified_ms, default_field)
        if date_range.contains(timestamp):
            return False

    return True


def document_matches(
    document: NoteDocument,
    tokens: FilterSearchTokens,
    default_field: DateField = DateField.MODIFIED,
) -> bool:
    """Check all criteria of ``tokens`` against one note."""
    if not file_matches_filter_tokens(
        document.name,
        document.tags,
        tokens,
        has_unfinished_tasks=document.has_unfinished_tasks,
    ):
        return False
    return file_matches_date_filter_tokens(
        tokens,
        created_ms=document.created_ms,
        modified_ms=document.modified_ms,
        default_field=default_field,
    )


def _filter_chunk(
    chunk: Sequence[NoteDocument],
    tokens: FilterSearchTokens,
    default_field: DateField,
) -> list[NoteDocument]:
    return [doc for doc in chunk if document_matches(doc, tokens, default_field)]


def filter_documents(
    documents: Iterable[NoteDocument],
    tokens: FilterSearchTokens,
    default_field: DateField = DateField.MODIFIED,
    *,
    jobs: int = 1,
) -> list[NoteDocument]:
    """Return the documents matching ``tokens``, in input order.

    With ``jobs > 1`` the documents are split into chunks that are
    evaluated on a thread pool; each chunk collects its own matches.
    """
    docs = list(documents)
    if jobs <= 1 or len(docs) <= _CHUNK_SIZE:
        return _filter_chunk(docs, tokens, default_field)

    chunks = [docs[i : i + _CHUNK_SIZE] for i in range(0, len(docs), _CHUNK_SIZE)]
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = [executor.submit(_filter_chunk, chunk, tokens, default_field) for chunk in chunks]
        results: list[NoteDocument] = []
        for future in futures:
            results.extend(future.result())
    return results


# ---------------------------------------------------------------------------
# Query summaries
# ---------------------------------------------------------------------------


def filter_search_has_active_criteria(tokens: FilterSearchTokens) -> bool:
    """Whether the compiled query filters anything at all."""
    return (
        tokens.has_inclusions
        or bool(tokens.exclude_name_tokens)
        or bool(tokens.exclude_tag_tokens)
        or bool(tokens.exclude_date_ranges)
        or tokens.exclude_tagged
        or tokens.exclude_unfinished_tasks
    )


def filter_search_needs_tag_lookup(tokens: FilterSearchTokens) -> bool:
    """Whether evaluating the query needs the note's tags."""
    return tokens.requires_tags or tokens.exclude_tagged or bool(tokens.exclude_tag_tokens)


def filter_search_needs_date_lookup(tokens: FilterSearchTokens) -> bool:
    """Whether evaluating the query needs the note's timestamps."""
    return bool(tokens.date_ranges or tokens.exclude_date_ranges)


def filter_search_requires_tags_for_every_match(tokens: FilterSearchTokens) -> bool:
    """Whether an untagged note can never match."""
    return tokens.has_inclusions and tokens.all_require_tags
