"""Compile a filter search query string into ``FilterSearchTokens``.

Queries are whitespace-separated tokens, case-folded before matching:

    word        note name contains ``word``
    #tag        note has ``tag`` or a tag nested under ``tag/``
    #           note has at least one tag
    @date       note date falls inside the range (see ``search.dates``)
    has:task    note has unfinished tasks
    -token      negation of any of the above (``-#`` means untagged)
    and / or    connectors, only meaningful when every operand is a tag

Queries made only of tag operands and connectors compile to a postfix
boolean expression (AND binds tighter than OR, adjacent operands are
ANDed). Everything else compiles in filter mode, where every token must
hold and connector words are searched as literal text.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import assert_never

from note_finder.search.dates import is_date_candidate, parse_date_token
from note_finder.search.query import evaluate_tag_expression
from note_finder.search.tokens import (
    EMPTY_TOKENS,
    ClassifiedToken,
    DateFilterRange,
    DateNegationToken,
    DateToken,
    ExpressionOperator,
    FilterMode,
    FilterSearchTokens,
    InclusionOperator,
    NameNegationToken,
    NameToken,
    NotTagOperand,
    OperatorToken,
    RequireTaggedOperand,
    TagExpressionOperand,
    TagExpressionToken,
    TagNegationToken,
    TagOperand,
    TagToken,
    TokenClassification,
    UnfinishedTaskNegationToken,
    UnfinishedTaskToken,
    UntaggedOperand,
)

log = logging.getLogger(__name__)

# Higher binds tighter
_OPERATOR_PRECEDENCE: dict[InclusionOperator, int] = {
    InclusionOperator.AND: 2,
    InclusionOperator.OR: 1,
}

CONNECTOR_WORDS: dict[str, InclusionOperator] = {
    "and": InclusionOperator.AND,
    "or": InclusionOperator.OR,
}

_TASK_TOKENS: frozenset[str] = frozenset({"has:task", "has:tasks"})


def tokenize(query: str) -> list[str]:
    """Lowercase ``query`` and split it on whitespace."""
    return query.strip().lower().split()


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_raw_tokens(
    raw_tokens: Iterable[str],
    now: datetime | None = None,
) -> TokenClassification:
    """Classify lowercased raw tokens and record which operand kinds appeared.

    Date fragments that look like a date but do not parse yet (``@to``,
    ``@2026-0``) are dropped so a half-typed date filters nothing.
    """
    tokens: list[ClassifiedToken] = []
    has_tag_operand = False
    has_non_tag_operand = False
    has_invalid_token = False

    for token in raw_tokens:
        if not token:
            continue

        operator = CONNECTOR_WORDS.get(token)
        if operator is not None:
            tokens.append(OperatorToken(operator))
            continue

        if token.startswith("-"):
            negated = token[1:]
            if not negated:
                has_invalid_token = True
                continue

            if negated in _TASK_TOKENS:
                tokens.append(UnfinishedTaskNegationToken())
                has_non_tag_operand = True
                continue

            if negated.startswith("@") and is_date_candidate(negated[1:]):
                date_range = parse_date_token(negated[1:], now)
                if date_range is None:
                    log.debug("Ignoring incomplete date token %r", token)
                    continue
                tokens.append(DateNegationToken(date_range))
                has_non_tag_operand = True
                continue

            if negated.startswith("#"):
                tokens.append(TagNegationToken(negated[1:] or None))
                has_tag_operand = True
                continue

            tokens.append(NameNegationToken(negated))
            has_non_tag_operand = True
            continue

        if token in _TASK_TOKENS:
            tokens.append(UnfinishedTaskToken())
            has_non_tag_operand = True
            continue

        if token.startswith("@") and is_date_candidate(token[1:]):
            date_range = parse_date_token(token[1:], now)
            if date_range is None:
                log.debug("Ignoring incomplete date token %r", token)
                continue
            tokens.append(DateToken(date_range))
            has_non_tag_operand = True
            continue

        if token.startswith("#"):
            tokens.append(TagToken(token[1:] or None))
            has_tag_operand = True
            continue

        tokens.append(NameToken(token))
        has_non_tag_operand = True

    return TokenClassification(
        tokens=tuple(tokens),
        has_tag_operand=has_tag_operand,
        has_non_tag_operand=has_non_tag_operand,
        has_invalid_token=has_invalid_token,
    )


def can_use_tag_mode(classification: TokenClassification) -> bool:
    """Tag mode needs tag operands only and no invalid tokens."""
    return (
        classification.has_tag_operand
        and not classification.has_non_tag_operand
        and not classification.has_invalid_token
    )


# ---------------------------------------------------------------------------
# Tag expression builder (shunting-yard)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TagExpressionBuild:
    """Postfix expression plus what it references."""

    expression: tuple[TagExpressionToken, ...]
    included_tag_tokens: tuple[str, ...]
    require_tagged: bool
    include_untagged: bool


class _ExpressionSyntaxError(Exception):
    """An operator is missing an operand."""


class _BuilderState(enum.Enum):
    EXPECT_OPERAND = enum.auto()
    EXPECT_OPERATOR_OR_OPERAND = enum.auto()


class _TagExpressionBuilder:
    """Convert infix tag operands and connectors into postfix order."""

    def __init__(self) -> None:
        self.output: list[TagExpressionToken] = []
        self.operators: list[InclusionOperator] = []
        self.state = _BuilderState.EXPECT_OPERAND
        self.has_operand = False

    def push_operator(self, operator: InclusionOperator) -> None:
        if self.state is _BuilderState.EXPECT_OPERAND:
            raise _ExpressionSyntaxError(f"{operator.value} without a left operand")

        precedence = _OPERATOR_PRECEDENCE[operator]
        while self.operators and _OPERATOR_PRECEDENCE[self.operators[-1]] >= precedence:
            self.output.append(ExpressionOperator(self.operators.pop()))

        self.operators.append(operator)
        self.state = _BuilderState.EXPECT_OPERAND

    def push_operand(self, operand: TagExpressionOperand) -> None:
        if self.state is _BuilderState.EXPECT_OPERATOR_OR_OPERAND:
            self.push_operator(InclusionOperator.AND)

        self.output.append(operand)
        self.state = _BuilderState.EXPECT_OPERATOR_OR_OPERAND
        self.has_operand = True

    def finish(self) -> tuple[TagExpressionToken, ...]:
        if self.state is _BuilderState.EXPECT_OPERAND:
            raise _ExpressionSyntaxError("dangling operator or empty expression")

        while self.operators:
            self.output.append(ExpressionOperator(self.operators.pop()))

        if not self.has_operand or not validate_postfix(self.output):
            raise _ExpressionSyntaxError("malformed postfix expression")
        return tuple(self.output)


def validate_postfix(expression: Iterable[TagExpressionToken]) -> bool:
    """Replay a postfix sequence and check it reduces to exactly one value."""
    depth = 0
    for token in expression:
        if isinstance(token, ExpressionOperator):
            if depth < 2:
                return False
            depth -= 1
        else:
            depth += 1
    return depth == 1


def build_tag_expression(classified_tokens: Iterable[ClassifiedToken]) -> TagExpressionBuild | None:
    """Build a postfix tag expression, or None on a syntax error.

    Only operator, tag and tag-negation tokens are accepted; anything
    else makes the expression invalid.
    """
    builder = _TagExpressionBuilder()
    included: dict[str, None] = {}
    require_tagged = False
    include_untagged = False

    try:
        for token in classified_tokens:
            if isinstance(token, OperatorToken):
                builder.push_operator(token.operator)
            elif isinstance(token, TagToken):
                if token.value is None:
                    builder.push_operand(RequireTaggedOperand())
                    require_tagged = True
                else:
                    builder.push_operand(TagOperand(token.value))
                    included.setdefault(token.value, None)
            elif isinstance(token, TagNegationToken):
                if token.value is None:
                    builder.push_operand(UntaggedOperand())
                    include_untagged = True
                else:
                    builder.push_operand(NotTagOperand(token.value))
            else:
                raise _ExpressionSyntaxError(f"{type(token).__name__} is not a tag operand")
        expression = builder.finish()
    except _ExpressionSyntaxError as e:
        log.debug("Tag expression rejected: %s", e)
        return None

    return TagExpressionBuild(
        expression=expression,
        included_tag_tokens=tuple(included),
        require_tagged=require_tagged,
        include_untagged=include_untagged,
    )


# ---------------------------------------------------------------------------
# Mode-specific compilation
# ---------------------------------------------------------------------------


def _parse_tag_mode_tokens(
    classified_tokens: tuple[ClassifiedToken, ...],
    exclude_tag_tokens: tuple[str, ...],
) -> FilterSearchTokens | None:
    build = build_tag_expression(classified_tokens)
    if build is None:
        return None

    has_inclusions = len(build.expression) > 0
    # Every clause needs a tag when the expression fails for an untagged note
    all_require_tags = has_inclusions and not evaluate_tag_expression(build.expression, ())

    return FilterSearchTokens(
        mode=FilterMode.TAG,
        expression=build.expression,
        has_inclusions=has_inclusions,
        requires_tags=has_inclusions,
        all_require_tags=all_require_tags,
        included_tag_tokens=build.included_tag_tokens,
        tag_tokens=build.included_tag_tokens,
        exclude_tag_tokens=exclude_tag_tokens,
        require_tagged=build.require_tagged,
        include_untagged=build.include_untagged,
        exclude_tagged=False,
    )


def _parse_filter_mode_tokens(
    classified_tokens: tuple[ClassifiedToken, ...],
    exclude_tag_tokens: tuple[str, ...],
    has_untagged_operand: bool,
) -> FilterSearchTokens:
    name_tokens: list[str] = []
    connector_words: list[str] = []
    tag_tokens: list[str] = []
    exclude_name_tokens: list[str] = []
    date_ranges: list[DateFilterRange] = []
    exclude_date_ranges: list[DateFilterRange] = []
    require_tagged = False
    require_unfinished_tasks = False
    exclude_unfinished_tasks = False

    for token in classified_tokens:
        if isinstance(token, NameToken):
            name_tokens.append(token.value)
        elif isinstance(token, NameNegationToken):
            exclude_name_tokens.append(token.value)
        elif isinstance(token, TagToken):
            if token.value:
                tag_tokens.append(token.value)
            require_tagged = True
        elif isinstance(token, TagNegationToken):
            pass  # collected into exclude_tag_tokens by the caller
        elif isinstance(token, DateToken):
            date_ranges.append(token.range)
        elif isinstance(token, DateNegationToken):
            exclude_date_ranges.append(token.range)
        elif isinstance(token, UnfinishedTaskToken):
            require_unfinished_tasks = True
        elif isinstance(token, UnfinishedTaskNegationToken):
            exclude_unfinished_tasks = True
        elif isinstance(token, OperatorToken):
            connector_words.append(token.operator.value.lower())
        else:
            assert_never(token)

    # Connectors are plain words outside tag mode
    name_tokens.extend(connector_words)

    has_inclusions = bool(
        name_tokens or tag_tokens or require_tagged or date_ranges or require_unfinished_tasks
    )
    requires_tags = require_tagged or bool(tag_tokens)

    return FilterSearchTokens(
        mode=FilterMode.FILTER,
        expression=(),
        has_inclusions=has_inclusions,
        requires_tags=requires_tags,
        all_require_tags=has_inclusions and requires_tags,
        included_tag_tokens=tuple(tag_tokens),
        name_tokens=tuple(name_tokens),
        tag_tokens=tuple(tag_tokens),
        date_ranges=tuple(date_ranges),
        exclude_date_ranges=tuple(exclude_date_ranges),
        exclude_name_tokens=tuple(exclude_name_tokens),
        exclude_tag_tokens=exclude_tag_tokens,
        require_tagged=require_tagged,
        include_untagged=has_untagged_operand,
        exclude_tagged=has_untagged_operand,
        require_unfinished_tasks=require_unfinished_tasks,
        exclude_unfinished_tasks=exclude_unfinished_tasks,
    )


def parse_filter_search_tokens(query: str, now: datetime | None = None) -> FilterSearchTokens:
    """Compile a raw query string.

    Args:
        query: The query as typed; case and surrounding whitespace are ignored.
        now: Reference time for relative dates (``@today``); defaults to now.

    Returns:
        The compiled tokens. Never raises: malformed input degrades to
        filter mode or is ignored.
    """
    raw_tokens = tokenize(query)
    if not raw_tokens:
        return EMPTY_TOKENS

    classification = classify_raw_tokens(raw_tokens, now)
    classified_tokens = classification.tokens

    exclude_tag_tokens: list[str] = []
    has_untagged_operand = False
    for token in classified_tokens:
        if not isinstance(token, TagNegationToken):
            continue
        if token.value is None:
            has_untagged_operand = True
        else:
            exclude_tag_tokens.append(token.value)

    if can_use_tag_mode(classification):
        tag_mode = _parse_tag_mode_tokens(classified_tokens, tuple(exclude_tag_tokens))
        if tag_mode is not None:
            return tag_mode
        log.debug("Falling back to filter mode for %r", query)

    return _parse_filter_mode_tokens(
        classified_tokens, tuple(exclude_tag_tokens), has_untagged_operand
    )
