"""Data classes for compiled filter search queries."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union


class FilterMode(enum.Enum):
    """How a compiled query is evaluated.

    ``FILTER`` ANDs every token independently, ``TAG`` evaluates a
    postfix boolean expression over tag operands.
    """

    FILTER = "filter"
    TAG = "tag"


class InclusionOperator(enum.Enum):
    """Connector between tag operands."""

    AND = "AND"
    OR = "OR"


class DateField(enum.Enum):
    """Timestamp a date filter is checked against."""

    DEFAULT = "default"
    CREATED = "created"
    MODIFIED = "modified"


@dataclass(frozen=True)
class DateFilterRange:
    """A half-open ``[start_ms, end_ms)`` range in epoch milliseconds.

    A ``None`` bound leaves that side unconstrained.
    """

    field: DateField
    start_ms: int | None
    end_ms: int | None

    def contains(self, timestamp_ms: int) -> bool:
        if self.start_ms is not None and timestamp_ms < self.start_ms:
            return False
        if self.end_ms is not None and timestamp_ms >= self.end_ms:
            return False
        return True


# ---------------------------------------------------------------------------
# Classified tokens (one per raw whitespace token)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperatorToken:
    operator: InclusionOperator


@dataclass(frozen=True)
class TagToken:
    """``#value``; ``value`` is None for a bare ``#`` (has any tag)."""

    value: str | None


@dataclass(frozen=True)
class TagNegationToken:
    """``-#value``; ``value`` is None for a bare ``-#`` (untagged)."""

    value: str | None


@dataclass(frozen=True)
class DateToken:
    range: DateFilterRange


@dataclass(frozen=True)
class DateNegationToken:
    range: DateFilterRange


@dataclass(frozen=True)
class UnfinishedTaskToken:
    pass


@dataclass(frozen=True)
class UnfinishedTaskNegationToken:
    pass


@dataclass(frozen=True)
class NameToken:
    value: str


@dataclass(frozen=True)
class NameNegationToken:
    value: str


ClassifiedToken = Union[
    OperatorToken,
    TagToken,
    TagNegationToken,
    DateToken,
    DateNegationToken,
    UnfinishedTaskToken,
    UnfinishedTaskNegationToken,
    NameToken,
    NameNegationToken,
]


@dataclass(frozen=True)
class TokenClassification:
    """Classified tokens plus the metadata the mode selector needs."""

    tokens: tuple[ClassifiedToken, ...] = ()
    has_tag_operand: bool = False
    has_non_tag_operand: bool = False
    has_invalid_token: bool = False


# ---------------------------------------------------------------------------
# Postfix tag expression elements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TagOperand:
    value: str


@dataclass(frozen=True)
class NotTagOperand:
    value: str


@dataclass(frozen=True)
class RequireTaggedOperand:
    pass


@dataclass(frozen=True)
class UntaggedOperand:
    pass


@dataclass(frozen=True)
class ExpressionOperator:
    operator: InclusionOperator


TagExpressionOperand = Union[TagOperand, NotTagOperand, RequireTaggedOperand, UntaggedOperand]
TagExpressionToken = Union[TagExpressionOperand, ExpressionOperator]


@dataclass(frozen=True)
class FilterSearchTokens:
    """Compiled form of a filter search query.

    Built once per query string by ``parse_filter_search_tokens`` and
    only read afterwards. ``expression`` is empty unless ``mode`` is
    ``FilterMode.TAG``.
    """

    mode: FilterMode = FilterMode.FILTER
    expression: tuple[TagExpressionToken, ...] = ()
    has_inclusions: bool = False
    requires_tags: bool = False
    all_require_tags: bool = False
    included_tag_tokens: tuple[str, ...] = ()
    name_tokens: tuple[str, ...] = ()
    tag_tokens: tuple[str, ...] = ()
    date_ranges: tuple[DateFilterRange, ...] = ()
    exclude_date_ranges: tuple[DateFilterRange, ...] = ()
    exclude_name_tokens: tuple[str, ...] = ()
    exclude_tag_tokens: tuple[str, ...] = ()
    require_tagged: bool = False
    include_untagged: bool = False
    exclude_tagged: bool = False
    require_unfinished_tasks: bool = False
    exclude_unfinished_tasks: bool = False


EMPTY_TOKENS = FilterSearchTokens()


@dataclass(frozen=True)
class NoteDocument:
    """Per-note attributes the evaluator checks.

    ``name`` and ``tags`` are expected in lowercase; tags are full
    hierarchical paths without the leading ``#``.
    """

    path: str
    name: str
    tags: tuple[str, ...] = ()
    has_unfinished_tasks: bool = False
    created_ms: int = 0
    modified_ms: int = 0
