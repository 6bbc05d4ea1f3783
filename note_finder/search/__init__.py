"""Filter search query compilation and evaluation."""

from note_finder.search.dates import (
    DayMonthOrder,
    configure_day_month_order,
    detect_day_month_order,
    parse_date_token,
)
from note_finder.search.mutate import QueryAction, QueryUpdate, update_filter_query_with_tag
from note_finder.search.parser import parse_filter_search_tokens
from note_finder.search.query import (
    document_matches,
    file_matches_date_filter_tokens,
    file_matches_filter_tokens,
    filter_documents,
    filter_search_has_active_criteria,
    filter_search_needs_date_lookup,
    filter_search_needs_tag_lookup,
    filter_search_requires_tags_for_every_match,
)
from note_finder.search.tokens import (
    EMPTY_TOKENS,
    DateField,
    DateFilterRange,
    FilterMode,
    FilterSearchTokens,
    InclusionOperator,
    NoteDocument,
)

__all__ = [
    "EMPTY_TOKENS",
    "DateField",
    "DateFilterRange",
    "DayMonthOrder",
    "FilterMode",
    "FilterSearchTokens",
    "InclusionOperator",
    "NoteDocument",
    "QueryAction",
    "QueryUpdate",
    "configure_day_month_order",
    "detect_day_month_order",
    "document_matches",
    "file_matches_date_filter_tokens",
    "file_matches_filter_tokens",
    "filter_documents",
    "filter_search_has_active_criteria",
    "filter_search_needs_date_lookup",
    "filter_search_needs_tag_lookup",
    "filter_search_requires_tags_for_every_match",
    "parse_date_token",
    "parse_filter_search_tokens",
    "update_filter_query_with_tag",
]
