"""Local metadata cache for note search."""

from note_finder.cache.builder import (
    build_cache,
    load_documents,
    parse_note_text,
    refresh_cache,
    scan_note,
)
from note_finder.cache.models import CacheBase, CacheNote, CacheState, NoteTag
from note_finder.cache.session import CACHE_DB_NAME, get_cache_session

__all__ = [
    "CacheBase",
    "CacheNote",
    "CacheState",
    "NoteTag",
    "CACHE_DB_NAME",
    "build_cache",
    "get_cache_session",
    "load_documents",
    "parse_note_text",
    "refresh_cache",
    "scan_note",
]
