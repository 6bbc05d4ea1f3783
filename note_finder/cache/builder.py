"""Build and refresh the note metadata cache from the vault on disk."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from note_finder.cache.models import CacheNote, CacheState, NoteTag
from note_finder.cache.session import CACHE_DB_NAME
from note_finder.search.tokens import NoteDocument
from note_finder.utils.output import verbose

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Note parsing
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}(\s|$)")
_INLINE_CODE_RE = re.compile(r"`[^`]*`")
_INLINE_TAG_RE = re.compile(r"(?<![\w#&/])#([\w][\w/\-]*)")
_TASK_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+\[ \](?:\s|$)")


def _normalize_tag(raw: str) -> str | None:
    tag = raw.strip().strip("\"'").lstrip("#").strip("/").lower()
    if not tag or tag.isdigit():
        return None
    return tag


def _split_front_matter(text: str) -> tuple[list[str], list[str]]:
    """Split ``text`` into (front matter lines, body lines)."""
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return [], lines
    for index in range(1, len(lines)):
        if lines[index].strip() in ("---", "..."):
            return lines[1:index], lines[index + 1 :]
    return [], lines


def _tag_values(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part for part in re.split(r"[,\s]+", value) if part]
    if isinstance(value, list):
        # Nested mappings and lists are not tags
        return [
            str(item)
            for item in value
            if isinstance(item, (str, int, float)) and not isinstance(item, bool)
        ]
    return []


def parse_front_matter_tags(lines: list[str]) -> list[str]:
    """Extract tags from the ``tags`` (or ``tag``) key of YAML front matter.

    A list value is taken item by item; a string value is split on commas
    and whitespace. Front matter that is not a YAML mapping has no tags.
    """
    if not lines:
        return []
    try:
        data = yaml.safe_load("\n".join(lines))
    except yaml.YAMLError as e:
        log.debug("Ignoring unparseable front matter: %s", e)
        return []
    if not isinstance(data, dict):
        return []

    raw: list[str] = []
    for key, value in data.items():
        if isinstance(key, str) and key.lower() in ("tags", "tag"):
            raw.extend(_tag_values(value))
    return [tag for tag in (_normalize_tag(item) for item in raw) if tag]


def parse_note_text(text: str) -> tuple[list[str], bool]:
    """Extract tags and unfinished-task state from Markdown ``text``.

    Args:
        text: Full note contents.

    Returns:
        Tuple of (sorted unique lowercase tags, has unfinished tasks).
    """
    front_matter, body = _split_front_matter(text)
    tags = set(parse_front_matter_tags(front_matter))
    has_tasks = False
    in_fence = False

    for line in body:
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        if _TASK_RE.match(line):
            has_tasks = True
        if _HEADING_RE.match(line):
            continue
        for match in _INLINE_TAG_RE.finditer(_INLINE_CODE_RE.sub("", line)):
            tag = _normalize_tag(match.group(1))
            if tag:
                tags.add(tag)

    return sorted(tags), has_tasks


def scan_note(path: Path, root: Path) -> tuple[CacheNote, list[str]]:
    """Read one note file into a cache row and its tags.

    Raises:
        OSError: If the file cannot be read or stat'ed.
    """
    stat = path.stat()
    text = path.read_text(encoding="utf-8", errors="replace")
    tags, has_tasks = parse_note_text(text)

    created = getattr(stat, "st_birthtime", None)
    if created is None:
        created = stat.st_ctime

    note = CacheNote(
        path=path.relative_to(root).as_posix(),
        name=path.stem.lower(),
        created_ms=int(created * 1000),
        modified_ms=stat.st_mtime_ns // 1_000_000,
        mtime_ns=stat.st_mtime_ns,
        has_unfinished_tasks=has_tasks,
    )
    return note, tags


def iter_note_files(vault_path: Path, extensions: Iterable[str]) -> Iterator[Path]:
    """Yield note files under ``vault_path``, skipping hidden directories."""
    suffixes = {f".{ext.lower()}" for ext in extensions}
    for dirpath, dirnames, filenames in os.walk(vault_path):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            if filename.startswith(".") or filename == CACHE_DB_NAME:
                continue
            path = Path(dirpath) / filename
            if path.suffix.lower() in suffixes:
                yield path


def _add_note(session: Session, note: CacheNote, tags: list[str]) -> None:
    session.add(note)
    for tag in tags:
        session.add(NoteTag(path=note.path, tag=tag))


def _update_state(session: Session, vault_path: Path) -> int:
    count = session.query(CacheNote).count()
    state = session.query(CacheState).filter_by(id=1).first()
    if state is None:
        state = CacheState(id=1)
        session.add(state)
    state.vault_path = str(vault_path)
    state.last_updated = datetime.now(timezone.utc).isoformat()
    state.note_count = count
    session.commit()
    return count


# ---------------------------------------------------------------------------
# Full build
# ---------------------------------------------------------------------------


def build_cache(
    vault_path: Path,
    session: Session,
    extensions: Iterable[str] = ("md",),
) -> int:
    """Rebuild the whole cache from the files in ``vault_path``.

    Unreadable notes are logged and skipped.

    Returns:
        The number of notes cached.
    """
    session.query(NoteTag).delete()
    session.query(CacheNote).delete()
    session.commit()

    verbose(f"Scanning notes in {vault_path}...")
    skipped = 0
    for path in iter_note_files(vault_path, extensions):
        try:
            note, tags = scan_note(path, vault_path)
        except OSError as e:
            log.warning("Skipping unreadable note %s: %s", path, e)
            skipped += 1
            continue
        _add_note(session, note, tags)

    session.commit()
    if skipped:
        verbose(f"{skipped} notes could not be read")

    count = _update_state(session, vault_path)
    log.info("Cache built for %s: %d notes", vault_path, count)
    verbose(f"Cache built: {count} notes")
    return count


# ---------------------------------------------------------------------------
# Incremental refresh
# ---------------------------------------------------------------------------


def refresh_cache(
    vault_path: Path,
    session: Session,
    extensions: Iterable[str] = ("md",),
) -> int | None:
    """Update cached notes whose modification time changed.

    Performs a full build when no cache exists or the cache belongs to
    a different vault.

    Returns:
        Number of added, changed or removed notes, or None if nothing changed.
    """
    state = session.query(CacheState).filter_by(id=1).first()
    if state is None or state.vault_path != str(vault_path):
        return build_cache(vault_path, session, extensions)

    cached = {path: mtime for path, mtime in session.query(CacheNote.path, CacheNote.mtime_ns)}
    seen: set[str] = set()
    changed = 0

    for path in iter_note_files(vault_path, extensions):
        rel_path = path.relative_to(vault_path).as_posix()
        seen.add(rel_path)
        try:
            mtime_ns = path.stat().st_mtime_ns
            if cached.get(rel_path) == mtime_ns:
                continue
            note, tags = scan_note(path, vault_path)
        except OSError as e:
            log.warning("Skipping unreadable note %s: %s", path, e)
            continue

        session.query(NoteTag).filter_by(path=rel_path).delete()
        session.query(CacheNote).filter_by(path=rel_path).delete()
        _add_note(session, note, tags)
        changed += 1

    for rel_path in cached.keys() - seen:
        session.query(NoteTag).filter_by(path=rel_path).delete()
        session.query(CacheNote).filter_by(path=rel_path).delete()
        changed += 1

    if not changed:
        verbose("Cache is current, no refresh needed")
        return None

    session.commit()
    _update_state(session, vault_path)
    verbose(f"{changed} notes refreshed")
    return changed


def load_documents(session: Session) -> list[NoteDocument]:
    """Load every cached note as a ``NoteDocument``, ordered by path."""
    tags_by_path: dict[str, list[str]] = {}
    for path, tag in session.query(NoteTag.path, NoteTag.tag).order_by(NoteTag.tag):
        tags_by_path.setdefault(path, []).append(tag)

    return [
        NoteDocument(
            path=note.path,
            name=note.name,
            tags=tuple(tags_by_path.get(note.path, ())),
            has_unfinished_tasks=note.has_unfinished_tasks,
            created_ms=note.created_ms,
            modified_ms=note.modified_ms,
        )
        for note in session.query(CacheNote).order_by(CacheNote.path)
    ]
