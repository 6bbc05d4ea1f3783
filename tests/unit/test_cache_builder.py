"""Unit tests for the vault scanner and cache builder."""

from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from note_finder.cache.builder import (
    build_cache,
    iter_note_files,
    load_documents,
    parse_front_matter_tags,
    parse_note_text,
    refresh_cache,
    scan_note,
)
from note_finder.cache.models import CacheBase, CacheNote, CacheState, NoteTag


def _in_memory_session() -> Session:
    """Create an in-memory SQLite session with cache tables."""
    engine = create_engine("sqlite:///:memory:")
    CacheBase.metadata.create_all(engine)
    return sessionmaker(bind=engine)()


# ---------------------------------------------------------------------------
# Note parsing
# ---------------------------------------------------------------------------


class TestParseFrontMatterTags:
    def test_inline_list(self) -> None:
        assert parse_front_matter_tags(["tags: [Work, 'project/alpha']"]) == [
            "work",
            "project/alpha",
        ]

    def test_comma_list(self) -> None:
        assert parse_front_matter_tags(["tags: work, home"]) == ["work", "home"]

    def test_block_list(self) -> None:
        lines = ["title: x", "tags:", "  - work", "  - '#home'", "author: me"]
        assert parse_front_matter_tags(lines) == ["work", "home"]

    def test_no_tags(self) -> None:
        assert parse_front_matter_tags(["title: x"]) == []

    def test_unindented_block_list(self) -> None:
        lines = ["tags:", "- work", "- project/alpha"]
        assert parse_front_matter_tags(lines) == ["work", "project/alpha"]

    def test_quoted_item_with_space_stays_whole(self) -> None:
        assert parse_front_matter_tags(['tags: ["reading list", work]']) == [
            "reading list",
            "work",
        ]

    def test_singular_key_and_scalar_items(self) -> None:
        assert parse_front_matter_tags(["tag: [2024, inbox, true, {a: b}]"]) == ["inbox"]

    def test_not_a_mapping(self) -> None:
        assert parse_front_matter_tags(["- work", "- home"]) == []

    def test_invalid_yaml(self) -> None:
        assert parse_front_matter_tags(["tags: [work", "title: : :"]) == []


class TestParseNoteText:
    def test_inline_tags(self) -> None:
        tags, _ = parse_note_text("Plan for #Project/Alpha and #urgent.\n")
        assert tags == ["project/alpha", "urgent"]

    def test_headings_are_not_tags(self) -> None:
        tags, _ = parse_note_text("# Title\n## Section #real\n#tag at start\n")
        assert tags == ["tag"]

    def test_code_is_ignored(self) -> None:
        text = "```\n#include <x>\n- [ ] todo\n```\nuse `#notatag` here\n"
        assert parse_note_text(text) == ([], False)

    def test_urls_and_numbers_are_not_tags(self) -> None:
        tags, _ = parse_note_text("see http://x.org/#anchor issue #123 and a#b\n")
        assert tags == []

    def test_front_matter_and_body_merge(self) -> None:
        text = "---\ntags: [work]\n---\nbody #work #home\n"
        assert parse_note_text(text) == (["home", "work"], False)

    def test_front_matter_block_list_without_indent(self) -> None:
        text = "---\ntags:\n- work\n- project/alpha\n---\nbody\n"
        assert parse_note_text(text) == (["project/alpha", "work"], False)

    def test_unfinished_tasks(self) -> None:
        assert parse_note_text("- [ ] open\n")[1] is True
        assert parse_note_text("  * [ ] nested\n")[1] is True
        assert parse_note_text("1. [ ] numbered\n")[1] is True
        assert parse_note_text("- [x] done\n- [X] done\n")[1] is False
        assert parse_note_text("- [] not a task\n")[1] is False

    def test_unterminated_front_matter_is_body(self) -> None:
        tags, _ = parse_note_text("---\ntags: [work]\n#body\n")
        assert tags == ["body"]


# ---------------------------------------------------------------------------
# Scanning files
# ---------------------------------------------------------------------------


class TestScanNote:
    def test_scan(self, vault: Path) -> None:
        note, tags = scan_note(vault / "Meeting Notes.md", vault)
        assert note.path == "Meeting Notes.md"
        assert note.name == "meeting notes"
        assert note.has_unfinished_tasks is True
        assert tags == ["meeting", "work"]
        stat = (vault / "Meeting Notes.md").stat()
        assert note.mtime_ns == stat.st_mtime_ns
        assert note.modified_ms == stat.st_mtime_ns // 1_000_000

    def test_nested_path_is_posix(self, vault: Path) -> None:
        note, tags = scan_note(vault / "projects" / "Alpha Plan.md", vault)
        assert note.path == "projects/Alpha Plan.md"
        assert tags == ["project/alpha", "urgent"]
        assert note.has_unfinished_tasks is False


class TestIterNoteFiles:
    def test_skips_hidden_and_other_extensions(self, vault: Path) -> None:
        paths = [p.relative_to(vault).as_posix() for p in iter_note_files(vault, ["md"])]
        assert paths == [
            "Meeting Notes.md",
            "archive/Old Meeting.md",
            "journal/2026-02-01.md",
            "projects/Alpha Plan.md",
            "projects/Beta Plan.md",
        ]

    def test_custom_extensions(self, vault: Path) -> None:
        (vault / "todo.txt").write_text("- [ ] x\n")
        paths = [p.name for p in iter_note_files(vault, ["txt"])]
        assert paths == ["todo.txt"]


# ---------------------------------------------------------------------------
# build / refresh / load
# ---------------------------------------------------------------------------


class TestBuildCache:
    def test_builds_all_notes(self, vault: Path) -> None:
        session = _in_memory_session()
        count = build_cache(vault, session)
        assert count == 5
        assert session.query(CacheNote).count() == 5
        state = session.query(CacheState).one()
        assert state.vault_path == str(vault)
        assert state.note_count == 5

    def test_tags_stored(self, vault: Path) -> None:
        session = _in_memory_session()
        build_cache(vault, session)
        tags = {
            row.tag
            for row in session.query(NoteTag).filter_by(path="archive/Old Meeting.md")
        }
        assert tags == {"archive", "work"}

    def test_rebuild_replaces_rows(self, vault: Path) -> None:
        session = _in_memory_session()
        build_cache(vault, session)
        (vault / "Meeting Notes.md").unlink()
        assert build_cache(vault, session) == 4
        assert session.query(NoteTag).filter_by(path="Meeting Notes.md").count() == 0


class TestRefreshCache:
    def test_first_refresh_builds(self, vault: Path) -> None:
        session = _in_memory_session()
        assert refresh_cache(vault, session) == 5

    def test_unchanged_vault(self, vault: Path) -> None:
        session = _in_memory_session()
        build_cache(vault, session)
        assert refresh_cache(vault, session) is None

    def test_modified_note(self, vault: Path) -> None:
        session = _in_memory_session()
        build_cache(vault, session)
        note = vault / "projects" / "Beta Plan.md"
        note.write_text("Now #done\n- [ ] follow up\n")
        stat = note.stat()
        os.utime(note, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

        assert refresh_cache(vault, session) == 1
        cached = session.query(CacheNote).filter_by(path="projects/Beta Plan.md").one()
        assert cached.has_unfinished_tasks is True
        tags = [row.tag for row in session.query(NoteTag).filter_by(path=cached.path)]
        assert tags == ["done"]

    def test_added_and_removed_notes(self, vault: Path) -> None:
        session = _in_memory_session()
        build_cache(vault, session)
        (vault / "New.md").write_text("#fresh\n")
        (vault / "journal" / "2026-02-01.md").unlink()

        assert refresh_cache(vault, session) == 2
        paths = {row.path for row in session.query(CacheNote)}
        assert "New.md" in paths
        assert "journal/2026-02-01.md" not in paths
        assert session.query(CacheState).one().note_count == 5

    def test_other_vault_triggers_full_build(self, vault: Path, temp_dir: Path) -> None:
        session = _in_memory_session()
        build_cache(vault, session)
        other = temp_dir / "other"
        other.mkdir()
        (other / "Only.md").write_text("x\n")
        assert refresh_cache(other, session) == 1
        assert [row.path for row in session.query(CacheNote)] == ["Only.md"]


class TestLoadDocuments:
    def test_documents(self, vault: Path) -> None:
        session = _in_memory_session()
        build_cache(vault, session)
        docs = load_documents(session)
        assert [d.path for d in docs] == sorted(d.path for d in docs)
        by_path = {d.path: d for d in docs}
        meeting = by_path["Meeting Notes.md"]
        assert meeting.name == "meeting notes"
        assert meeting.tags == ("meeting", "work")
        assert meeting.has_unfinished_tasks is True
        assert by_path["journal/2026-02-01.md"].tags == ()
        assert by_path["projects/Beta Plan.md"].tags == ("project/beta",)

    def test_empty_cache(self) -> None:
        assert load_documents(_in_memory_session()) == []
