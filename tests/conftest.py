"""Shared pytest fixtures."""

from __future__ import annotations

import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from note_finder.search.dates import configure_day_month_order

if TYPE_CHECKING:
    from collections.abc import Generator


# Sample vault: relative path -> (contents, modified time)
VAULT_NOTES: dict[str, tuple[str, datetime]] = {
    "Meeting Notes.md": (
        "---\ntags: [work, meeting]\n---\n# Weekly sync\n\n- [ ] send agenda\n",
        datetime(2026, 2, 3, 10, 0),
    ),
    "projects/Alpha Plan.md": (
        "Plan for #project/alpha with #urgent items.\n\n- [x] kickoff\n",
        datetime(2026, 2, 4, 9, 0),
    ),
    "projects/Beta Plan.md": (
        "---\ntags:\n  - project/beta\n---\nNothing urgent here. See `#notatag`.\n",
        datetime(2026, 1, 15, 12, 0),
    ),
    "journal/2026-02-01.md": (
        "Quiet sunday.\n\n```\n#include <stdio.h>\n- [ ] not a task\n```\n",
        datetime(2026, 2, 1, 20, 0),
    ),
    "archive/Old Meeting.md": (
        "#archive #work\n\n* [ ] leftover\n",
        datetime(2025, 11, 20, 8, 0),
    ),
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def vault(temp_dir: Path) -> Path:
    """Create a small notes vault with fixed modification times."""
    root = temp_dir / "vault"
    for rel_path, (content, modified) in VAULT_NOTES.items():
        note = root / rel_path
        note.parent.mkdir(parents=True, exist_ok=True)
        note.write_text(content, encoding="utf-8")
        timestamp = modified.timestamp()
        os.utime(note, (timestamp, timestamp))
    (root / ".obsidian").mkdir()
    (root / ".obsidian" / "hidden.md").write_text("#hidden\n")
    (root / "image.png").write_bytes(b"\x89PNG")
    return root


@pytest.fixture
def sample_config(temp_dir: Path, vault: Path) -> Path:
    """Create a sample config file pointing at the sample vault."""
    config_path = temp_dir / "config.toml"
    config_path.write_text(f"""[paths]
vault = "{vault.as_posix()}"

[display]
colored_output = false

[search]
default_date_field = "modified"
date_order = "dmy"
jobs = 2
""")
    return config_path


@pytest.fixture(autouse=True)
def reset_day_month_order() -> Generator[None, None, None]:
    """Undo any day/month order forced by a test."""
    yield
    configure_day_month_order(None)
