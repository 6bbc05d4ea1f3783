"""Private, atomic writes for note-finder's own files."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

PRIVATE_DIR_MODE = 0o700
PRIVATE_FILE_MODE = 0o600


def ensure_private_dir(path: Path) -> None:
    """Create *path* and its parents, restricting *path* itself to the owner."""
    path.mkdir(parents=True, exist_ok=True)
    path.chmod(PRIVATE_DIR_MODE)


def write_private_text(path: Path, content: str, *, overwrite: bool = True) -> None:
    """Write *content* to *path* in one step, readable only by the owner.

    The text goes to a sibling temporary file first. With ``overwrite`` the
    temporary file is renamed over *path*; without it the file is hard-linked
    into place, which fails if *path* appeared in the meantime.

    Raises:
        FileExistsError: *path* exists and ``overwrite`` is false.
        OSError: The directory or file could not be written.
    """
    ensure_private_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        os.fchmod(fd, PRIVATE_FILE_MODE)
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        if overwrite:
            tmp_path.replace(path)
        else:
            os.link(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
