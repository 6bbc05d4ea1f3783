"""Cache database session management."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Column, Engine, create_engine, text
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import DatabaseError, SQLAlchemyError
from sqlalchemy.orm import Session

from note_finder.cache.models import CacheBase
from note_finder.exceptions import CacheError

CACHE_DB_NAME = ".note-finder-cache.db"

# SQLite keeps these next to the database in WAL mode
_SIDECAR_SUFFIXES = ("-wal", "-shm")

_CORRUPTION_MARKERS = ("malformed", "corrupt", "not a database")

log = logging.getLogger(__name__)


def cache_db_path(vault_path: Path) -> Path:
    """Location of the cache database inside a vault."""
    return vault_path / CACHE_DB_NAME


def get_cache_engine(vault_path: Path) -> Engine:
    """Create SQLAlchemy engine for the cache database.

    Args:
        vault_path: Path to the notes vault root.

    Returns:
        SQLAlchemy engine for the cache database.
    """
    return create_engine(
        f"sqlite:///{cache_db_path(vault_path)}",
        connect_args={
            "timeout": 30,
            "check_same_thread": False,
        },
    )


def delete_cache(vault_path: Path) -> bool:
    """Delete the cache database and its WAL sidecar files.

    Returns True if the database file existed.
    """
    db_path = cache_db_path(vault_path)
    existed = db_path.exists()
    for path in (db_path, *(db_path.with_name(db_path.name + s) for s in _SIDECAR_SUFFIXES)):
        path.unlink(missing_ok=True)
    if existed:
        log.info("Deleted cache database: %s", db_path)
    return existed


def clear_cache_tables(session: Session) -> None:
    """Remove every cached note, tag and the freshness row."""
    for table in reversed(CacheBase.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()


def _is_corruption_error(exc: DatabaseError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _CORRUPTION_MARKERS)


def _prepare_engine(vault_path: Path) -> Engine:
    """Open the cache database, creating or upgrading its schema."""
    engine = get_cache_engine(vault_path)
    try:
        with engine.begin() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
        CacheBase.metadata.create_all(engine)
        _ensure_schema(engine)
    except BaseException:
        engine.dispose()
        raise
    return engine


def _open_engine(vault_path: Path) -> Engine:
    try:
        return _prepare_engine(vault_path)
    except DatabaseError as exc:
        if not _is_corruption_error(exc):
            raise
        log.warning("Cache database appears corrupt, rebuilding: %s", exc)
        delete_cache(vault_path)
        return _prepare_engine(vault_path)


@contextmanager
def get_cache_session(vault_path: Path) -> Generator[Session, None, None]:
    """Create a session for the cache database.

    Tables are created on first use. A database file SQLite refuses to read
    (truncated or overwritten) is deleted and recreated empty, so the next
    refresh rebuilds it from the vault.

    Args:
        vault_path: Path to the notes vault root.

    Yields:
        SQLAlchemy Session, committed when the block exits cleanly.

    Raises:
        CacheError: The database could not be opened, queried or written.
    """
    try:
        engine = _open_engine(vault_path)
    except SQLAlchemyError as exc:
        raise CacheError(f"Cannot open {cache_db_path(vault_path)}: {exc}") from exc

    session = Session(engine)
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise CacheError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        engine.dispose()


# ---------------------------------------------------------------------------
# Schema evolution
# ---------------------------------------------------------------------------


def _column_ddl(column: Column, engine: Engine) -> str:
    ddl = f"{column.name} {column.type.compile(engine.dialect)}"
    if column.server_default is not None:
        ddl += f" DEFAULT {column.server_default.arg}"
    if not column.nullable:
        # SQLite needs a default to add a NOT NULL column to existing rows
        if column.server_default is None:
            ddl += " DEFAULT 0"
        ddl += " NOT NULL"
    return ddl


def _ensure_schema(engine: Engine) -> None:
    """Add columns and indexes declared by the models but missing on disk.

    Only additive changes are handled. Type changes and removals need
    ``note-finder rebuild-cache``.
    """
    inspector = sa_inspect(engine)
    existing_tables = set(inspector.get_table_names())

    for table in CacheBase.metadata.sorted_tables:
        if table.name not in existing_tables:
            continue

        on_disk = {col["name"] for col in inspector.get_columns(table.name)}
        missing = [column for column in table.columns if column.name not in on_disk]
        for column in missing:
            with engine.begin() as conn:
                conn.execute(text(f"ALTER TABLE {table.name} ADD COLUMN {_column_ddl(column, engine)}"))
            log.info("Cache schema: added column %s.%s", table.name, column.name)

        indexed = {idx["name"] for idx in inspector.get_indexes(table.name)}
        for index in table.indexes:
            if index.name not in indexed:
                index.create(engine)
                log.info("Cache schema: created index %s on %s", index.name, table.name)
