"""SQLAlchemy ORM models for the vault metadata cache."""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class CacheBase(DeclarativeBase):
    """Base class for cache ORM models."""

    pass


class CacheNote(CacheBase):
    """Cached metadata for a single note file."""

    __tablename__ = "notes"

    path: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_ms: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    modified_ms: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    mtime_ns: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    has_unfinished_tasks: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    __table_args__ = (
        Index("ix_notes_created_ms", "created_ms"),
        Index("ix_notes_modified_ms", "modified_ms"),
    )

    def __repr__(self) -> str:
        return f"<CacheNote(path='{self.path}', tasks={self.has_unfinished_tasks})>"


class NoteTag(CacheBase):
    """Multi-value tag membership for a cached note."""

    __tablename__ = "note_tags"

    path: Mapped[str] = mapped_column(Text, primary_key=True)
    tag: Mapped[str] = mapped_column(String(256), primary_key=True)

    __table_args__ = (Index("ix_note_tags_tag", "tag"),)

    def __repr__(self) -> str:
        return f"<NoteTag(path='{self.path}', tag='{self.tag}')>"


class CacheState(CacheBase):
    """Singleton row tracking cache freshness."""

    __tablename__ = "cache_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    vault_path: Mapped[str | None] = mapped_column(Text)
    last_updated: Mapped[str | None] = mapped_column(String(32))
    note_count: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<CacheState(vault='{self.vault_path}', notes={self.note_count})>"
