"""Database models for the note store.

Three record kinds live in notevault.db: folders, files and the singleton
app-state row. Parent/owner references are plain columns with secondary
indexes rather than foreign keys: the store is a key-value store, and the
hierarchy invariants are enforced by the hierarchy manager, one record
write at a time.
"""

from typing import Optional
from sqlalchemy import (
    String,
    Integer,
    Text,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from notevault.storage.db_helpers import JsonDict

# Schema version (increment on breaking changes)
SCHEMA_VERSION = "1.0.0"


class VaultBase(DeclarativeBase):
    pass


class FolderRecord(VaultBase):
    """Folder row. parent_id is NULL only for the root folder."""

    __tablename__ = "folders"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("idx_folders_by_parent", "parent_id"),)

    def __repr__(self):
        return f"FolderRecord(id={self.id}, name={self.name}, parent_id={self.parent_id})"


class FileRecord(VaultBase):
    """Markdown file row, owned by exactly one folder."""

    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    folder_id: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("idx_files_by_folder", "folder_id"),)

    def __repr__(self):
        return f"FileRecord(id={self.id}, name={self.name}, folder_id={self.folder_id})"


class AppStateRecord(VaultBase):
    """Singleton row (id "current") holding selection and UI settings."""

    __tablename__ = "app_state"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    active_file_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    active_folder_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    ui_settings: Mapped[dict] = mapped_column(JsonDict, nullable=False, default=dict)


class Meta(VaultBase):
    """Metadata key-value store.

    Used for storing schema_version and other database-level metadata.
    """

    __tablename__ = "meta"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(String)
