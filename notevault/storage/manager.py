"""Storage manager for notevault.db.

This module provides the record-level interface the hierarchy manager is
built on: point lookup, full scan, indexed scan, insert-or-replace and
delete, per record kind. Each put/delete commits on its own; nothing here
spans several records in one transaction.
"""

from dataclasses import dataclass
from contextlib import contextmanager
from enum import Enum
from logging import getLogger
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel
from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from notevault.data_models.records import (
    APP_STATE_ID,
    ROOT_FOLDER_ID,
    AppStateData,
    FileData,
    FolderData,
)
from notevault.storage.models import (
    VaultBase,
    FolderRecord,
    FileRecord,
    AppStateRecord,
    Meta,
    SCHEMA_VERSION,
)
from notevault.utils.config import get_settings
from notevault.utils.timestamps import now_ms

logger = getLogger(__name__)

DATABASE_FILENAME = "notevault.db"
MEMORY_PATH = ":memory:"


# Set PRAGMAs per connection, not per engine
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Set SQLite PRAGMAs for every new connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class RecordKind(str, Enum):
    """Record kinds held by the store."""

    FOLDERS = "folders"
    FILES = "files"
    APP_STATE = "app_state"


@dataclass(frozen=True)
class _KindBinding:
    row_class: type
    data_class: type[BaseModel]
    indexes: dict[str, Any]


_BINDINGS: dict[RecordKind, _KindBinding] = {
    RecordKind.FOLDERS: _KindBinding(
        row_class=FolderRecord,
        data_class=FolderData,
        indexes={"by-parent": FolderRecord.parent_id},
    ),
    RecordKind.FILES: _KindBinding(
        row_class=FileRecord,
        data_class=FileData,
        indexes={"by-folder": FileRecord.folder_id},
    ),
    RecordKind.APP_STATE: _KindBinding(
        row_class=AppStateRecord,
        data_class=AppStateData,
        indexes={},
    ),
}


def _binding(kind: RecordKind | str) -> _KindBinding:
    try:
        return _BINDINGS[RecordKind(kind)]
    except ValueError:
        raise KeyError(f"Unknown record kind: {kind}") from None


def _row_to_data(binding: _KindBinding, row) -> BaseModel:
    values = {column.key: getattr(row, column.key) for column in row.__table__.columns}
    return binding.data_class.model_validate(values)


def _data_to_row(binding: _KindBinding, record: BaseModel):
    return binding.row_class(**record.model_dump())


class StorageManager:
    """Manager for notevault.db.

    Usage:
        storage = StorageManager(path)             # <path>/notevault.db
        storage = StorageManager(":memory:")       # throwaway store for tests
        folder = storage.get(RecordKind.FOLDERS, "root")

    IMPORTANT:
    - get() returns None for a missing id; it never raises for absence
    - put() is insert-or-replace keyed by the record's id
    - delete() of a missing id is a no-op
    - the schema version is checked on initialization
    - the root folder and the default app state are seeded exactly once
    """

    def __init__(
        self,
        database_path: Path | str | None = None,
        root_folder_name: str | None = None,
    ):
        """Initialize storage manager.

        Args:
            database_path: Directory holding notevault.db, or ":memory:"
                (defaults to the configured storage.database_path)
            root_folder_name: Display name given to a freshly seeded root
                folder (defaults to the configured storage.root_folder_name)
        """
        settings = get_settings()
        if database_path is None:
            database_path = settings.database_path
        self.root_folder_name = root_folder_name or settings.root_folder_name

        if str(database_path) == MEMORY_PATH:
            self.db_path: Optional[Path] = None
        else:
            self.db_path = Path(database_path) / DATABASE_FILENAME

        self.engine = None
        self._session_factory = None

        self._ensure_database()

    def _ensure_database(self):
        """Create tables, verify the schema version and seed default records."""
        if self.db_path is None:
            # One shared connection so every session sees the same database
            self.engine = create_engine(
                "sqlite:///:memory:",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(f"sqlite:///{self.db_path}")

        VaultBase.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

        self._verify_schema_version()
        self.seed()

    def _verify_schema_version(self):
        """Verify notevault.db schema version matches code version.

        Raises:
            RuntimeError: If schema version mismatch detected
        """
        with self.get_session() as session:
            meta = session.query(Meta).filter_by(key="schema_version").first()

            if meta is None:
                meta = Meta(key="schema_version", value=SCHEMA_VERSION)
                session.add(meta)
                session.commit()
            elif meta.value != SCHEMA_VERSION:
                raise RuntimeError(
                    f"notevault.db schema version mismatch: "
                    f"database is v{meta.value}, code expects v{SCHEMA_VERSION}. "
                    f"Export your notes with a matching version, then delete {self.db_path}."
                )

    def seed(self) -> bool:
        """Insert the root folder and default app state if they are missing.

        Returns:
            True if anything was written, False for an already-seeded store
        """
        seeded = False
        if self.get(RecordKind.FOLDERS, ROOT_FOLDER_ID) is None:
            now = now_ms()
            self.put(
                RecordKind.FOLDERS,
                FolderData(
                    id=ROOT_FOLDER_ID,
                    name=self.root_folder_name,
                    parent_id=None,
                    created_at=now,
                    updated_at=now,
                ),
            )
            seeded = True
        if self.get(RecordKind.APP_STATE, APP_STATE_ID) is None:
            self.put(RecordKind.APP_STATE, AppStateData())
            seeded = True
        if seeded:
            logger.info(f"Seeded default records in {self.db_path or MEMORY_PATH}")
        return seeded

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Get SQLAlchemy session for notevault.db.

        Returns:
            Context manager yielding a SQLAlchemy session
        """
        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    def close(self):
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            self.engine.dispose()

    # Record operations

    def get(self, kind: RecordKind | str, record_id: str) -> Optional[BaseModel]:
        """Point lookup by id. Returns None when the record does not exist."""
        binding = _binding(kind)
        with self.get_session() as session:
            row = session.get(binding.row_class, record_id)
            if row is None:
                return None
            return _row_to_data(binding, row)

    def get_all(self, kind: RecordKind | str) -> list:
        """Return every record of a kind."""
        binding = _binding(kind)
        with self.get_session() as session:
            rows = session.execute(select(binding.row_class)).scalars().all()
            return [_row_to_data(binding, row) for row in rows]

    def get_all_by_index(
        self, kind: RecordKind | str, index_name: str, value: Optional[str]
    ) -> list:
        """Return every record of a kind whose indexed column equals value.

        Indexes: folders "by-parent" (parent_id), files "by-folder" (folder_id).

        Raises:
            KeyError: If the kind has no index with that name
        """
        binding = _binding(kind)
        if index_name not in binding.indexes:
            raise KeyError(f"Record kind {RecordKind(kind).value} has no index '{index_name}'")
        column = binding.indexes[index_name]
        with self.get_session() as session:
            rows = (
                session.execute(select(binding.row_class).where(column == value))
                .scalars()
                .all()
            )
            return [_row_to_data(binding, row) for row in rows]

    def put(self, kind: RecordKind | str, record: BaseModel) -> None:
        """Insert or replace a record, keyed by its id."""
        binding = _binding(kind)
        if not isinstance(record, binding.data_class):
            raise TypeError(
                f"Expected {binding.data_class.__name__} for {RecordKind(kind).value}, "
                f"got {type(record).__name__}"
            )
        with self.get_session() as session:
            session.merge(_data_to_row(binding, record))
            session.commit()

    def delete(self, kind: RecordKind | str, record_id: str) -> bool:
        """Delete a record by id.

        Returns:
            True if a record was removed, False if it was already absent
        """
        binding = _binding(kind)
        with self.get_session() as session:
            row = session.get(binding.row_class, record_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True
