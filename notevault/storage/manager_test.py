"""Unit tests for StorageManager."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from notevault.data_models.records import AppStateData, FileData, FolderData, UISettings
from notevault.storage.db_helpers import JsonDict
from notevault.storage.factories import FileRecordFactory, FolderRecordFactory
from notevault.storage.manager import RecordKind, StorageManager
from notevault.storage.models import (
    VaultBase,
    AppStateRecord,
    FolderRecord,
    Meta,
    SCHEMA_VERSION,
)


def make_folder(folder_id: str, name: str, parent_id: str | None = "root") -> FolderData:
    return FolderData(id=folder_id, name=name, parent_id=parent_id, created_at=1, updated_at=1)


class TestStorageManager:
    """Test StorageManager initialization and database creation."""

    def test_create_database(self, tmp_path: Path, storage_manager: StorageManager):
        """Test that notevault.db is created with a seeded root and app state."""
        assert (tmp_path / "notevault.db").exists()

        root = storage_manager.get(RecordKind.FOLDERS, "root")
        assert root is not None
        assert root.parent_id is None
        assert root.name == "My Documents"

        state = storage_manager.get(RecordKind.APP_STATE, "current")
        assert state == AppStateData()
        assert state.active_folder_id == "root"
        assert state.ui_settings.sidebar_width == 250

    def test_memory_database(self):
        """Test that ":memory:" gives a working, seeded store."""
        storage = StorageManager(":memory:")
        assert storage.db_path is None
        assert storage.get(RecordKind.FOLDERS, "root") is not None
        storage.close()

    def test_custom_root_name(self, tmp_path: Path):
        storage = StorageManager(tmp_path, root_folder_name="Vault")
        assert storage.get(RecordKind.FOLDERS, "root").name == "Vault"

    def test_reinitialize_is_noop(self, tmp_path: Path, storage_manager: StorageManager):
        """Test that opening a seeded store again doesn't reseed it."""
        storage_manager.put(RecordKind.FOLDERS, make_folder("root", "Renamed", None))
        storage_manager.put(
            RecordKind.APP_STATE, AppStateData(active_file_id="f1", active_folder_id=None)
        )

        reopened = StorageManager(tmp_path)

        assert reopened.seed() is False
        assert reopened.get(RecordKind.FOLDERS, "root").name == "Renamed"
        assert reopened.get(RecordKind.APP_STATE, "current").active_file_id == "f1"
        assert len(reopened.get_all(RecordKind.FOLDERS)) == 1


class TestSchemaVersioning:
    """Test schema version checking and validation."""

    def test_new_db_sets_version(self, storage_manager: StorageManager):
        with storage_manager.get_session() as session:
            meta = session.query(Meta).filter_by(key="schema_version").first()
            assert meta is not None
            assert meta.value == SCHEMA_VERSION

    def test_version_mismatch_raises_error(self, tmp_path: Path):
        """Test that wrong notevault.db version raises RuntimeError."""
        engine = create_engine(f"sqlite:///{tmp_path / 'notevault.db'}")
        VaultBase.metadata.create_all(engine)

        Session = sessionmaker(bind=engine)
        session = Session()
        session.add(Meta(key="schema_version", value="0.0.0"))
        session.commit()
        session.close()
        engine.dispose()

        with pytest.raises(RuntimeError, match="schema version mismatch"):
            StorageManager(tmp_path)


class TestRecordOperations:
    """Test get/get_all/get_all_by_index/put/delete."""

    def test_get_missing_returns_none(self, storage_manager: StorageManager):
        assert storage_manager.get(RecordKind.FOLDERS, "nope") is None
        assert storage_manager.get(RecordKind.FILES, "nope") is None

    def test_put_inserts_then_replaces(self, storage_manager: StorageManager):
        storage_manager.put(RecordKind.FOLDERS, make_folder("a", "A"))
        storage_manager.put(RecordKind.FOLDERS, make_folder("a", "A2"))

        folder = storage_manager.get(RecordKind.FOLDERS, "a")
        assert folder.name == "A2"
        assert len(storage_manager.get_all(RecordKind.FOLDERS)) == 2

    def test_put_accepts_string_kind(self, storage_manager: StorageManager):
        storage_manager.put("folders", make_folder("a", "A"))
        assert storage_manager.get("folders", "a").name == "A"

    def test_put_rejects_wrong_record_type(self, storage_manager: StorageManager):
        with pytest.raises(TypeError, match="Expected FileData"):
            storage_manager.put(RecordKind.FILES, make_folder("a", "A"))

    def test_unknown_kind_raises_key_error(self, storage_manager: StorageManager):
        with pytest.raises(KeyError, match="Unknown record kind"):
            storage_manager.get("notes", "x")

    def test_get_all_by_index(self, storage_manager: StorageManager):
        storage_manager.put(RecordKind.FOLDERS, make_folder("a", "A"))
        storage_manager.put(RecordKind.FOLDERS, make_folder("b", "B", "a"))
        storage_manager.put(RecordKind.FOLDERS, make_folder("c", "C", "a"))
        storage_manager.put(
            RecordKind.FILES,
            FileData(id="f", name="f.md", content="x", folder_id="a", created_at=1, updated_at=1),
        )

        children = storage_manager.get_all_by_index(RecordKind.FOLDERS, "by-parent", "a")
        assert sorted(folder.id for folder in children) == ["b", "c"]

        top_level = storage_manager.get_all_by_index(RecordKind.FOLDERS, "by-parent", None)
        assert [folder.id for folder in top_level] == ["root"]

        files = storage_manager.get_all_by_index(RecordKind.FILES, "by-folder", "a")
        assert [file.id for file in files] == ["f"]

    def test_unknown_index_raises_key_error(self, storage_manager: StorageManager):
        with pytest.raises(KeyError, match="no index 'by-name'"):
            storage_manager.get_all_by_index(RecordKind.FOLDERS, "by-name", "x")
        with pytest.raises(KeyError):
            storage_manager.get_all_by_index(RecordKind.APP_STATE, "by-parent", "x")

    def test_delete(self, storage_manager: StorageManager):
        storage_manager.put(RecordKind.FOLDERS, make_folder("a", "A"))

        assert storage_manager.delete(RecordKind.FOLDERS, "a") is True
        assert storage_manager.get(RecordKind.FOLDERS, "a") is None
        # Deleting again is a no-op
        assert storage_manager.delete(RecordKind.FOLDERS, "a") is False

    def test_rows_written_by_factories_are_visible(
        self, storage_manager: StorageManager, storage_session
    ):
        folder = FolderRecordFactory(name="Inbox")
        FileRecordFactory(folder_id=folder.id, content="hello")

        stored = storage_manager.get(RecordKind.FOLDERS, folder.id)
        assert stored.name == "Inbox"
        files = storage_manager.get_all_by_index(RecordKind.FILES, "by-folder", folder.id)
        assert [file.content for file in files] == ["hello"]

    def test_ui_settings_round_trip_through_json_column(self, storage_manager: StorageManager):
        state = AppStateData()
        state.ui_settings.dark_mode = True
        storage_manager.put(RecordKind.APP_STATE, state)

        with storage_manager.get_session() as session:
            assert session.query(FolderRecord).count() == 1

        stored = storage_manager.get(RecordKind.APP_STATE, "current")
        assert stored.ui_settings.dark_mode is True

    def test_json_column_accepts_model_and_null(self, storage_manager: StorageManager):
        with storage_manager.get_session() as session:
            row = session.get(AppStateRecord, "current")
            row.ui_settings = UISettings(sidebar_width=400)
            session.commit()

        stored = storage_manager.get(RecordKind.APP_STATE, "current")
        assert stored.ui_settings.sidebar_width == 400
        assert stored.ui_settings.preview_enabled is True

        helper = JsonDict()
        assert helper.process_bind_param(None, None) is None
        assert helper.process_result_value(None, None) == {}
