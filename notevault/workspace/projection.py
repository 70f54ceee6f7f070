"""In-memory projection of the tree for a view layer.

The projection is reloaded wholesale by refresh() after structural changes,
while content edits patch the one cached file and are written through to
the store by a DebouncedWriter. Between those writes the cached content is
the authoritative copy.

Only one refresh runs at a time. A refresh requested while another is in
flight is dropped, not queued, so the projection is eventually consistent
with the store rather than guaranteed to reflect the very latest write.
"""

import threading
from logging import getLogger
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from notevault.data_models.records import (
    ROOT_FOLDER_ID,
    FileData,
    FolderData,
    SelectionChange,
)
from notevault.errors import NotFoundError, NoteVaultError
from notevault.hierarchy.manager import HierarchyManager
from notevault.utils.config import get_settings
from notevault.utils.timestamps import now_ms
from notevault.workspace.debounce import DebouncedWriter

logger = getLogger(__name__)


class Workspace:
    def __init__(self, hierarchy: HierarchyManager, debounce_seconds: float | None = None):
        self.hierarchy = hierarchy
        self.selection = hierarchy.selection

        self.folders: list[FolderData] = []
        self.files: list[FileData] = []
        self.active_file_id: Optional[str] = None
        self.active_folder_id: Optional[str] = ROOT_FOLDER_ID
        self.is_loading = False
        self.error: Optional[Exception] = None

        if debounce_seconds is None:
            debounce_seconds = get_settings().debounce_seconds
        self._refresh_lock = threading.Lock()
        self._state_lock = threading.RLock()
        self._writer = DebouncedWriter(self._persist_content, debounce_seconds)

    # Projection

    @property
    def active_file(self) -> Optional[FileData]:
        if self.active_file_id is None:
            return None
        return self._cached_file(self.active_file_id)

    @property
    def write_failures(self) -> dict[str, Exception]:
        return self._writer.failures

    def _cached_file(self, file_id: str) -> Optional[FileData]:
        with self._state_lock:
            for file in self.files:
                if file.id == file_id:
                    return file
        return None

    def children_map(self) -> dict[Optional[str], list[FolderData]]:
        """Cached folders grouped by parent id."""
        children: dict[Optional[str], list[FolderData]] = {}
        with self._state_lock:
            for folder in self.folders:
                children.setdefault(folder.parent_id, []).append(folder)
        return children

    def files_map(self) -> dict[str, list[FileData]]:
        """Cached files grouped by folder id."""
        by_folder: dict[str, list[FileData]] = {}
        with self._state_lock:
            for file in self.files:
                by_folder.setdefault(file.folder_id, []).append(file)
        return by_folder

    def refresh(self) -> bool:
        """Reload folders, files and selection from the store.

        Returns:
            True if the projection was reloaded; False if the request was
            dropped because a refresh was already running, or the load failed
            (the failure is kept in `error`)
        """
        if not self._refresh_lock.acquire(blocking=False):
            logger.warning("Refresh already in progress; dropping request")
            return False
        try:
            self.is_loading = True
            try:
                tree = self.hierarchy.list_tree()
                state = self.selection.get_app_state()
            except (NoteVaultError, SQLAlchemyError) as e:
                logger.error(f"Failed to load file system: {e}")
                self.error = e
                return False

            files = [self._with_pending_content(file) for file in tree.files]
            with self._state_lock:
                self.folders = tree.folders
                self.files = files
                self.active_file_id = state.active_file_id
                self.active_folder_id = state.active_folder_id
            self.error = None
            return True
        finally:
            self.is_loading = False
            self._refresh_lock.release()

    def _with_pending_content(self, file: FileData) -> FileData:
        pending = self._writer.pending_value(file.id)
        if pending is None:
            return file
        return file.model_copy(update={"content": pending})

    def _patch_file(self, updated: FileData):
        with self._state_lock:
            for index, file in enumerate(self.files):
                if file.id == updated.id:
                    self.files[index] = updated
                    return
            self.files.append(updated)

    # Structural changes: write, then reload

    def create_folder(self, name: str, parent_id: Optional[str] = ROOT_FOLDER_ID) -> str:
        folder_id = self.hierarchy.create_folder(name, parent_id)
        self.refresh()
        return folder_id

    def create_file(self, name: str, folder_id: str, content: str = "") -> str:
        file_id = self.hierarchy.create_file(name, folder_id, content)
        self.refresh()
        return file_id

    def rename_folder(self, folder_id: str, name: str):
        self.hierarchy.rename_folder(folder_id, name)
        self.refresh()

    def rename_file(self, file_id: str, name: str):
        self.hierarchy.rename_file(file_id, name)
        self.refresh()

    def remove_folder(self, folder_id: str, recursive: bool = False):
        self.hierarchy.delete_folder(folder_id, recursive)
        with self._state_lock:
            cached_file_ids = [file.id for file in self.files]
        for file_id in cached_file_ids:
            if self.hierarchy.get_file(file_id) is None:
                self._writer.discard(file_id)
        self.refresh()

    def remove_file(self, file_id: str):
        self._writer.discard(file_id)
        self.hierarchy.delete_file(file_id)
        if self.active_file_id == file_id:
            self.active_file_id = None
        self.refresh()

    # Content edits: patch locally, persist later

    def update_file_content(self, file_id: str, content: str) -> FileData:
        """Apply an edit to the cached file and schedule a debounced save.

        Raises:
            NotFoundError: If the file is neither cached nor in the store
        """
        cached = self._cached_file(file_id)
        if cached is None:
            cached = self.hierarchy.get_file(file_id)
            if cached is None:
                raise NotFoundError(f"File with id {file_id} not found")

        patched = cached.model_copy(update={"content": content, "updated_at": now_ms()})
        self._patch_file(patched)
        self._writer.submit(file_id, content)
        return patched

    def _persist_content(self, file_id: str, content: str):
        self.hierarchy.update_file_content(file_id, content)

    def flush(self):
        """Write any pending content edits immediately."""
        self._writer.flush()

    def close(self):
        self._writer.close()

    # Selection

    def set_active_file(self, file_id: Optional[str]) -> SelectionChange:
        """Persist the active file; fetch it if the projection doesn't have it.

        Selecting an id the store doesn't know is accepted; active_file is
        then None.
        """
        change = self.selection.set_active_file(file_id)
        self.active_file_id = file_id
        if file_id is not None and self._cached_file(file_id) is None:
            fetched = self.hierarchy.get_file(file_id)
            if fetched is not None:
                self._patch_file(fetched)
            else:
                logger.info(f"Active file {file_id} not found in store")
        return change

    def set_active_folder(self, folder_id: Optional[str]) -> SelectionChange:
        change = self.selection.set_active_folder(folder_id)
        self.active_folder_id = folder_id
        return change
