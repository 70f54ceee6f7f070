"""Folder/file CRUD over the record store.

HierarchyManager owns the structural invariants of the tree:

- exactly one root folder (id "root", no parent) which is never deleted
- every non-root folder's parent exists, and the parent relation is acyclic
- every file's folder exists
- the active file/folder selection never points at a deleted entity

Cascading delete and multi-entity imports are sequences of single-record
writes, not one transaction. A failure part-way through can leave a
dangling file or grandchild folder behind.
"""

from logging import getLogger
from typing import Optional

from notevault.data_models.records import (
    ROOT_FOLDER_ID,
    FileData,
    FolderData,
    TreeListing,
)
from notevault.errors import InvalidOperationError, NotFoundError
from notevault.hierarchy.selection import SelectionState
from notevault.storage.manager import RecordKind, StorageManager
from notevault.utils.timestamps import new_record_id, now_ms

logger = getLogger(__name__)


class HierarchyManager:
    def __init__(self, storage: StorageManager, selection: SelectionState | None = None):
        self.storage = storage
        self.selection = selection or SelectionState(storage)

    # Queries

    def get_folder(self, folder_id: str) -> Optional[FolderData]:
        return self.storage.get(RecordKind.FOLDERS, folder_id)

    def get_file(self, file_id: str) -> Optional[FileData]:
        return self.storage.get(RecordKind.FILES, file_id)

    def get_child_folders(self, parent_id: Optional[str]) -> list[FolderData]:
        return self.storage.get_all_by_index(RecordKind.FOLDERS, "by-parent", parent_id)

    def get_files_by_folder(self, folder_id: str) -> list[FileData]:
        return self.storage.get_all_by_index(RecordKind.FILES, "by-folder", folder_id)

    def list_tree(self) -> TreeListing:
        """Every folder and file, flat. Callers build parent/child indexes."""
        return TreeListing(
            folders=self.storage.get_all(RecordKind.FOLDERS),
            files=self.storage.get_all(RecordKind.FILES),
        )

    def find_folder(self, name: str, parent_id: Optional[str]) -> Optional[FolderData]:
        """First folder named `name` directly under `parent_id`."""
        for folder in self.get_child_folders(parent_id):
            if folder.name == name:
                return folder
        return None

    def find_file(self, name: str, folder_id: str) -> Optional[FileData]:
        """First file named `name` directly in `folder_id`."""
        for file in self.get_files_by_folder(folder_id):
            if file.name == name:
                return file
        return None

    def _require_folder(self, folder_id: Optional[str], role: str = "Folder") -> FolderData:
        folder = self.get_folder(folder_id) if folder_id is not None else None
        if folder is None:
            raise NotFoundError(f"{role} with id {folder_id} not found")
        return folder

    def _require_file(self, file_id: str) -> FileData:
        file = self.get_file(file_id)
        if file is None:
            raise NotFoundError(f"File with id {file_id} not found")
        return file

    # Creation

    def create_folder(self, name: str, parent_id: Optional[str] = ROOT_FOLDER_ID) -> str:
        """Create a folder under an existing parent and return its id.

        Raises:
            NotFoundError: If parent_id does not resolve to a folder
        """
        # A new id can't already be anyone's ancestor, so attaching to an
        # existing parent keeps the tree acyclic.
        self._require_folder(parent_id, role="Parent folder")
        now = now_ms()
        folder = FolderData(
            id=new_record_id(),
            name=name,
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
        )
        self.storage.put(RecordKind.FOLDERS, folder)
        logger.info(f"Created folder {folder.id} ({name!r}) under {parent_id}")
        return folder.id

    def create_file(self, name: str, folder_id: str, content: str = "") -> str:
        """Create a file in an existing folder and return its id.

        Raises:
            NotFoundError: If folder_id does not resolve to a folder
        """
        self._require_folder(folder_id)
        now = now_ms()
        file = FileData(
            id=new_record_id(),
            name=name,
            content=content,
            folder_id=folder_id,
            created_at=now,
            updated_at=now,
        )
        self.storage.put(RecordKind.FILES, file)
        logger.info(f"Created file {file.id} ({name!r}) in {folder_id}")
        return file.id

    # Updates

    def rename_folder(self, folder_id: str, name: str) -> FolderData:
        folder = self._require_folder(folder_id)
        updated = folder.model_copy(update={"name": name, "updated_at": now_ms()})
        self.storage.put(RecordKind.FOLDERS, updated)
        return updated

    def rename_file(self, file_id: str, name: str) -> FileData:
        file = self._require_file(file_id)
        updated = file.model_copy(update={"name": name, "updated_at": now_ms()})
        self.storage.put(RecordKind.FILES, updated)
        return updated

    def update_file_content(self, file_id: str, content: str) -> FileData:
        """Replace a file's content.

        This is the live-editing hot path: it writes one record and returns
        it, so a caller can patch its cached copy instead of reloading the tree.
        """
        file = self._require_file(file_id)
        updated = file.model_copy(update={"content": content, "updated_at": now_ms()})
        self.storage.put(RecordKind.FILES, updated)
        logger.debug(f"Saved {len(content)} chars to file {file_id}")
        return updated

    # Deletion

    def delete_file(self, file_id: str) -> bool:
        """Delete a file. Deleting an absent file is a no-op.

        Returns:
            True if a record was removed
        """
        removed = self.storage.delete(RecordKind.FILES, file_id)
        self.selection.clear_references(file_ids=[file_id])
        if removed:
            logger.info(f"Deleted file {file_id}")
        return removed

    def delete_folder(self, folder_id: str, recursive: bool = False) -> bool:
        """Delete a folder, optionally with everything beneath it.

        Args:
            folder_id: Folder to delete
            recursive: Also delete all descendant folders and files. Without
                it, a folder that has any child folder or file is refused.

        Returns:
            True if the folder record was removed, False if it was already absent

        Raises:
            InvalidOperationError: On the root folder, or a non-recursive
                delete of a non-empty folder
        """
        if folder_id == ROOT_FOLDER_ID:
            raise InvalidOperationError("Cannot delete root folder")

        if self.get_folder(folder_id) is None:
            return False

        if not recursive:
            if self.get_child_folders(folder_id) or self.get_files_by_folder(folder_id):
                raise InvalidOperationError(
                    "Cannot delete non-empty folder. Use recursive delete instead."
                )
            self.storage.delete(RecordKind.FOLDERS, folder_id)
            self.selection.clear_references(folder_ids=[folder_id])
            logger.info(f"Deleted folder {folder_id}")
            return True

        deleted_folders, deleted_files = self._delete_subtree(folder_id)
        self.selection.clear_references(file_ids=deleted_files, folder_ids=deleted_folders)
        logger.info(
            f"Deleted folder {folder_id} with {len(deleted_folders) - 1} subfolders "
            f"and {len(deleted_files)} files"
        )
        return True

    def _delete_subtree(self, folder_id: str) -> tuple[list[str], list[str]]:
        """Depth-first, post-order delete of a folder and all its descendants.

        Uses an explicit stack so tree depth doesn't bound Python's recursion
        limit. A folder is removed only after its children and files are.
        """
        deleted_folders: list[str] = []
        deleted_files: list[str] = []
        stack: list[tuple[str, bool]] = [(folder_id, False)]
        visited: set[str] = set()

        while stack:
            current_id, children_done = stack.pop()
            if children_done:
                for file in self.get_files_by_folder(current_id):
                    self.storage.delete(RecordKind.FILES, file.id)
                    deleted_files.append(file.id)
                self.storage.delete(RecordKind.FOLDERS, current_id)
                deleted_folders.append(current_id)
                continue

            if current_id in visited:
                continue
            visited.add(current_id)
            stack.append((current_id, True))
            for child in self.get_child_folders(current_id):
                # root has no parent, so it never shows up as a child
                if child.id != ROOT_FOLDER_ID:
                    stack.append((child.id, False))

        return deleted_folders, deleted_files
