"""Export/import of the folder/file tree.

Export is a straight dump of every folder and file with their ids. Import
goes through the HierarchyManager only, never the store:

1. validate the payload shape (a bad payload aborts with no writes)
2. import top-level folders against the local root
3. import the remaining folders in passes, each pass taking every folder
   whose parent has already been mapped, until a pass makes no progress
4. import files whose folder was mapped

Each folder/file is matched by (name, resolved parent) against the current
store, then created, skipped, overwritten or duplicated per the merge
strategy. Per-entity failures go to ImportResult.errors and the import
carries on with the rest.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from logging import getLogger
from pathlib import Path
from typing import Any, Optional

from notevault.data_models.records import (
    ROOT_FOLDER_ID,
    ExportData,
    ImportResult,
    MergeStrategy,
)
from notevault.errors import ValidationError
from notevault.hierarchy.manager import HierarchyManager
from notevault.reconcile.payload import (
    ImportFileEntry,
    ImportFolderEntry,
    parse_merge_strategy,
    validate_import_data,
)
from notevault.utils.config import get_settings
from notevault.utils.timestamps import now_ms

logger = getLogger(__name__)

PARENT_NOT_FOUND = "Parent folder not found"


@dataclass(frozen=True)
class ImportOptions:
    """Knobs for import_from_json.

    Attributes:
        report_unresolved_folders: Add an error for every folder whose parent
            chain never resolved. False keeps the legacy behaviour of
            dropping them silently.
        duplicate_suffix: Appended to the name of a conflicting entity under
            the duplicate strategy.
    """

    report_unresolved_folders: bool = True
    duplicate_suffix: str = " (imported)"


# Export


def export_to_json(hierarchy: HierarchyManager, version: str | None = None) -> ExportData:
    """Snapshot every persisted folder and file, keeping their ids."""
    tree = hierarchy.list_tree()
    return ExportData(
        version=version or get_settings().export_version,
        exported_at=now_ms(),
        folders=tree.folders,
        files=tree.files,
    )


def write_export(
    hierarchy: HierarchyManager,
    output_dir: Path,
    filename: str | None = None,
) -> Path:
    """
    Write the export payload as JSON into output_dir.

    Args:
        hierarchy: Source of the folders/files to export
        output_dir: Directory that receives the file (created if missing)
        filename: Override for the default dated file name

    Returns:
        Path of the written file
    """
    payload = export_to_json(hierarchy)
    if filename is None:
        filename = get_settings().export_filename(datetime.now().strftime("%Y-%m-%d"))

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / filename
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload.model_dump(by_alias=True), f, indent=2)

    logger.info(
        f"Exported {len(payload.folders)} folders and {len(payload.files)} files "
        f"to {output_path}"
    )
    return output_path


def read_import_file(path: Path) -> Any:
    """Parse an export file from disk.

    Raises:
        ValidationError: If the file is not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid import data format: {path} is not valid JSON ({e})") from e


# Import


class _ImportRun:
    """State for one import: the foreign -> local id map and the result."""

    def __init__(
        self,
        hierarchy: HierarchyManager,
        strategy: MergeStrategy,
        options: ImportOptions,
    ):
        self.hierarchy = hierarchy
        self.strategy = strategy
        self.options = options
        self.id_map: dict[str, str] = {}
        self.result = ImportResult()

    def _fail(self, kind: str, name: str, message: str):
        error = f"Failed to import {kind} {name}: {message}"
        logger.warning(error)
        self.result.errors.append(error)

    def run_folders(self, folders: list[ImportFolderEntry]):
        top_level = [folder for folder in folders if folder.parent_id is None]
        remaining = [folder for folder in folders if folder.parent_id is not None]

        for folder in top_level:
            self._try_folder(folder, ROOT_FOLDER_ID)

        while remaining:
            still_remaining: list[ImportFolderEntry] = []
            for folder in remaining:
                mapped_parent_id = self.id_map.get(folder.parent_id)
                if mapped_parent_id is None:
                    still_remaining.append(folder)
                else:
                    self._try_folder(folder, mapped_parent_id)

            if len(still_remaining) == len(remaining):
                break
            remaining = still_remaining

        for folder in remaining:
            if self.options.report_unresolved_folders:
                self._fail("folder", folder.name, PARENT_NOT_FOUND)
            else:
                logger.warning(f"Dropping folder {folder.name}: {PARENT_NOT_FOUND}")

    def run_files(self, files: list[ImportFileEntry]):
        for file in files:
            mapped_folder_id = self.id_map.get(file.folder_id)
            if mapped_folder_id is None:
                self._fail("file", file.name, PARENT_NOT_FOUND)
                continue
            try:
                self._import_file(file, mapped_folder_id)
            except Exception as e:
                self._fail("file", file.name, str(e))
            else:
                self.result.files_imported += 1

    def _try_folder(self, folder: ImportFolderEntry, parent_id: str):
        try:
            self._import_folder(folder, parent_id)
        except Exception as e:
            self._fail("folder", folder.name, str(e))
        else:
            self.result.folders_imported += 1

    def _import_folder(self, folder: ImportFolderEntry, parent_id: str):
        if folder.parent_id is None and folder.id == ROOT_FOLDER_ID:
            self._import_root(folder)
            return

        existing = self.hierarchy.find_folder(folder.name, parent_id)

        if existing is None:
            local_id = self.hierarchy.create_folder(folder.name, parent_id)
        elif self.strategy is MergeStrategy.SKIP:
            local_id = existing.id
        elif self.strategy is MergeStrategy.OVERWRITE:
            local_id = self.hierarchy.rename_folder(existing.id, folder.name).id
        else:
            local_id = self.hierarchy.create_folder(
                f"{folder.name}{self.options.duplicate_suffix}", parent_id
            )

        self.id_map[folder.id] = local_id

    def _import_root(self, folder: ImportFolderEntry):
        """The exporting store's root always stands for our root.

        Only overwrite touches it (taking the foreign name); skip and
        duplicate just anchor the foreign tree there.
        """
        if self.strategy is MergeStrategy.OVERWRITE:
            self.hierarchy.rename_folder(ROOT_FOLDER_ID, folder.name)
        self.id_map[folder.id] = ROOT_FOLDER_ID

    def _import_file(self, file: ImportFileEntry, folder_id: str):
        content = file.content or ""
        existing = self.hierarchy.find_file(file.name, folder_id)

        if existing is None:
            self.hierarchy.create_file(file.name, folder_id, content)
        elif self.strategy is MergeStrategy.SKIP:
            return
        elif self.strategy is MergeStrategy.OVERWRITE:
            self.hierarchy.update_file_content(existing.id, content)
        else:
            self.hierarchy.create_file(
                f"{file.name}{self.options.duplicate_suffix}", folder_id, content
            )


def import_from_json(
    hierarchy: HierarchyManager,
    data: Any,
    merge_strategy: MergeStrategy | str,
    options: Optional[ImportOptions] = None,
) -> ImportResult:
    """
    Merge an export payload into the existing tree.

    Args:
        hierarchy: Target tree
        data: Parsed export payload (untrusted)
        merge_strategy: "overwrite", "skip" or "duplicate" ("prompt" is
            accepted as the old name for duplicate)
        options: Import knobs, see ImportOptions

    Returns:
        ImportResult. Never raises for bad input: a malformed payload or
        strategy yields success=False with zero counts and one error.
    """
    try:
        strategy = parse_merge_strategy(merge_strategy)
        payload = validate_import_data(data)
    except ValidationError as e:
        logger.warning(f"Rejected import: {e}")
        return ImportResult(success=False, errors=[str(e)])

    run = _ImportRun(hierarchy, strategy, options or ImportOptions())
    run.run_folders(payload.folders)
    run.run_files(payload.files)

    result = run.result
    result.success = not result.errors
    logger.info(
        f"Import ({strategy.value}) processed {result.folders_imported} folders and "
        f"{result.files_imported} files with {len(result.errors)} errors"
    )
    return result
