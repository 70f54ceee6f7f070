"""Record shapes shared by the store, the hierarchy manager and the reconciler.

Fields are snake_case in Python and camelCase on the wire (the export JSON
and the HTTP API), e.g. ``parent_id`` <-> ``parentId``.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ROOT_FOLDER_ID = "root"
APP_STATE_ID = "current"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FolderData(CamelModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    created_at: int
    updated_at: int

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_FOLDER_ID


class FileData(CamelModel):
    id: str
    name: str
    content: str = ""
    folder_id: str
    created_at: int
    updated_at: int


class UISettings(CamelModel):
    sidebar_width: int = 250
    preview_enabled: bool = True
    dark_mode: bool = False


class AppStateData(CamelModel):
    id: str = APP_STATE_ID
    active_file_id: Optional[str] = None
    active_folder_id: Optional[str] = ROOT_FOLDER_ID
    ui_settings: UISettings = Field(default_factory=UISettings)


class TreeListing(CamelModel):
    """Flat listing of every folder and file; callers assemble the hierarchy."""

    folders: List[FolderData] = Field(default_factory=list)
    files: List[FileData] = Field(default_factory=list)


class SelectionChange(CamelModel):
    previous: Optional[str] = None
    current: Optional[str] = None


class MergeStrategy(str, Enum):
    OVERWRITE = "overwrite"
    SKIP = "skip"
    DUPLICATE = "duplicate"

    @classmethod
    def _missing_(cls, value):
        # Exports from older builds label the rename-on-conflict strategy "prompt"
        if value == "prompt":
            return cls.DUPLICATE
        return None


class ExportData(CamelModel):
    version: str
    exported_at: int
    folders: List[FolderData] = Field(default_factory=list)
    files: List[FileData] = Field(default_factory=list)


class ImportResult(CamelModel):
    success: bool = True
    folders_imported: int = 0
    files_imported: int = 0
    errors: List[str] = Field(default_factory=list)
