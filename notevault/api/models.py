from typing import Optional

from notevault.data_models.records import ROOT_FOLDER_ID, CamelModel


class CreateFolderRequest(CamelModel):
    name: str
    parent_id: str = ROOT_FOLDER_ID


class CreateFileRequest(CamelModel):
    name: str
    folder_id: str = ROOT_FOLDER_ID
    content: str = ""


class RenameRequest(CamelModel):
    name: str


class ContentRequest(CamelModel):
    content: str


class SelectionRequest(CamelModel):
    id: Optional[str] = None


class UISettingsPatch(CamelModel):
    sidebar_width: Optional[int] = None
    preview_enabled: Optional[bool] = None
    dark_mode: Optional[bool] = None


class CreatedResponse(CamelModel):
    id: str


class DeletedResponse(CamelModel):
    id: str
    deleted: bool
