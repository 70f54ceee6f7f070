"""HTTP surface over the note store for a browser-based view layer."""

from functools import lru_cache
from logging import getLogger
from typing import Any

from fastapi import Body, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notevault.api.models import (
    ContentRequest,
    CreatedResponse,
    CreateFileRequest,
    CreateFolderRequest,
    DeletedResponse,
    RenameRequest,
    SelectionRequest,
    UISettingsPatch,
)
from notevault.data_models.records import (
    AppStateData,
    ExportData,
    FileData,
    FolderData,
    ImportResult,
    MergeStrategy,
    SelectionChange,
    TreeListing,
    UISettings,
)
from notevault.errors import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from notevault.hierarchy.manager import HierarchyManager
from notevault.reconcile.export_import import export_to_json, import_from_json
from notevault.storage.manager import StorageManager

logger = getLogger(__name__)

app = FastAPI(title="notevault")
app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_storage_manager() -> StorageManager:
    return StorageManager()


def get_hierarchy(
    storage: StorageManager = Depends(get_storage_manager),
) -> HierarchyManager:
    return HierarchyManager(storage)


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


app.add_exception_handler(NotFoundError, _error_handler(404))
app.add_exception_handler(InvalidOperationError, _error_handler(409))
app.add_exception_handler(ValidationError, _error_handler(422))


# Tree


@app.get("/api/tree", response_model=TreeListing)
def get_tree(hierarchy: HierarchyManager = Depends(get_hierarchy)):
    return hierarchy.list_tree()


# Folders


@app.post("/api/folders", response_model=CreatedResponse, status_code=201)
def create_folder(
    body: CreateFolderRequest, hierarchy: HierarchyManager = Depends(get_hierarchy)
):
    return CreatedResponse(id=hierarchy.create_folder(body.name, body.parent_id))


@app.patch("/api/folders/{folder_id}", response_model=FolderData)
def rename_folder(
    folder_id: str,
    body: RenameRequest,
    hierarchy: HierarchyManager = Depends(get_hierarchy),
):
    return hierarchy.rename_folder(folder_id, body.name)


@app.delete("/api/folders/{folder_id}", response_model=DeletedResponse)
def delete_folder(
    folder_id: str,
    recursive: bool = False,
    hierarchy: HierarchyManager = Depends(get_hierarchy),
):
    return DeletedResponse(
        id=folder_id, deleted=hierarchy.delete_folder(folder_id, recursive)
    )


# Files


@app.post("/api/files", response_model=CreatedResponse, status_code=201)
def create_file(
    body: CreateFileRequest, hierarchy: HierarchyManager = Depends(get_hierarchy)
):
    return CreatedResponse(
        id=hierarchy.create_file(body.name, body.folder_id, body.content)
    )


@app.get("/api/files/{file_id}", response_model=FileData)
def get_file(file_id: str, hierarchy: HierarchyManager = Depends(get_hierarchy)):
    file = hierarchy.get_file(file_id)
    if file is None:
        raise NotFoundError(f"File with id {file_id} not found")
    return file


@app.patch("/api/files/{file_id}", response_model=FileData)
def rename_file(
    file_id: str,
    body: RenameRequest,
    hierarchy: HierarchyManager = Depends(get_hierarchy),
):
    return hierarchy.rename_file(file_id, body.name)


@app.put("/api/files/{file_id}/content", response_model=FileData)
def update_file_content(
    file_id: str,
    body: ContentRequest,
    hierarchy: HierarchyManager = Depends(get_hierarchy),
):
    return hierarchy.update_file_content(file_id, body.content)


@app.delete("/api/files/{file_id}", response_model=DeletedResponse)
def delete_file(file_id: str, hierarchy: HierarchyManager = Depends(get_hierarchy)):
    return DeletedResponse(id=file_id, deleted=hierarchy.delete_file(file_id))


# Selection and UI settings


@app.get("/api/state", response_model=AppStateData)
def get_state(hierarchy: HierarchyManager = Depends(get_hierarchy)):
    return hierarchy.selection.get_app_state()


@app.put("/api/state/active-file", response_model=SelectionChange)
def set_active_file(
    body: SelectionRequest, hierarchy: HierarchyManager = Depends(get_hierarchy)
):
    return hierarchy.selection.set_active_file(body.id)


@app.put("/api/state/active-folder", response_model=SelectionChange)
def set_active_folder(
    body: SelectionRequest, hierarchy: HierarchyManager = Depends(get_hierarchy)
):
    return hierarchy.selection.set_active_folder(body.id)


@app.patch("/api/state/ui-settings", response_model=UISettings)
def update_ui_settings(
    body: UISettingsPatch, hierarchy: HierarchyManager = Depends(get_hierarchy)
):
    return hierarchy.selection.update_ui_settings(**body.model_dump(exclude_none=True))


# Export / import


@app.get("/api/export", response_model=ExportData)
def export_tree(hierarchy: HierarchyManager = Depends(get_hierarchy)):
    return export_to_json(hierarchy)


@app.post("/api/import", response_model=ImportResult)
def import_tree(
    data: Any = Body(...),
    strategy: str = MergeStrategy.SKIP.value,
    hierarchy: HierarchyManager = Depends(get_hierarchy),
):
    return import_from_json(hierarchy, data, strategy)
