"""notevault: a local folder/file note store with JSON export and reconciling import.

Layout:
    storage/      SQLite record store (folders, files, app state)
    hierarchy/    folder/file CRUD, cascading delete, selection state
    reconcile/    export payload and multi-pass import with merge strategies
    workspace/    in-memory projection used by a view layer
    api/, cli.py  FastAPI and typer surfaces over the core
"""

from notevault.errors import (
    InvalidOperationError,
    NotFoundError,
    NoteVaultError,
    ValidationError,
)
from notevault.hierarchy.manager import HierarchyManager
from notevault.storage.manager import StorageManager

__all__ = [
    "HierarchyManager",
    "InvalidOperationError",
    "NotFoundError",
    "NoteVaultError",
    "StorageManager",
    "ValidationError",
]
