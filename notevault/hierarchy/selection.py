"""Active file/folder selection, persisted in the app-state singleton."""

from logging import getLogger
from typing import Iterable, Optional

from notevault.data_models.records import (
    APP_STATE_ID,
    AppStateData,
    SelectionChange,
    UISettings,
)
from notevault.errors import NotFoundError
from notevault.storage.manager import RecordKind, StorageManager

logger = getLogger(__name__)


class SelectionState:
    """Reads and writes the selection fields of the app-state record.

    Selecting an id that does not exist is allowed; consumers treat a
    selection that no longer resolves as "nothing selected".
    """

    def __init__(self, storage: StorageManager):
        self.storage = storage

    def get_app_state(self) -> AppStateData:
        state = self.storage.get(RecordKind.APP_STATE, APP_STATE_ID)
        if state is None:
            raise NotFoundError("App state not found")
        return state

    def _update(self, **changes) -> tuple[AppStateData, AppStateData]:
        state = self.get_app_state()
        updated = state.model_copy(update=changes)
        self.storage.put(RecordKind.APP_STATE, updated)
        return state, updated

    def set_active_file(self, file_id: Optional[str]) -> SelectionChange:
        previous, _ = self._update(active_file_id=file_id)
        return SelectionChange(previous=previous.active_file_id, current=file_id)

    def set_active_folder(self, folder_id: Optional[str]) -> SelectionChange:
        previous, _ = self._update(active_folder_id=folder_id)
        return SelectionChange(previous=previous.active_folder_id, current=folder_id)

    def update_ui_settings(self, **changes) -> UISettings:
        """Merge the given fields into the stored UI settings.

        Raises:
            ValueError: If a field name is not a UI setting
        """
        unknown = set(changes) - set(UISettings.model_fields)
        if unknown:
            raise ValueError(f"Unknown UI settings: {', '.join(sorted(unknown))}")
        state = self.get_app_state()
        merged = UISettings.model_validate({**state.ui_settings.model_dump(), **changes})
        self._update(ui_settings=merged)
        return merged

    def clear_references(
        self,
        file_ids: Iterable[str] = (),
        folder_ids: Iterable[str] = (),
    ) -> AppStateData:
        """Null out the active file/folder if it points at a deleted entity."""
        state = self.get_app_state()
        changes = {}
        if state.active_file_id is not None and state.active_file_id in set(file_ids):
            changes["active_file_id"] = None
        if state.active_folder_id is not None and state.active_folder_id in set(folder_ids):
            changes["active_folder_id"] = None
        if not changes:
            return state
        logger.info(f"Clearing selection for deleted entities: {sorted(changes)}")
        _, updated = self._update(**changes)
        return updated
