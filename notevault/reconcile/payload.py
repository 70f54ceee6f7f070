"""Strict shape checks for an import payload.

The payload is whatever a user hands us (usually a parsed export file), so
nothing is coerced: version must be a string, exportedAt a number, and
every folder/file entry must carry the keys the importer relies on.
"""

from typing import Annotated, Any, List, Optional, Union

from pydantic import (
    StrictFloat,
    StrictInt,
    StrictStr,
    StringConstraints,
    ValidationError as PydanticValidationError,
)

from notevault.data_models.records import CamelModel, MergeStrategy
from notevault.errors import ValidationError

NonEmptyStr = Annotated[str, StringConstraints(strict=True, min_length=1)]


class ImportFolderEntry(CamelModel):
    id: NonEmptyStr
    name: NonEmptyStr
    # Required key; null marks a top-level folder
    parent_id: Optional[StrictStr]


class ImportFileEntry(CamelModel):
    id: NonEmptyStr
    name: NonEmptyStr
    folder_id: NonEmptyStr
    content: Optional[StrictStr]


class ImportPayload(CamelModel):
    version: StrictStr
    exported_at: Union[StrictInt, StrictFloat]
    folders: List[ImportFolderEntry]
    files: List[ImportFileEntry]


def _describe(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "payload"
    return f"{location}: {first['msg']}"


def validate_import_data(data: Any) -> ImportPayload:
    """Check an import payload and return it in typed form.

    Raises:
        ValidationError: Describing the first format problem found
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid import data format: payload must be a JSON object")
    try:
        return ImportPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid import data format: {_describe(e)}") from e


def parse_merge_strategy(value: Union[str, MergeStrategy]) -> MergeStrategy:
    """Accept a MergeStrategy or its string value ("prompt" means duplicate)."""
    try:
        return MergeStrategy(value)
    except ValueError:
        choices = ", ".join(strategy.value for strategy in MergeStrategy)
        raise ValidationError(
            f"Unknown merge strategy {value!r}; expected one of: {choices}"
        ) from None
