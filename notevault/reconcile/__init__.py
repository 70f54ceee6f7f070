"""Export the whole tree to a portable payload, and merge one back in."""

from notevault.reconcile.export_import import (
    ImportOptions,
    export_to_json,
    import_from_json,
    read_import_file,
    write_export,
)
from notevault.reconcile.payload import parse_merge_strategy, validate_import_data

__all__ = [
    "ImportOptions",
    "export_to_json",
    "import_from_json",
    "parse_merge_strategy",
    "read_import_file",
    "validate_import_data",
    "write_export",
]
