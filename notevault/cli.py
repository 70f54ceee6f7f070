import json
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer

from notevault.data_models.records import ROOT_FOLDER_ID, MergeStrategy, TreeListing
from notevault.errors import NoteVaultError
from notevault.hierarchy.manager import HierarchyManager
from notevault.reconcile.export_import import (
    ImportOptions,
    import_from_json,
    read_import_file,
    write_export,
)
from notevault.storage.manager import StorageManager
from notevault.utils.config import get_settings
from notevault.utils.logging_config import setup_logging

app = typer.Typer(help="Local folder/file note store.")

STORAGE_HELP = (
    "Storage directory (contains notevault.db). "
    "If not specified, uses the configured database path."
)


def _hierarchy(storage_path: Optional[Path]) -> HierarchyManager:
    return HierarchyManager(StorageManager(storage_path))


@contextmanager
def _reporting_errors():
    try:
        yield
    except NoteVaultError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _render_tree(tree: TreeListing) -> list[str]:
    children: dict[Optional[str], list] = {}
    for folder in tree.folders:
        children.setdefault(folder.parent_id, []).append(folder)
    files_by_folder: dict[str, list] = {}
    for file in tree.files:
        files_by_folder.setdefault(file.folder_id, []).append(file)

    lines: list[str] = []

    def walk(folder, depth: int):
        indent = "  " * depth
        lines.append(f"{indent}{folder.name}/  [{folder.id}]")
        for child in sorted(children.get(folder.id, []), key=lambda f: f.name):
            walk(child, depth + 1)
        for file in sorted(files_by_folder.get(folder.id, []), key=lambda f: f.name):
            lines.append(f"{indent}  {file.name}  [{file.id}]")

    for root in sorted(children.get(None, []), key=lambda f: f.name):
        walk(root, 0)
    return lines


@app.command()
def init(
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Create the database (if needed) and seed the root folder.
    """
    storage = StorageManager(storage_path)
    typer.echo(f"✓ Store ready at {storage.db_path}")


@app.command()
def tree(
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Print the folder/file hierarchy with ids.
    """
    listing = _hierarchy(storage_path).list_tree()
    for line in _render_tree(listing):
        typer.echo(line)


@app.command()
def mkdir(
    name: str = typer.Argument(...),
    parent_id: str = typer.Option(ROOT_FOLDER_ID, "--parent", "-p", help="Parent folder id"),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Create a folder.
    """
    with _reporting_errors():
        folder_id = _hierarchy(storage_path).create_folder(name, parent_id)
    typer.echo(folder_id)


@app.command()
def touch(
    name: str = typer.Argument(...),
    folder_id: str = typer.Option(ROOT_FOLDER_ID, "--folder", "-f", help="Owning folder id"),
    content: str = typer.Option("", "--content", "-c", help="Initial markdown content"),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Create a file.
    """
    with _reporting_errors():
        file_id = _hierarchy(storage_path).create_file(name, folder_id, content)
    typer.echo(file_id)


@app.command()
def write(
    file_id: str = typer.Argument(...),
    content: str = typer.Argument(...),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Replace a file's content.
    """
    with _reporting_errors():
        _hierarchy(storage_path).update_file_content(file_id, content)
    typer.echo(f"✓ Saved {file_id}")


@app.command()
def cat(
    file_id: str = typer.Argument(...),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Print a file's content.
    """
    file = _hierarchy(storage_path).get_file(file_id)
    if file is None:
        typer.echo(f"Error: File with id {file_id} not found", err=True)
        raise typer.Exit(1)
    typer.echo(file.content)


@app.command("rename-folder")
def rename_folder(
    folder_id: str = typer.Argument(...),
    name: str = typer.Argument(...),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Rename a folder.
    """
    with _reporting_errors():
        _hierarchy(storage_path).rename_folder(folder_id, name)
    typer.echo(f"✓ Renamed {folder_id} to {name}")


@app.command("rename-file")
def rename_file(
    file_id: str = typer.Argument(...),
    name: str = typer.Argument(...),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Rename a file.
    """
    with _reporting_errors():
        _hierarchy(storage_path).rename_file(file_id, name)
    typer.echo(f"✓ Renamed {file_id} to {name}")


@app.command("rm-file")
def rm_file(
    file_id: str = typer.Argument(...),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Delete a file (no-op if it doesn't exist).
    """
    removed = _hierarchy(storage_path).delete_file(file_id)
    typer.echo(f"✓ Deleted {file_id}" if removed else f"Nothing to delete for {file_id}")


@app.command("rm-folder")
def rm_folder(
    folder_id: str = typer.Argument(...),
    recursive: bool = typer.Option(
        False,
        "--recursive",
        "-r",
        help="Also delete all subfolders and files. Required for non-empty folders.",
    ),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Delete a folder.
    """
    with _reporting_errors():
        removed = _hierarchy(storage_path).delete_folder(folder_id, recursive)
    typer.echo(f"✓ Deleted {folder_id}" if removed else f"Nothing to delete for {folder_id}")


@app.command("select-file")
def select_file(
    file_id: Optional[str] = typer.Argument(None, help="File id; omit to clear"),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Set (or clear) the active file.
    """
    change = _hierarchy(storage_path).selection.set_active_file(file_id)
    typer.echo(f"Active file: {change.previous} -> {change.current}")


@app.command("select-folder")
def select_folder(
    folder_id: Optional[str] = typer.Argument(None, help="Folder id; omit to clear"),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Set (or clear) the active folder.
    """
    change = _hierarchy(storage_path).selection.set_active_folder(folder_id)
    typer.echo(f"Active folder: {change.previous} -> {change.current}")


@app.command()
def export(
    output_dir: Path = typer.Argument(Path("."), help="Directory for the export file"),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Export every folder and file to a dated JSON file.
    """
    output_path = write_export(_hierarchy(storage_path), output_dir)
    typer.echo(f"✓ Exported to {output_path}")


@app.command("import")
def import_(
    input_path: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
    strategy: MergeStrategy = typer.Option(
        MergeStrategy.SKIP,
        "--strategy",
        "-m",
        help="How to resolve a folder/file that already exists under the same parent.",
    ),
    legacy_drop_orphans: bool = typer.Option(
        False,
        "--legacy-drop-orphans",
        help="Silently drop folders whose parent never resolves instead of reporting them.",
    ),
    storage_path: Path = typer.Option(None, "--storage", "-s", help=STORAGE_HELP),
):
    """
    Merge an export file into the store.
    """
    with _reporting_errors():
        data = read_import_file(input_path)

    result = import_from_json(
        _hierarchy(storage_path),
        data,
        strategy,
        ImportOptions(report_unresolved_folders=not legacy_drop_orphans),
    )
    typer.echo(json.dumps(result.model_dump(by_alias=True), indent=2))
    if not result.success:
        raise typer.Exit(1)


def main():
    setup_logging(get_settings().log_file_prefix)
    app()


if __name__ == "__main__":
    main()
