"""Client-side projection of the tree, as a view layer would hold it."""

from notevault.workspace.debounce import DebouncedWriter
from notevault.workspace.projection import Workspace

__all__ = ["DebouncedWriter", "Workspace"]
