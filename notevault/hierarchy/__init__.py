from notevault.hierarchy.manager import HierarchyManager
from notevault.hierarchy.selection import SelectionState

__all__ = ["HierarchyManager", "SelectionState"]
