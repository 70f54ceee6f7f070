"""Storage module for the note store.

A single SQLite database (notevault.db) holds three record kinds: folders,
files and the app-state singleton. StorageManager exposes them as a
key-value store with secondary indexes (folders by parent, files by folder).
"""

from notevault.storage.manager import RecordKind, StorageManager

__all__ = ["RecordKind", "StorageManager"]
