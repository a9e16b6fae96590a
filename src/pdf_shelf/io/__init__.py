"""I/O layer - Data access for persistence and file operations."""

from .book_importer import BookImporter, ImportResult
from .key_value_store import InMemoryKeyValueStore, KeyValueStore
from .settings_store import SettingsKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SettingsKeyValueStore",
    "BookImporter",
    "ImportResult",
]
