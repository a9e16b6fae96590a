"""Domain layer - Pure entities representing the reading library."""

from .book import Book, OutlineEntry, RasterBuffer
from .catalog import LibraryCatalog
from .errors import (
    DocumentUnreadable,
    InvalidIndex,
    LimitExceeded,
    NotFoundError,
    ShelfError,
    SourceNotFound,
    StorageFailure,
)

__all__ = [
    "Book",
    "OutlineEntry",
    "RasterBuffer",
    "LibraryCatalog",
    "ShelfError",
    "NotFoundError",
    "SourceNotFound",
    "LimitExceeded",
    "DocumentUnreadable",
    "StorageFailure",
    "InvalidIndex",
]
