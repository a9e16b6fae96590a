"""Domain entities for books and rendered document artifacts."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class Book:
    """Represents a book known to the library.

    State is never mutated in place; a Book is assembled from the catalog,
    the cover cache and the progress store whenever it is looked up.

    Attributes:
        name: Base file name of the book, used as its key everywhere.
        file_path: Managed copy of the PDF (None if the path is unknown).
        cover_path: Cached cover image, if one has been generated.
        last_read_page: 0-indexed page last read by the user.
    """

    name: str
    file_path: Optional[Path] = None
    cover_path: Optional[Path] = None
    last_read_page: Optional[int] = None


@dataclass(frozen=True)
class OutlineEntry:
    """A node of a document's table of contents.

    Attributes:
        title: Heading text.
        destination_page: 0-indexed target page (-1 when the entry has no target).
        children: Nested entries.
    """

    title: str
    destination_page: int
    children: List["OutlineEntry"] = field(default_factory=list)


@dataclass(frozen=True)
class RasterBuffer:
    """Raw RGB pixels produced by rendering a page."""

    width: int
    height: int
    stride: int
    samples: bytes
