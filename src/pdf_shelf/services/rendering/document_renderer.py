"""Document renderer abstraction - plugin interface for PDF engines."""

from abc import ABC, abstractmethod
from typing import Any, List

from pdf_shelf.core import OutlineEntry, RasterBuffer


class DocumentRenderer(ABC):
    """
    Abstract interface for the document-rendering engine.

    Handles and page references are opaque to callers. The DocumentCache
    is the only component allowed to keep a handle alive; anything else
    that opens one must close it before returning.
    """

    @abstractmethod
    def open(self, path: str) -> Any:
        """
        Open a document.

        Raises:
            Exception: Any engine error (missing file, corrupt data,
                permission denied). Callers translate it.
        """
        pass

    @abstractmethod
    def page_count(self, handle: Any) -> int:
        pass

    @abstractmethod
    def get_page(self, handle: Any, index: int) -> Any:
        """Load the page at a 0-based index."""
        pass

    @abstractmethod
    def render(self, page: Any, width: int, height: int) -> RasterBuffer:
        """Rasterize a page to an RGB buffer of (about) width x height pixels."""
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        pass

    @abstractmethod
    def load_outline(self, handle: Any) -> List[OutlineEntry]:
        """Return the table of contents as a tree (empty if none)."""
        pass
