"""
PDF Shelf - session and document-cache core of a tabbed PDF reader.

This package provides:
- A library catalog of imported books
- Browser-style open tabs restored across restarts
- Shared, lazily opened document handles and cached covers
- Debounced last-read-page tracking
"""

__version__ = "0.1.0"

# Make key components available at package level
from pdf_shelf.core import Book, LibraryCatalog
from pdf_shelf.coordinators import SessionManager
from pdf_shelf.io import BookImporter, ImportResult
from pdf_shelf.services import DocumentCache

__all__ = [
    "Book",
    "LibraryCatalog",
    "SessionManager",
    "BookImporter",
    "ImportResult",
    "DocumentCache",
]
