"""Book Importer - copies PDFs into managed storage and registers them."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from pdf_shelf.core import SourceNotFound, StorageFailure

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    """Outcome of an import.

    Exactly one of ``book_name`` and ``error`` is set. ``error_kind`` names
    the failed step ("not_found" or "storage") so callers can branch
    without parsing the message.
    """

    book_name: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, book_name: str) -> "ImportResult":
        return cls(book_name=book_name)

    @classmethod
    def failure(cls, error: str, kind: str) -> "ImportResult":
        return cls(error=error, error_kind=kind)


class BookImporter:
    """Import pipeline for PDF files.

    Steps: validate the source, derive the name, short-circuit when the
    name is already known, copy into the books directory, render a cover
    (best-effort), register in the catalog.

    Only a missing source and a failed directory creation or copy are
    fatal; everything after the copy is logged and tolerated.
    """

    def __init__(self, session_manager, document_cache, cover_cache, books_dir: Path):
        if session_manager is None:
            raise ValueError("SessionManager must not be None")
        if document_cache is None:
            raise ValueError("DocumentCache must not be None")
        if cover_cache is None:
            raise ValueError("CoverCache must not be None")
        self.session_manager = session_manager
        self.document_cache = document_cache
        self.cover_cache = cover_cache
        self.books_dir = Path(books_dir)

    def import_book(self, source_path: Union[str, Path]) -> ImportResult:
        """
        Import a PDF into the library.

        Args:
            source_path: File chosen by the user.

        Returns:
            ImportResult with the book name, or a descriptive error.
        """
        source = Path(source_path).expanduser()
        if not source.is_file():
            error = SourceNotFound(source)
            LOGGER.warning("Import failed: %s", error)
            return ImportResult.failure(str(error), "not_found")

        name = source.name
        if name in self.session_manager.get_all_books():
            existing = self.session_manager.get_book_file_path(name)
            LOGGER.info("Book %r already imported (from %s, existing copy %s)", name, source, existing)
            return ImportResult.success(name)

        try:
            self.books_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            error = StorageFailure(f"Cannot create books directory {self.books_dir}", e)
            LOGGER.warning("Import failed: %s", error)
            return ImportResult.failure(str(error), "storage")

        target = self.books_dir / name
        try:
            if source.resolve() != target.resolve():
                # copyfile truncates any stale partial copy at the target.
                shutil.copyfile(source, target)
        except OSError as e:
            error = StorageFailure(f"Failed to copy {source} to {target}", e)
            LOGGER.warning("Import failed: %s", error)
            return ImportResult.failure(str(error), "storage")

        self._cache_cover(name, target)

        self.session_manager.add_book(name, target)
        LOGGER.info("Imported %r from %s", name, source)
        return ImportResult.success(name)

    def _cache_cover(self, name: str, book_path: Path) -> None:
        try:
            cover = self.document_cache.get_cover(book_path)
        except Exception as e:
            LOGGER.warning("Cover extraction for %r failed: %s", name, e)
            return
        if cover is None:
            LOGGER.warning("No cover generated for %r", name)
            return
        self.cover_cache.save_cover_cache(name, cover)
