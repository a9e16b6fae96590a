"""Session Manager - Open tabs, active tab and the library catalog."""

import logging
import threading
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QObject, QThreadPool, Signal

from pdf_shelf.core import Book, InvalidIndex, LibraryCatalog, LimitExceeded
from pdf_shelf.io.key_value_store import KeyValueStore
from pdf_shelf.services.settings_manager import SettingsManager
from pdf_shelf.services.workers import StoreWriteWorker

LOGGER = logging.getLogger(__name__)

KEY_OPEN_BOOKS = "open_books"
KEY_CURRENT_INDEX = "current_index"
KEY_ALL_BOOKS = "all_books"
KEY_BOOK_PATHS = "book_paths"

NO_INDEX = -1


class SessionManager(QObject):
    """
    Owns the reading session: which books exist, which are open as tabs,
    and which tab is active.

    Invariants held after every call:
    - ``0 <= len(open_books) <= max_tabs`` and open_books has no duplicates.
    - every open book is in the catalog.
    - current_index is -1 exactly when no tab is open, otherwise a valid index.

    All mutations serialize on one lock. The in-memory state is updated and
    visible immediately; the matching store write is queued on a
    single-thread pool (so writes land in mutation order) and ``changed`` is
    emitted once the write has been queued. Store failures are logged and
    never undo in-memory state.
    """

    changed = Signal()

    def __init__(
        self,
        store: KeyValueStore,
        settings: SettingsManager,
        catalog: Optional[LibraryCatalog] = None,
        cover_cache=None,
        document_cache=None,
        progress_tracker=None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)

        if store is None:
            raise ValueError("KeyValueStore must not be None")
        if settings is None:
            raise ValueError("SettingsManager must not be None")

        self.store = store
        self.settings = settings
        self.catalog = catalog if catalog is not None else LibraryCatalog()
        self.cover_cache = cover_cache
        self.document_cache = document_cache
        self.progress_tracker = progress_tracker
        self.max_tabs = settings.max_tabs

        self._open_books: List[str] = []
        self._current_index = NO_INDEX
        self._lock = threading.RLock()

        self._write_pool = QThreadPool(self)
        self._write_pool.setMaxThreadCount(1)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load the catalog and, if auto-restore is on, the previous tabs."""
        restored = False
        with self._lock:
            try:
                names = self.store.get_string_list(KEY_ALL_BOOKS)
                paths = self.store.get_string_list(KEY_BOOK_PATHS)
                self.catalog.load(names, paths)
            except Exception as e:
                LOGGER.warning("Failed to load library catalog: %s", e)

            if self.settings.get_auto_restore():
                restored = self._restore_tabs()

        LOGGER.info(
            "Session initialized: %d books, %d tabs restored",
            len(self.catalog),
            len(self._open_books),
        )
        if restored:
            self.changed.emit()

    def _restore_tabs(self) -> bool:
        try:
            saved_tabs = self.store.get_string_list(KEY_OPEN_BOOKS) or []
            saved_index = self.store.get_int(KEY_CURRENT_INDEX)
        except Exception as e:
            LOGGER.warning("Failed to restore open tabs: %s", e)
            return False

        tabs: List[str] = []
        for name in saved_tabs:
            if name and name not in tabs:
                tabs.append(name)
        if len(tabs) > self.max_tabs:
            LOGGER.warning("Dropping %d restored tabs over the limit", len(tabs) - self.max_tabs)
            tabs = tabs[: self.max_tabs]
        if not tabs:
            return False

        index = 0 if saved_index is None else saved_index
        if not 0 <= index < len(tabs):
            LOGGER.warning("Clamping restored tab index: %s", InvalidIndex(index, len(tabs)))
            index = max(0, min(index, len(tabs) - 1))

        self._open_books = tabs
        self._current_index = index
        for name in tabs:
            self.catalog.add(name)

        self._persist_catalog()
        if tabs != saved_tabs or index != saved_index:
            self._persist_tabs()
        return True

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def add_book(self, name: str, path: Optional[Path] = None) -> bool:
        """Register a book (and its managed path) without opening it.

        Returns:
            True if the catalog changed.
        """
        with self._lock:
            changed = self.catalog.add(name, path)
            if changed:
                self._persist_catalog()
        if changed:
            LOGGER.debug("Added %r to catalog", name)
            self.changed.emit()
        return changed

    def remove_book(self, name: str) -> bool:
        """Forget a book: close its tab and drop its cover, document and progress.

        Returns:
            False if the name is not in the catalog.
        """
        with self._lock:
            if name not in self.catalog:
                return False
            path = self.catalog.get_path(name)
            if name in self._open_books:
                self._remove_tab(self._open_books.index(name))
                self._persist_tabs()
            self.catalog.remove(name)
            self._persist_catalog()

        self._drop_book_resources(name, path)

        LOGGER.info("Removed %r from catalog", name)
        self.changed.emit()
        return True

    def get_all_books(self) -> List[str]:
        with self._lock:
            return self.catalog.names

    def get_book_file_path(self, name: str) -> Optional[Path]:
        with self._lock:
            return self.catalog.get_path(name)

    def get_book(self, name: str) -> Optional[Book]:
        """Assemble a Book from the catalog, cover cache and saved progress."""
        with self._lock:
            if name not in self.catalog:
                return None
            path = self.catalog.get_path(name)
        cover = self.cover_cache.get_cover_cache_path(name) if self.cover_cache else None
        page = self.progress_tracker.get_last_read_page(name) if self.progress_tracker else None
        return Book(name=name, file_path=path, cover_path=cover, last_read_page=page)

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    def open_book(self, name: str) -> bool:
        """Open a book in a tab, or focus its tab if it is already open.

        Returns:
            False if the tab limit is reached and the book is not open.
        """
        with self._lock:
            already_open = name in self._open_books
            if not already_open and len(self._open_books) >= self.max_tabs:
                LOGGER.info("Cannot open %r: %s", name, self.limit_message())
                return False

            if self.catalog.add(name):
                self._persist_catalog()

            if already_open:
                self._current_index = self._open_books.index(name)
            else:
                self._open_books.append(name)
                self._current_index = len(self._open_books) - 1
            self._persist_tabs()

        LOGGER.debug("Opened %r", name)
        self.changed.emit()
        return True

    def close_book(self, index: int) -> None:
        """Close the tab at ``index``; out-of-range indexes are ignored."""
        with self._lock:
            if not 0 <= index < len(self._open_books):
                return
            self._remove_tab(index)
            self._persist_tabs()
        self.changed.emit()

    def switch_to_book(self, index: int) -> None:
        """Activate the tab at ``index``; out-of-range indexes are ignored."""
        with self._lock:
            if not 0 <= index < len(self._open_books):
                return
            self._current_index = index
            self._persist_tabs()
        self.changed.emit()

    def get_open_books(self) -> List[str]:
        with self._lock:
            return list(self._open_books)

    def get_current_index(self) -> int:
        with self._lock:
            return self._current_index

    def get_current_book(self) -> Optional[str]:
        with self._lock:
            if self._current_index == NO_INDEX:
                return None
            return self._open_books[self._current_index]

    def get_max_tabs(self) -> int:
        return self.max_tabs

    def limit_message(self) -> str:
        """User-facing text for a refused open."""
        return str(LimitExceeded(self.max_tabs))

    def clear_all_data(self) -> None:
        """Empty the catalog and close every tab.

        Every book's cover, cached document and saved progress go with it.
        """
        with self._lock:
            books = [(name, self.catalog.get_path(name)) for name in self.catalog]
            self.catalog.clear()
            self._open_books.clear()
            self._current_index = NO_INDEX
            self._persist_tabs()
            self._persist_catalog()

        for name, path in books:
            self._drop_book_resources(name, path)
        LOGGER.info("Cleared all library data (%d books)", len(books))
        self.changed.emit()

    def _drop_book_resources(self, name: str, path: Optional[Path]) -> None:
        if self.cover_cache is not None:
            self.cover_cache.clear_cover_cache(name)
        if self.document_cache is not None and path is not None:
            self.document_cache.release(path)
        if self.progress_tracker is not None:
            self.progress_tracker.forget(name)

    def _remove_tab(self, index: int) -> None:
        self._open_books.pop(index)
        if not self._open_books:
            self._current_index = NO_INDEX
        elif self._current_index >= len(self._open_books):
            self._current_index = len(self._open_books) - 1
        elif self._current_index > index:
            self._current_index -= 1

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def wait_for_pending_writes(self, timeout_ms: int = -1) -> bool:
        """Block until queued store writes have run. Returns False on timeout."""
        return self._write_pool.waitForDone(timeout_ms)

    def shutdown(self) -> None:
        if not self.wait_for_pending_writes(5000):
            LOGGER.warning("Store writes still pending at shutdown")

    def _persist_tabs(self) -> None:
        open_books = list(self._open_books)
        current_index = self._current_index
        store = self.store

        def write():
            if not store.save_string_list(KEY_OPEN_BOOKS, open_books):
                LOGGER.warning("Failed to save open tabs")
            if not store.save_int(KEY_CURRENT_INDEX, current_index):
                LOGGER.warning("Failed to save current tab index")

        self._write_pool.start(StoreWriteWorker(write, "open tabs"))

    def _persist_catalog(self) -> None:
        names = self.catalog.names
        paths = self.catalog.encode_paths()
        store = self.store

        def write():
            if not store.save_string_list(KEY_ALL_BOOKS, names):
                LOGGER.warning("Failed to save library catalog")
            if not store.save_string_list(KEY_BOOK_PATHS, paths):
                LOGGER.warning("Failed to save book paths")

        self._write_pool.start(StoreWriteWorker(write, "library catalog"))
