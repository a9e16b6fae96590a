"""Async workers for non-blocking storage, import and preload work using Qt threading."""

import logging
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, QRunnable, Signal, Slot

LOGGER = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """
    Signals for communicating results from worker threads.

    QRunnable doesn't inherit from QObject, so we need a separate
    QObject to hold the signals.
    """
    finished = Signal()
    error = Signal(str)
    import_result = Signal(object)  # ImportResult
    preload_result = Signal(bool)


class StoreWriteWorker(QRunnable):
    """
    Runs one batch of key-value store writes off the caller's thread.

    The batch is a closure over a snapshot of state taken when the
    mutation happened, so it never reads live (possibly newer) state.
    Failures are logged and swallowed: the in-memory state stays
    authoritative for the running process.
    """

    def __init__(self, write: Callable[[], None], description: str = "state"):
        super().__init__()
        self.write = write
        self.description = description
        self.setAutoDelete(True)

    @Slot()
    def run(self):
        try:
            self.write()
        except Exception as e:
            LOGGER.warning("Failed to persist %s: %s", self.description, e)


class ImportWorker(QRunnable):
    """
    Worker that imports a book in a background thread.

    Emits import_result with the ImportResult (success or failure).
    """

    def __init__(self, importer, source_path: Path):
        super().__init__()
        self.importer = importer
        self.source_path = source_path
        self.signals = WorkerSignals()
        self.setAutoDelete(True)

    @Slot()
    def run(self):
        """Execute the import in background thread."""
        try:
            result = self.importer.import_book(self.source_path)
            self.signals.import_result.emit(result)
        except Exception as e:
            # Catch any unexpected exceptions not handled by the importer
            self.signals.error.emit(f"Unexpected import error: {str(e)}")
        finally:
            self.signals.finished.emit()


class PreloadWorker(QRunnable):
    """
    Worker that warms the pages following the current one.

    Uses Qt's thread pool for efficient thread management.
    """

    def __init__(self, document_cache, path: Path, start: int, count: int = 3):
        super().__init__()
        self.document_cache = document_cache
        self.path = path
        self.start = start
        self.count = count
        self.signals = WorkerSignals()
        self.setAutoDelete(True)

    @Slot()
    def run(self):
        """Execute the preload in background thread."""
        try:
            ok = self.document_cache.preload_pages(self.path, self.start, self.count)
            self.signals.preload_result.emit(ok)
        except Exception as e:
            self.signals.error.emit(f"Unexpected preload error: {str(e)}")
        finally:
            self.signals.finished.emit()
