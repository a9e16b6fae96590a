"""Progress tracker - debounced persistence of last-read pages."""

import logging
from typing import Dict, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from pdf_shelf.io.key_value_store import KeyValueStore

LOGGER = logging.getLogger(__name__)

PROGRESS_KEY_PREFIX = "last_read_page_"


def progress_key(name: str) -> str:
    return f"{PROGRESS_KEY_PREFIX}{name}"


class ProgressTracker(QObject):
    """
    Remembers the last page read in each book.

    Page numbers are 0-indexed. Every schedule_save() restarts that book's
    single-shot timer, so a burst of page changes ends in one write of the
    final page. A save still pending when the process exits is lost unless
    flush() is called first.

    Timers belong to the thread that created the tracker; call
    schedule_save() from that (Qt) thread.
    """

    saved = Signal(str, int)

    def __init__(self, store: KeyValueStore, delay_ms: int = 1000, parent: Optional[QObject] = None):
        super().__init__(parent)
        if store is None:
            raise ValueError("KeyValueStore must not be None")
        self.store = store
        self.delay_ms = delay_ms
        self._pending: Dict[str, int] = {}
        self._timers: Dict[str, QTimer] = {}

    def schedule_save(self, name: str, page: int) -> bool:
        """Queue ``page`` as the last-read page of ``name``.

        Returns:
            False if the page number is negative (nothing is scheduled).
        """
        if page < 0:
            LOGGER.warning("Ignoring negative page %d for %r", page, name)
            return False
        self._pending[name] = page
        timer = self._timers.get(name)
        if timer is None:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(lambda name=name: self._write(name))
            self._timers[name] = timer
        timer.start(self.delay_ms)
        return True

    def has_pending(self, name: Optional[str] = None) -> bool:
        if name is None:
            return bool(self._pending)
        return name in self._pending

    def get_last_read_page(self, name: str) -> Optional[int]:
        """Saved page for ``name``, or None if no position was saved.

        Reads the store directly; a save that is still pending is not visible.
        """
        page = self.store.get_int(progress_key(name))
        if page is None or page < 0:
            return None
        return page

    def cancel(self, name: str) -> None:
        """Drop a pending save without writing it."""
        self._pending.pop(name, None)
        self._drop_timer(name)

    def forget(self, name: str) -> None:
        """Cancel any pending save and delete the saved position."""
        self.cancel(name)
        if not self.store.remove(progress_key(name)):
            LOGGER.warning("Failed to remove saved progress for %r", name)

    def flush(self) -> None:
        """Write every pending save now."""
        for name in list(self._pending):
            self._write(name)

    def has_timer(self, name: str) -> bool:
        return name in self._timers

    def _drop_timer(self, name: str) -> None:
        timer = self._timers.pop(name, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()

    def _write(self, name: str) -> None:
        self._drop_timer(name)
        page = self._pending.pop(name, None)
        if page is None:
            return
        if self.store.save_int(progress_key(name), page):
            LOGGER.debug("Saved page %d for %r", page, name)
            self.saved.emit(name, page)
        else:
            LOGGER.warning("Failed to save page %d for %r", page, name)
