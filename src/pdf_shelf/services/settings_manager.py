"""Settings Manager - Typed application configuration."""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from pdf_shelf.io.key_value_store import KeyValueStore

LOGGER = logging.getLogger(__name__)

KEY_AUTO_RESTORE = "auto_restore"

DEFAULT_COVER_SIZE = (300, 400)
DEFAULT_SAVE_DELAY_MS = 1000
MAX_TABS = 10


class SettingsManager:
    """
    Manages the closed set of configuration fields.

    Filesystem locations and tuning values come from the environment, which
    is seeded from a .env file in the project root. User preferences that
    must survive restarts (auto-restore) live in the key-value store.
    """

    max_tabs = MAX_TABS

    def __init__(self, project_root: Optional[Path] = None, store: Optional[KeyValueStore] = None):
        """
        Initialize settings manager.

        Args:
            project_root: Path to project root where .env is located.
                         If None, searches upward from current file.
            store: Key-value store for persisted preferences. Can be
                   attached later with attach_store().
        """
        if project_root is None:
            current = Path(__file__).resolve()
            project_root = current.parent.parent.parent.parent

        env_path = project_root / ".env"
        load_dotenv(dotenv_path=env_path)

        self._project_root = project_root
        self._store = store
        self._auto_restore: Optional[bool] = None

    def attach_store(self, store: KeyValueStore) -> None:
        """Attach the key-value store once it has been built."""
        self._store = store
        self._auto_restore = None

    def reload_env(self) -> None:
        """Reload environment variables from .env file."""
        env_path = self._project_root / ".env"
        load_dotenv(dotenv_path=env_path, override=True)

    @property
    def data_dir(self) -> Path:
        value = os.getenv("PDF_SHELF_HOME")
        if value and value.strip():
            return Path(value.strip()).expanduser()
        return Path.home() / ".pdf_shelf"

    @property
    def books_dir(self) -> Path:
        return self.data_dir / "books"

    @property
    def covers_dir(self) -> Path:
        return self.data_dir / "covers"

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.ini"

    @property
    def cover_size(self) -> Tuple[int, int]:
        """Cover raster size as (width, height), from PDF_SHELF_COVER_SIZE="WxH"."""
        value = os.getenv("PDF_SHELF_COVER_SIZE")
        if not value or not value.strip():
            return DEFAULT_COVER_SIZE
        width, sep, height = value.strip().lower().partition("x")
        try:
            size = (int(width), int(height))
        except ValueError:
            size = None
        if not sep or size is None or size[0] <= 0 or size[1] <= 0:
            LOGGER.warning("Ignoring invalid PDF_SHELF_COVER_SIZE=%r", value)
            return DEFAULT_COVER_SIZE
        return size

    @property
    def progress_save_delay_ms(self) -> int:
        value = os.getenv("PDF_SHELF_SAVE_DELAY_MS")
        if not value or not value.strip():
            return DEFAULT_SAVE_DELAY_MS
        try:
            delay = int(value.strip())
        except ValueError:
            delay = -1
        if delay < 0:
            LOGGER.warning("Ignoring invalid PDF_SHELF_SAVE_DELAY_MS=%r", value)
            return DEFAULT_SAVE_DELAY_MS
        return delay

    def get_auto_restore(self) -> bool:
        """Whether open tabs are restored on startup (default True)."""
        if self._auto_restore is None:
            stored = self._store.get_bool(KEY_AUTO_RESTORE) if self._store else None
            self._auto_restore = True if stored is None else stored
        return self._auto_restore

    def set_auto_restore(self, value: bool) -> None:
        self._auto_restore = bool(value)
        if self._store is None:
            return
        if not self._store.save_bool(KEY_AUTO_RESTORE, self._auto_restore):
            LOGGER.warning("Failed to persist auto-restore preference")

    def clear_all_config(self) -> None:
        """Forget persisted preferences and fall back to defaults."""
        self._auto_restore = True
        if self._store is not None and not self._store.remove(KEY_AUTO_RESTORE):
            LOGGER.warning("Failed to remove auto-restore preference")
