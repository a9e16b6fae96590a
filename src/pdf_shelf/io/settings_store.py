"""QSettings-backed key-value store."""

import logging
import threading
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QSettings

from pdf_shelf.io.key_value_store import KeyValueStore

LOGGER = logging.getLogger(__name__)


class SettingsKeyValueStore(KeyValueStore):
    """Durable store kept in an INI file through ``QSettings``.

    QSettings is reentrant but not thread-safe, and session writes arrive
    from a worker thread, so every access goes through one lock. Each write
    is followed by ``sync()`` and its status is checked so that a failed
    flush is reported as ``False`` instead of being lost silently.
    """

    def __init__(self, settings_path: Path) -> None:
        self.settings_path = Path(settings_path)
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            LOGGER.warning("Cannot create settings directory %s: %s", self.settings_path.parent, e)
        self._settings = QSettings(str(self.settings_path), QSettings.Format.IniFormat)
        self._lock = threading.Lock()

    def _read(self, key: str):
        with self._lock:
            if not self._settings.contains(key):
                return None
            return self._settings.value(key)

    def _write(self, key: str, value) -> bool:
        with self._lock:
            self._settings.setValue(key, value)
            self._settings.sync()
            status = self._settings.status()
        if status != QSettings.Status.NoError:
            LOGGER.warning("Failed to write %r to %s: %s", key, self.settings_path, status)
            return False
        return True

    def get_string(self, key: str) -> Optional[str]:
        value = self._read(key)
        if value is None or isinstance(value, list):
            return None
        return str(value)

    def save_string(self, key: str, value: str) -> bool:
        return self._write(key, str(value))

    def get_int(self, key: str) -> Optional[int]:
        value = self._read(key)
        if value is None or isinstance(value, list):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            LOGGER.warning("Stored value for %r is not an integer: %r", key, value)
            return None

    def save_int(self, key: str, value: int) -> bool:
        return self._write(key, int(value))

    def get_bool(self, key: str) -> Optional[bool]:
        value = self._read(key)
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("true", "1"):
            return True
        if text in ("false", "0"):
            return False
        LOGGER.warning("Stored value for %r is not a boolean: %r", key, value)
        return None

    def save_bool(self, key: str, value: bool) -> bool:
        return self._write(key, bool(value))

    def get_string_list(self, key: str) -> Optional[List[str]]:
        value = self._read(key)
        if value is None:
            return None
        # INI round-trips a one-item list as a plain string.
        if isinstance(value, str):
            return [value] if value else []
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        return None

    def save_string_list(self, key: str, value: List[str]) -> bool:
        items = [str(item) for item in value]
        if not items:
            # QSettings cannot tell an empty list from an invalid value.
            return self.remove(key)
        return self._write(key, items)

    def remove(self, key: str) -> bool:
        with self._lock:
            self._settings.remove(key)
            self._settings.sync()
            status = self._settings.status()
        return status == QSettings.Status.NoError

    def clear(self) -> bool:
        with self._lock:
            self._settings.clear()
            self._settings.sync()
            status = self._settings.status()
        return status == QSettings.Status.NoError
