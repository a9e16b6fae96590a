"""Cover cache - persisted cover thumbnails for library books.

Covers are PNG files under ~/.pdf_shelf/covers/ named after the sanitized
book name, so the same book always maps to the same file.
"""

import logging
import re
import shutil
from pathlib import Path
from typing import Optional, Union

LOGGER = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_name(name: str) -> str:
    """Replace every character outside [A-Za-z0-9._-] with '_'."""
    return _UNSAFE_CHARS.sub("_", name)


class CoverCache:
    """Stores one cover image per book name.

    Output format: PNG (.png)
    Filename: sanitized book name + .png

    Two names that differ only in unsafe characters share a file; the
    book name is already not unique across import sources, so covers
    follow the same rule.
    """

    SUFFIX = ".png"

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    def cover_path_for(self, name: str) -> Path:
        """Deterministic location of a book's cover, whether or not it exists."""
        return self.cache_dir / f"{sanitize_name(name)}{self.SUFFIX}"

    def get_cover_cache_path(self, name: str) -> Optional[Path]:
        """Path of the cached cover, or None if there is none."""
        path = self.cover_path_for(name)
        return path if path.is_file() else None

    def has_cover_cache(self, name: str) -> bool:
        return self.get_cover_cache_path(name) is not None

    def save_cover_cache(self, name: str, cover_data: Union[bytes, Path]) -> bool:
        """Store a cover from raw bytes or by copying an existing image file.

        Returns:
            True if the cover was written.
        """
        target = self.cover_path_for(name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(cover_data, (bytes, bytearray)):
                if not cover_data:
                    LOGGER.warning("Refusing to cache empty cover for %r", name)
                    return False
                target.write_bytes(bytes(cover_data))
            else:
                source = Path(cover_data)
                if not source.is_file():
                    LOGGER.warning("Cover source for %r does not exist: %s", name, source)
                    return False
                shutil.copyfile(source, target)
        except OSError as e:
            LOGGER.warning("Failed to write cover for %r to %s: %s", name, target, e)
            return False
        return True

    def clear_cover_cache(self, name: Optional[str] = None) -> bool:
        """Delete one book's cover, or every cover when ``name`` is None.

        Returns:
            True if nothing is left to delete afterwards.
        """
        if name is not None:
            path = self.cover_path_for(name)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                LOGGER.warning("Failed to delete cover %s: %s", path, e)
                return False
            return True

        if not self.cache_dir.exists():
            return True
        ok = True
        for path in self.cache_dir.glob(f"*{self.SUFFIX}"):
            try:
                path.unlink()
            except OSError as e:
                LOGGER.warning("Failed to delete cover %s: %s", path, e)
                ok = False
        return ok
