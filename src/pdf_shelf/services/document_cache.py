"""Document cache - owns open document handles keyed by file path."""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, Qt
from PySide6.QtGui import QImage

from pdf_shelf.core import DocumentUnreadable, OutlineEntry, RasterBuffer
from pdf_shelf.services.rendering import DocumentRenderer

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


class DocumentCache:
    """Lazily opens documents and keeps at most one handle per path.

    Handles are only released by release(), clear_cache() or close(); there
    is no eviction, so a document being read is never closed underneath
    its reader.

    Concurrent open_or_get() calls for different paths proceed in parallel.
    For one path, the first caller leaves an in-flight marker while it
    opens the document and later callers wait on it, so the renderer sees a
    single open() per path. Markers outlive release() and clear_cache(): an
    open that is in flight during a clear still lands once, and is closed by
    the next clear.
    """

    def __init__(self, renderer: DocumentRenderer, cover_size: Tuple[int, int] = (300, 400)):
        if renderer is None:
            raise ValueError("DocumentRenderer must not be None")
        self.renderer = renderer
        self.cover_size = cover_size
        self._handles: Dict[str, Any] = {}
        self._opening: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(path: PathLike) -> str:
        return str(Path(path).expanduser().resolve())

    def is_cached(self, path: PathLike) -> bool:
        with self._lock:
            return self._key(path) in self._handles

    def is_opening(self, path: PathLike) -> bool:
        with self._lock:
            return self._key(path) in self._opening

    def open_or_get(self, path: PathLike) -> Any:
        """Return the live handle for ``path``, opening it on first use.

        Raises:
            DocumentUnreadable: If the renderer cannot open the file. Nothing
                is cached, so the next call tries again.
        """
        key = self._key(path)
        while True:
            with self._lock:
                handle = self._handles.get(key)
                if handle is not None:
                    return handle
                in_flight = self._opening.get(key)
                if in_flight is None:
                    in_flight = self._opening[key] = threading.Event()
                    break
            # Another caller is opening this path; reuse its result.
            in_flight.wait()

        try:
            handle = self.renderer.open(key)
        except Exception as e:
            LOGGER.warning("Failed to open document %s: %s", key, e)
            raise DocumentUnreadable(key, str(e)) from e
        else:
            with self._lock:
                self._handles[key] = handle
            LOGGER.debug("Opened document %s", key)
            return handle
        finally:
            with self._lock:
                self._opening.pop(key, None)
            in_flight.set()

    def page_count(self, path: PathLike) -> int:
        """
        Raises:
            DocumentUnreadable: If the document cannot be opened.
        """
        return self.renderer.page_count(self.open_or_get(path))

    def load_outline(self, path: PathLike) -> List[OutlineEntry]:
        """Table of contents of a document; empty if it has none or it fails to load.

        Raises:
            DocumentUnreadable: If the document cannot be opened.
        """
        handle = self.open_or_get(path)
        try:
            return self.renderer.load_outline(handle)
        except Exception as e:
            LOGGER.warning("Failed to load outline of %s: %s", path, e)
            return []

    def preload_pages(self, path: PathLike, start: int, count: int) -> bool:
        """Touch pages [start, min(start + count, page_count)) to warm the engine.

        Best-effort: individual page errors are logged and skipped.

        Returns:
            False only when the document itself cannot be opened.
        """
        try:
            handle = self.open_or_get(path)
            total = self.renderer.page_count(handle)
        except Exception as e:
            LOGGER.warning("Preload of %s skipped: %s", path, e)
            return False

        begin = max(0, start)
        end = min(start + max(0, count), total)
        for index in range(begin, end):
            try:
                self.renderer.get_page(handle, index)
            except Exception as e:
                LOGGER.warning("Failed to preload page %d of %s: %s", index, path, e)
        return True

    def get_cover(self, path: PathLike) -> Optional[bytes]:
        """Render page 0 of a document as PNG bytes.

        Uses its own short-lived handle rather than the shared one so that a
        cover render never holds the cached document, and closes it on every
        exit path.

        Returns:
            PNG bytes, or None if the document cannot be opened or rendered.
        """
        key = self._key(path)
        width, height = self.cover_size
        try:
            handle = self.renderer.open(key)
        except Exception as e:
            LOGGER.warning("No cover for %s: %s", key, e)
            return None

        try:
            if self.renderer.page_count(handle) < 1:
                LOGGER.warning("No cover for %s: document has no pages", key)
                return None
            page = self.renderer.get_page(handle, 0)
            raster = self.renderer.render(page, width, height)
            return encode_png(raster, width, height)
        except Exception as e:
            LOGGER.warning("Failed to render cover for %s: %s", key, e)
            return None
        finally:
            try:
                self.renderer.close(handle)
            except Exception as e:
                LOGGER.warning("Failed to close cover handle for %s: %s", key, e)

    def release(self, path: PathLike) -> bool:
        """Close and forget the handle for one path. Returns False if none was held."""
        key = self._key(path)
        with self._lock:
            handle = self._handles.pop(key, None)
        if handle is None:
            return False
        self._close_handle(key, handle)
        return True

    def clear_cache(self) -> None:
        """Close every held handle and empty the cache.

        An open that is in flight when this runs still lands afterwards; its
        handle is the only one for that path and the next clear closes it.
        """
        with self._lock:
            handles = list(self._handles.items())
            self._handles.clear()
        for key, handle in handles:
            self._close_handle(key, handle)
        if handles:
            LOGGER.debug("Released %d cached documents", len(handles))

    def close(self) -> None:
        """Shutdown hook."""
        self.clear_cache()

    def _close_handle(self, key: str, handle: Any) -> None:
        try:
            self.renderer.close(handle)
        except Exception as e:
            LOGGER.warning("Failed to close document %s: %s", key, e)


def encode_png(raster: RasterBuffer, width: int, height: int) -> bytes:
    """Encode an RGB raster as PNG, scaled to exactly width x height.

    Raises:
        RuntimeError: If Qt cannot build or encode the image.
    """
    image = QImage(raster.samples, raster.width, raster.height, raster.stride, QImage.Format.Format_RGB888)
    if image.isNull():
        raise RuntimeError("Failed to build image from raster")
    # Detach from the Python buffer before it can go away.
    image = image.copy()
    if image.width() != width or image.height() != height:
        image = image.scaled(width, height, Qt.AspectRatioMode.IgnoreAspectRatio, Qt.TransformationMode.SmoothTransformation)

    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(buffer, "PNG")
    buffer.close()
    if not ok:
        raise RuntimeError("Failed to encode cover as PNG")
    return bytes(data.data())
