"""Library catalog - the set of known books and their managed paths."""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

PATH_SEPARATOR = "|"


class LibraryCatalog:
    """Ordered, duplicate-free collection of book names.

    Insertion order is kept so the persisted list is stable, but membership
    is set-like: adding a name twice is a no-op. Each name may carry the
    path of its managed file.

    The catalog has no locking of its own; the SessionManager is its only
    writer.
    """

    def __init__(self, names: Optional[Iterable[str]] = None):
        self._names: Dict[str, None] = {}
        self._paths: Dict[str, Path] = {}
        for name in names or []:
            self.add(name)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self):
        return iter(list(self._names))

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def add(self, name: str, path: Optional[Path] = None) -> bool:
        """Add a name (and optionally its path).

        Returns:
            True if the catalog changed.
        """
        if not name:
            raise ValueError("Book name cannot be empty")
        changed = False
        if name not in self._names:
            self._names[name] = None
            changed = True
        if path is not None:
            path = Path(path)
            if self._paths.get(name) != path:
                self._paths[name] = path
                changed = True
        return changed

    def remove(self, name: str) -> bool:
        """Remove a name and its path. Returns False if it was unknown."""
        if name not in self._names:
            return False
        del self._names[name]
        self._paths.pop(name, None)
        return True

    def clear(self) -> None:
        self._names.clear()
        self._paths.clear()

    def get_path(self, name: str) -> Optional[Path]:
        return self._paths.get(name)

    def encode_paths(self) -> List[str]:
        """Serialize the name->path map as ``name|path`` strings."""
        return [
            f"{name}{PATH_SEPARATOR}{self._paths[name]}"
            for name in self._names
            if name in self._paths
        ]

    def load(self, names: Optional[Iterable[str]], encoded_paths: Optional[Iterable[str]]) -> None:
        """Replace contents with persisted state.

        Names may themselves contain the separator, so each entry is matched
        against the known names first, longest name first. Only entries for
        names missing from ``names`` are split at the first separator; such
        a path also registers the name, so the two persisted lists cannot
        drift apart. Entries that do not contain the separator are skipped.
        """
        self.clear()
        for name in names or []:
            if name:
                self.add(name)
        known = sorted(self._names, key=len, reverse=True)
        for entry in encoded_paths or []:
            name, path = self._split_entry(entry, known)
            if not name or not path:
                continue
            self.add(name, Path(path))

    @staticmethod
    def _split_entry(entry: str, known: List[str]) -> Tuple[str, str]:
        for name in known:
            if entry.startswith(name + PATH_SEPARATOR):
                return name, entry[len(name) + len(PATH_SEPARATOR):]
        name, sep, path = entry.partition(PATH_SEPARATOR)
        return (name, path) if sep else ("", "")
