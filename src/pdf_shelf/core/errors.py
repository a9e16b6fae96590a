"""Error taxonomy for the library, session and document cache."""


class ShelfError(Exception):
    """Base class for all pdf_shelf errors."""


class NotFoundError(ShelfError):
    """A source file, cached document or catalog entry is missing."""


class SourceNotFound(NotFoundError):
    """The file handed to the importer does not exist."""

    def __init__(self, path):
        super().__init__(f"Source file does not exist: {path}")
        self.path = path


class LimitExceeded(ShelfError):
    """The open-tab cap has been reached."""

    def __init__(self, max_tabs: int):
        super().__init__(
            f"Tab limit reached ({max_tabs} open). Close a tab before opening another book."
        )
        self.max_tabs = max_tabs


class DocumentUnreadable(ShelfError):
    """A document failed to open or parse."""

    def __init__(self, path, reason: str = ""):
        message = f"Cannot open document: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path


class StorageFailure(ShelfError):
    """Managed storage could not be created or written."""

    def __init__(self, action: str, reason):
        super().__init__(f"{action}: {reason}")
        self.action = action


class InvalidIndex(ShelfError):
    """A tab index or saved active index is out of range."""

    def __init__(self, index: int, tab_count: int):
        super().__init__(f"No tab at index {index} ({tab_count} open)")
        self.index = index
        self.tab_count = tab_count
