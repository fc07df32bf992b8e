"""Exceptions raised by favsync."""

from typing import Any, Optional


class FavSyncError(Exception):
    """Base exception for all favsync errors."""


class FavSyncConfigError(FavSyncError):
    """Configuration is missing or invalid."""


class StoreNotOpenError(FavSyncError):
    """An operation was attempted on the bookmarks database before it was opened."""

    def __init__(self, message: str = "Database is not open."):
        super().__init__(message)


class HierarchyCorruptionError(FavSyncError):
    """The ancestor directories required for a node do not exist."""

    def __init__(self, node: Any, message: Optional[str] = None):
        self.node = node
        super().__init__(
            message or f"The parent level directories do not exist for {node}"
        )


class ManifestDeserializationError(FavSyncError):
    """A manifest file exists but could not be parsed."""

    def __init__(self, path: Any, reason: str = ""):
        self.path = path
        message = f"Cannot read manifest {path}"
        if reason:
            message += f": {reason}"
        message += " (delete it or run 'favsync reset' to start over)"
        super().__init__(message)
