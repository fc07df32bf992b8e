"""Dispatching planned operations to the store collaborators."""

import logging
from typing import TYPE_CHECKING

from ..models import LinkNode, StoreKind
from .comparator import OperationKind, SyncOperation

if TYPE_CHECKING:
    from ..bookmarks import BookmarkStore
    from ..favorites import FavoriteStore

logger = logging.getLogger(__name__)


class SyncOperations:
    """Applies operations to the store they target."""

    def __init__(self, bookmarks: "BookmarkStore", favorites: "FavoriteStore"):
        """Initialize sync operations.

        Args:
            bookmarks: Live bookmarks store
            favorites: Live favorites store
        """
        self.bookmarks = bookmarks
        self.favorites = favorites

    @staticmethod
    def is_skipped(operation: SyncOperation) -> bool:
        """System and excluded entries are never converted or removed."""
        return operation.subject.system_entry or operation.subject.excluded

    def apply(self, operation: SyncOperation) -> list[LinkNode]:
        """Apply one operation.

        Args:
            operation: Operation to apply

        Returns:
            Nodes created or removed in the target store

        Raises:
            HierarchyCorruptionError: If the target lacks a parent directory
        """
        if self.is_skipped(operation):
            logger.debug(f"Skipping system or excluded entry: {operation}")
            return []

        subject = operation.subject
        if operation.kind == OperationKind.ADD:
            if operation.target == StoreKind.BOOKMARKS:
                return [self.bookmarks.convert_to_bookmark(subject)]
            return [self.favorites.convert_to_favorite(subject)]

        if operation.target == StoreKind.BOOKMARKS:
            return self.bookmarks.remove_bookmark(subject)
        return self.favorites.remove_favorite(subject)
