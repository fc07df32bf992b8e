"""Sync modes: which conversion directions are enabled."""

from enum import Enum

from ..models import StoreKind


class SyncMode(str, Enum):
    """Direction(s) in which entries are converted."""

    TWO_WAY = "twoWay"
    """Convert in both directions"""

    TO_BOOKMARKS = "toBookmarks"
    """Only change Firefox bookmarks"""

    TO_FAVORITES = "toFavorites"
    """Only change the favorites directory"""

    def allows(self, target: StoreKind) -> bool:
        """Check whether operations modifying a store are applied."""
        if self == SyncMode.TWO_WAY:
            return True
        if self == SyncMode.TO_BOOKMARKS:
            return target == StoreKind.BOOKMARKS
        return target == StoreKind.FAVORITES

    @property
    def allows_to_bookmarks(self) -> bool:
        return self.allows(StoreKind.BOOKMARKS)

    @property
    def allows_to_favorites(self) -> bool:
        return self.allows(StoreKind.FAVORITES)

    @classmethod
    def from_string(cls, value: str) -> "SyncMode":
        """Parse a mode name, case-insensitively.

        Raises:
            ValueError: If the name is not a known mode
        """
        for mode in cls:
            if mode.value.lower() == value.strip().lower():
                return mode
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid sync mode: {value}. Valid modes: {valid}")
