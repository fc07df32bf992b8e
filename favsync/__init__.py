"""favsync - Sync Firefox bookmarks with an Internet Explorer Favorites directory."""

from .exceptions import (
    FavSyncConfigError,
    FavSyncError,
    HierarchyCorruptionError,
    ManifestDeserializationError,
    StoreNotOpenError,
)
from .models import LinkNode, ResourceType, StoreKind
from .paths import PathMapper
from .tree import TreeBuilder, TreeBuildResult

__all__ = [
    "LinkNode",
    "ResourceType",
    "StoreKind",
    "PathMapper",
    "TreeBuilder",
    "TreeBuildResult",
    "FavSyncError",
    "FavSyncConfigError",
    "HierarchyCorruptionError",
    "ManifestDeserializationError",
    "StoreNotOpenError",
]
