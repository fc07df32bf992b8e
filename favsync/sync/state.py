"""Manifest persistence for detecting additions and deletions.

A manifest is a snapshot of one store's tree as it looked after the last
sync. It lives inside the store's root (the Firefox profile directory for
bookmarks, the favorites directory for favorites) and is always rewritten
as a whole.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..exceptions import ManifestDeserializationError
from ..models import LinkNode, StoreKind
from ..utils import (
    BOOKMARKS_MANIFEST_NAME,
    FAVORITES_MANIFEST_NAME,
    MANIFEST_FORMAT_VERSION,
)

logger = logging.getLogger(__name__)

_MANIFEST_NAMES = {
    StoreKind.BOOKMARKS: BOOKMARKS_MANIFEST_NAME,
    StoreKind.FAVORITES: FAVORITES_MANIFEST_NAME,
}


class ManifestStore:
    """Loads and saves the manifests of both stores."""

    def __init__(
        self,
        bookmarks_root: Union[str, Path],
        favorites_root: Union[str, Path],
    ):
        """Initialize manifest store.

        Args:
            bookmarks_root: Firefox profile directory
            favorites_root: Favorites directory
        """
        self.roots = {
            StoreKind.BOOKMARKS: Path(bookmarks_root),
            StoreKind.FAVORITES: Path(favorites_root),
        }

    def manifest_path(self, store: StoreKind) -> Path:
        """Get the manifest file of a store."""
        return self.roots[store] / _MANIFEST_NAMES[store]

    def exists(self, store: StoreKind) -> bool:
        return self.manifest_path(store).is_file()

    def load(self, store: StoreKind) -> Optional[list[LinkNode]]:
        """Load the manifest of a store.

        Entries that are null or not objects are dropped.

        Args:
            store: Store whose manifest to load

        Returns:
            The manifest nodes, or None if no manifest exists

        Raises:
            ManifestDeserializationError: If the file cannot be parsed
        """
        manifest_file = self.manifest_path(store)

        if not manifest_file.exists():
            logger.debug(f"No manifest found at {manifest_file}")
            return None

        try:
            with open(manifest_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ManifestDeserializationError(manifest_file, str(e)) from e

        if not isinstance(data, dict) or not isinstance(data.get("nodes"), list):
            raise ManifestDeserializationError(manifest_file, "unexpected layout")

        entries = [entry for entry in data["nodes"] if isinstance(entry, dict)]
        dropped = len(data["nodes"]) - len(entries)
        if dropped:
            logger.debug(f"Dropped {dropped} empty manifest entries")

        try:
            nodes = [LinkNode.from_dict(entry) for entry in entries]
        except (ValueError, TypeError) as e:
            raise ManifestDeserializationError(manifest_file, str(e)) from e

        logger.debug(
            f"Loaded {len(nodes)} {store.value} entries saved {data.get('saved_at')}"
        )
        return nodes

    def save(self, store: StoreKind, nodes: list[LinkNode]) -> Path:
        """Overwrite the manifest of a store.

        Args:
            store: Store whose manifest to write
            nodes: Snapshot to persist

        Returns:
            Path of the written manifest
        """
        manifest_file = self.manifest_path(store)
        data = {
            "version": MANIFEST_FORMAT_VERSION,
            "store": store.value,
            "saved_at": datetime.now().isoformat(),
            "nodes": [node.to_dict() for node in nodes],
        }
        tmp_file = manifest_file.with_name(manifest_file.name + ".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_file.replace(manifest_file)
        logger.debug(f"Saved {len(nodes)} {store.value} entries to {manifest_file}")
        return manifest_file

    def clear(self, store: Optional[StoreKind] = None) -> list[Path]:
        """Delete manifests.

        Args:
            store: Store whose manifest to delete, or None for both

        Returns:
            Paths of the deleted files
        """
        stores = [store] if store is not None else list(StoreKind)
        removed = []
        for kind in stores:
            manifest_file = self.manifest_path(kind)
            if manifest_file.exists():
                manifest_file.unlink()
                logger.debug(f"Deleted manifest {manifest_file}")
                removed.append(manifest_file)
        return removed

    def ensure_first_run(self) -> bool:
        """Reset both manifests to empty if either one is missing.

        Returns:
            True if this is a first run
        """
        if all(self.exists(kind) for kind in StoreKind):
            return False
        logger.info("Manifest missing, starting from an empty state")
        self.clear()
        for kind in StoreKind:
            self.save(kind, [])
        return True
