"""Mapping between the bookmarks and favorites directory-name conventions.

Both stores express ``path_hierarchy`` in the favorites convention: the
special Firefox containers are remapped while a bookmark's path is derived
(the menu is the favorites root, the toolbar is the favorites bar folder,
unsorted bookmarks go to the uncategorized folder). The functions here
translate between the two conventions and enforce the naming constraints
of the favorites directory.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional, Union

from . import containers
from .containers import (
    BOOKMARKS_MENU,
    BOOKMARKS_TOOLBAR,
    CONTAINER_LABELS,
    CONTAINER_TITLES,
    FAVORITES_BAR,
    MAPPED_CONTAINERS,
    UNCATEGORIZED_FOLDER,
    UNSORTED_BOOKMARKS,
)
from .exceptions import HierarchyCorruptionError
from .models import LinkNode, StoreKind

logger = logging.getLogger(__name__)

__all__ = [
    "BOOKMARKS_MENU",
    "BOOKMARKS_TOOLBAR",
    "UNSORTED_BOOKMARKS",
    "FAVORITES_BAR",
    "UNCATEGORIZED_FOLDER",
    "SYSTEM_DIRECTORIES",
    "WELL_KNOWN_FOLDERS",
    "INVALID_NAME_CHARS",
    "DirectoryIndex",
    "PathMapper",
]

# Built-in Firefox directories that are never converted
SYSTEM_DIRECTORIES = tuple(CONTAINER_TITLES) + (
    "Recently Bookmarked",
    "Recent Tags",
    "History",
    "Downloads",
    "All Bookmarks",
)

# Well-known favorites folders, created on demand
WELL_KNOWN_FOLDERS = tuple(MAPPED_CONTAINERS.values())

# Characters that cannot appear in a file or directory name on Windows
INVALID_NAME_CHARS = frozenset('<>:"/\\|?*') | frozenset(chr(c) for c in range(32))

_FAVORITES_TO_BOOKMARKS = {
    folder: CONTAINER_LABELS[key] for key, folder in MAPPED_CONTAINERS.items()
}

DirectoryIndex = dict[tuple[tuple[str, ...], str], LinkNode]


class PathMapper:
    """Stateless helpers for translating and validating path hierarchies."""

    @staticmethod
    def container_prefix(title: Optional[str]) -> Optional[tuple[str, ...]]:
        """Return the favorites hierarchy a bookmarks container maps to.

        Args:
            title: Title of a bookmarks directory

        Returns:
            The mapped hierarchy prefix when the title names the root or a
            special container, None for an ordinary directory
        """
        return containers.container_prefix(title)

    @staticmethod
    def canonical_title(title: str, path_hierarchy: tuple[str, ...]) -> str:
        """Map a root-level container title into the favorites convention.

        ``Bookmarks Toolbar`` at the root becomes ``Links`` so the two
        directories compare equal. Titles below the root are unchanged.
        """
        return containers.canonical_title(title, path_hierarchy)

    @staticmethod
    def to_opposite_convention(
        path_hierarchy: Iterable[str], source: StoreKind
    ) -> tuple[str, ...]:
        """Translate a hierarchy written in one store's naming to the other's.

        Args:
            path_hierarchy: Hierarchy in the source store's directory names
            source: Store whose naming the hierarchy uses

        Returns:
            The hierarchy in the opposite store's directory names

        Examples:
            >>> PathMapper.to_opposite_convention(("Links", "Work"), StoreKind.FAVORITES)
            ('Bookmarks Toolbar', 'Work')
            >>> PathMapper.to_opposite_convention(("Bookmarks Menu", "News"), StoreKind.BOOKMARKS)
            ('News',)
        """
        hierarchy = tuple(path_hierarchy)

        if source == StoreKind.FAVORITES:
            if hierarchy and hierarchy[0] in _FAVORITES_TO_BOOKMARKS:
                return (_FAVORITES_TO_BOOKMARKS[hierarchy[0]],) + hierarchy[1:]
            return (BOOKMARKS_MENU,) + hierarchy

        if not hierarchy:
            return ()
        prefix = PathMapper.container_prefix(hierarchy[0])
        if prefix is None:
            return hierarchy
        return prefix + hierarchy[1:]

    @staticmethod
    def strip_invalid_chars(title: str) -> tuple[str, bool]:
        """Remove characters that are not allowed in favorites names.

        Returns:
            Tuple of (clean title, whether anything was removed)
        """
        clean = "".join(c for c in title if c not in INVALID_NAME_CHARS)
        return clean, clean != title

    @staticmethod
    def map_to_path(
        root: Union[str, Path],
        path_hierarchy: Iterable[str],
        title: Optional[str] = None,
    ) -> str:
        """Build the favorites path an entry maps to.

        Args:
            root: Favorites directory
            path_hierarchy: Ancestor directory names
            title: Entry title, omitted to get the parent directory

        Returns:
            Path string (its length is what the length policy limits)
        """
        path = Path(root).joinpath(*path_hierarchy)
        if title is not None:
            path = path / title
        return str(path)

    @staticmethod
    def index_directories(nodes: Iterable[LinkNode]) -> DirectoryIndex:
        """Index directory nodes by (hierarchy, canonical title)."""
        index: DirectoryIndex = {}
        for node in nodes:
            if node.is_directory:
                key = (
                    node.path_hierarchy,
                    PathMapper.canonical_title(node.title, node.path_hierarchy),
                )
                index.setdefault(key, node)
        return index

    @staticmethod
    def validate_path(
        path_hierarchy: Iterable[str],
        directories: Union[DirectoryIndex, Iterable[LinkNode]],
        subject: Optional[LinkNode] = None,
    ) -> Optional[LinkNode]:
        """Check that every ancestor of a hierarchy exists as a directory.

        Args:
            path_hierarchy: Hierarchy of the entry about to be created
            directories: Directory index or the store's nodes
            subject: Entry being created, used in the error message

        Returns:
            The parent directory node, or None for a root-level entry

        Raises:
            HierarchyCorruptionError: If any ancestor directory is missing
        """
        hierarchy = tuple(path_hierarchy)
        index = (
            directories
            if isinstance(directories, dict)
            else PathMapper.index_directories(directories)
        )

        parent: Optional[LinkNode] = None
        for depth, name in enumerate(hierarchy):
            parent = index.get((hierarchy[:depth], name))
            if parent is None:
                logger.debug(
                    "Missing ancestor %r at depth %d of /%s",
                    name,
                    depth,
                    "/".join(hierarchy),
                )
                raise HierarchyCorruptionError(
                    subject if subject is not None else "/".join(hierarchy)
                )
        return parent

    @staticmethod
    def path_exists(
        path_hierarchy: Iterable[str],
        directories: Union[DirectoryIndex, Iterable[LinkNode]],
    ) -> bool:
        """Return True if ``validate_path`` would succeed."""
        try:
            PathMapper.validate_path(path_hierarchy, directories)
        except HierarchyCorruptionError:
            return False
        return True
