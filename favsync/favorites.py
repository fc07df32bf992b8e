"""The favorites store: a directory tree of Internet shortcut files."""

import logging
import os
import shutil
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

from send2trash import send2trash

from .exceptions import HierarchyCorruptionError
from .models import CongruenceMatcher, LinkNode, ResourceType, StoreKind
from .paths import WELL_KNOWN_FOLDERS, PathMapper
from .shortcut import read_shortcut_url, write_shortcut
from .utils import (
    BOOKMARKS_MANIFEST_NAME,
    FAVORITES_MANIFEST_NAME,
    SHORTCUT_EXTENSION,
)

logger = logging.getLogger(__name__)

_MANIFEST_NAMES = frozenset(
    name.lower() for name in (FAVORITES_MANIFEST_NAME, BOOKMARKS_MANIFEST_NAME)
)


class FavoriteStore:
    """Live collection of the favorites directory.

    Directories map to directory nodes and ``.url`` files to link nodes.
    Root-level well-known folders (the favorites bar and the uncategorized
    folder) are counterparts of Firefox system containers and are flagged
    as system entries.
    """

    kind = StoreKind.FAVORITES

    def __init__(
        self,
        root: Union[str, Path],
        exclusions: Optional[Iterable[Union[str, Path]]] = None,
        use_trash: bool = True,
        workers: int = 4,
    ):
        """Initialize the store.

        Args:
            root: Favorites directory
            exclusions: Files or directories to exclude (absolute or
                relative to the root)
            use_trash: Move removed favorites to the trash instead of
                deleting them permanently
            workers: Threads used to read shortcut files
        """
        self.root = Path(root)
        self.use_trash = use_trash
        self.workers = max(1, workers)
        self.exclusions = self.prune_exclusions(exclusions or ())
        self.nodes: list[LinkNode] = []

    def prune_exclusions(self, exclusions: Iterable[Union[str, Path]]) -> list[Path]:
        """Resolve exclusion paths, dropping those that do not exist."""
        kept = []
        for exclusion in exclusions:
            path = Path(exclusion)
            if not path.is_absolute():
                path = self.root / path
            if path.exists():
                kept.append(path)
            else:
                logger.warning(
                    f"Excluded favorite {exclusion} does not exist and is ignored"
                )
        return kept

    def is_excluded(self, path: Path) -> bool:
        return any(path == e or e in path.parents for e in self.exclusions)

    def enumerate(self) -> list[LinkNode]:
        """Read the favorites directory into a fresh node collection.

        All directories are materialized and indexed before any shortcut is
        interpreted. Shortcut files are then read in parallel; the result
        keeps the directory walk order.

        Returns:
            Directories (top-down) followed by links

        Raises:
            FileNotFoundError: If the favorites directory does not exist
        """
        if not self.root.is_dir():
            raise FileNotFoundError(f"Favorites directory not found: {self.root}")

        directories: list[LinkNode] = []
        shortcut_files: list[Path] = []

        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            current = Path(dirpath)
            hierarchy = current.relative_to(self.root).parts
            for name in dirnames:
                directories.append(self._directory_node(current / name, hierarchy))
            for name in sorted(filenames):
                if name.lower() in _MANIFEST_NAMES:
                    continue
                if name.lower().endswith(SHORTCUT_EXTENSION):
                    shortcut_files.append(current / name)

        index = PathMapper.index_directories(directories)

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            links = list(executor.map(self._link_node, shortcut_files))

        nodes = list(directories)
        for link in links:
            if link is None:
                continue
            if not PathMapper.path_exists(link.path_hierarchy, index):
                logger.warning(f"Skipping {link.path}: parent directory not indexed")
                continue
            nodes.append(link)

        logger.debug(
            f"Enumerated {len(directories)} directories and "
            f"{len(nodes) - len(directories)} shortcuts in {self.root}"
        )
        self.nodes = nodes
        return nodes

    def convert_to_favorite(self, bookmark: LinkNode) -> LinkNode:
        """Create the favorites counterpart of a bookmark.

        Args:
            bookmark: Bookmark node to convert

        Returns:
            The created favorites node

        Raises:
            HierarchyCorruptionError: If the parent directory does not exist
        """
        hierarchy = bookmark.path_hierarchy
        self._ensure_well_known_folder(hierarchy)
        PathMapper.validate_path(hierarchy, self.nodes, bookmark)

        parent_dir = self.root.joinpath(*hierarchy)
        if not parent_dir.is_dir():
            raise HierarchyCorruptionError(bookmark)

        if bookmark.is_directory:
            path = parent_dir / bookmark.title
            path.mkdir(exist_ok=True)
            node = self._directory_node(path, hierarchy)
        elif bookmark.is_link:
            path = parent_dir / f"{bookmark.title}{SHORTCUT_EXTENSION}"
            write_shortcut(path, bookmark.url)
            node = LinkNode(
                resource_type=ResourceType.LINK,
                title=bookmark.title,
                path_hierarchy=hierarchy,
                url=bookmark.url,
                store=StoreKind.FAVORITES,
                path=path,
            )
        else:
            raise ValueError(f"Cannot create a favorite from {bookmark}")

        logger.debug(f"Created favorite {path}")
        self.nodes.append(node)
        return node

    def remove_favorite(self, bookmark: LinkNode) -> list[LinkNode]:
        """Delete the favorites counterpart of a bookmark.

        A directory is removed together with everything below it, children
        first.

        Args:
            bookmark: Bookmark node whose counterpart should be deleted

        Returns:
            The removed favorites nodes (empty if there was no counterpart)
        """
        target = CongruenceMatcher.find_congruent(
            bookmark, (n for n in self.nodes if not n.system_entry)
        )
        if target is None:
            logger.debug(f"No favorite matches {bookmark}")
            return []
        if target.excluded:
            logger.debug(f"Not removing excluded favorite {target.path}")
            return []

        victims = self.descendants_of(target) + [target]
        for node in victims:
            self._delete(node)
            self.nodes.remove(node)
        return victims

    def descendants_of(self, directory: LinkNode) -> list[LinkNode]:
        """Return the nodes below a directory, deepest first."""
        if not directory.is_directory or directory.path is None:
            return []
        below = [
            n
            for n in self.nodes
            if n is not directory
            and n.path is not None
            and directory.path in n.path.parents
        ]
        return sorted(below, key=lambda n: len(n.path.parts), reverse=True)

    def _delete(self, node: LinkNode) -> None:
        path = node.path
        if path is None or not path.exists():
            logger.debug(f"Already gone: {path}")
            return
        if self.use_trash:
            send2trash(str(path))
        elif path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
        logger.debug(f"Deleted favorite {path}")

    def _ensure_well_known_folder(self, hierarchy: tuple[str, ...]) -> None:
        if not hierarchy or hierarchy[0] not in WELL_KNOWN_FOLDERS:
            return
        if PathMapper.path_exists(hierarchy[:1], self.nodes):
            return
        path = self.root / hierarchy[0]
        path.mkdir(exist_ok=True)
        logger.debug(f"Created well-known folder {path}")
        self.nodes.append(self._directory_node(path, ()))

    def _directory_node(self, path: Path, hierarchy: tuple[str, ...]) -> LinkNode:
        stat = path.stat()
        return LinkNode(
            resource_type=ResourceType.DIRECTORY,
            title=path.name,
            path_hierarchy=tuple(hierarchy),
            store=StoreKind.FAVORITES,
            system_entry=not hierarchy and path.name in WELL_KNOWN_FOLDERS,
            excluded=self.is_excluded(path),
            path=path,
            last_modified=stat.st_mtime,
            created=stat.st_ctime,
        )

    def _link_node(self, path: Path) -> Optional[LinkNode]:
        try:
            url = read_shortcut_url(path)
            stat = path.stat()
        except OSError as e:
            logger.warning(f"Cannot read {path}: {e}")
            return None
        if url is None:
            logger.warning(f"Skipping {path}: no URL line")
            return None
        return LinkNode(
            resource_type=ResourceType.LINK,
            title=path.stem,
            path_hierarchy=path.parent.relative_to(self.root).parts,
            url=url,
            store=StoreKind.FAVORITES,
            excluded=self.is_excluded(path),
            path=path,
            last_modified=stat.st_mtime,
            created=stat.st_ctime,
        )
