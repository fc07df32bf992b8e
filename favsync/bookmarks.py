"""The bookmarks store: Firefox bookmarks held in places.sqlite."""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional, Union

from .containers import MENU, container_key
from .exceptions import HierarchyCorruptionError, StoreNotOpenError
from .models import CongruenceMatcher, LinkNode, ResourceType, StoreKind
from .paths import BOOKMARKS_MENU, PathMapper
from .places import BOOKMARKS_TABLE, PlacesDatabase
from .tree import BookmarkRow, TreeBuilder, TreeBuildResult
from .utils import BOOKMARKS_FILE, ROW_TYPE_DIRECTORY, ROW_TYPE_LINK

logger = logging.getLogger(__name__)


class BookmarkStore:
    """Live collection of the Firefox bookmarks.

    The database connection is opened once per run and shared by every
    read and write; all access is serialized through this object.

    Examples:
        >>> with BookmarkStore(profile, favorites_root=favorites) as store:
        ...     nodes = store.enumerate()
    """

    kind = StoreKind.BOOKMARKS

    def __init__(
        self,
        profile_path: Union[str, Path],
        favorites_root: Union[str, Path, None] = None,
        exclusions: Optional[Iterable[str]] = None,
        database: Optional[PlacesDatabase] = None,
        readonly: bool = False,
    ):
        """Initialize the store.

        Args:
            profile_path: Firefox profile directory containing places.sqlite
            favorites_root: Favorites directory, used by the path length
                policy when titles are normalized
            exclusions: Bookmark paths to exclude from conversion
            database: Pre-built database wrapper (mainly for tests)
            readonly: Open the database read-only (dry runs)
        """
        self.root = Path(profile_path)
        self.db = database or PlacesDatabase(
            self.root / BOOKMARKS_FILE, readonly=readonly
        )
        self.builder = TreeBuilder(favorites_root=favorites_root, exclusions=exclusions)
        self.nodes: list[LinkNode] = []
        self.last_build: Optional[TreeBuildResult] = None

    def __enter__(self) -> "BookmarkStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if not self.db.is_open:
            self.db.open()

    def close(self) -> None:
        self.db.close()

    def enumerate(self, repair: bool = True) -> list[LinkNode]:
        """Read all bookmarks into a fresh node collection.

        Args:
            repair: Write normalized titles and parents back to the database

        Returns:
            Directories in construction order, followed by links

        Raises:
            StoreNotOpenError: If the database has not been opened
        """
        if not self.db.is_open:
            raise StoreNotOpenError()

        result = self.builder.build(
            self.db.read_bookmark_rows(), self.db.read_place_rows()
        )
        if repair and not self.db.readonly:
            self.persist_repairs(result.repaired)

        self.last_build = result
        self.nodes = result.nodes
        return self.nodes

    def persist_repairs(self, nodes: Iterable[LinkNode]) -> int:
        """Write normalized nodes back by re-inserting their rows.

        Each row is deleted and inserted again under the same id and guid
        with the repaired title and parent.

        Returns:
            Number of rows rewritten
        """
        count = 0
        for node in nodes:
            row = self._row_for(node, node.row_id)
            row.guid = self.db.find_bookmark_guid(node.row_id)
            self.db.delete_bookmark_row(node.row_id)
            self.db.insert_bookmark_row(row)
            node.needs_repair = False
            count += 1
        if count:
            logger.info("Repaired %d bookmark title(s)", count)
        return count

    def convert_to_bookmark(self, favorite: LinkNode) -> LinkNode:
        """Create the bookmark counterpart of a favorite.

        Root-level favorites go into the bookmarks menu. A link reuses an
        existing URL row with the same url.

        Args:
            favorite: Favorites node to convert

        Returns:
            The created bookmark node

        Raises:
            HierarchyCorruptionError: If the parent directory does not exist
        """
        if favorite.resource_type == ResourceType.UNRESOLVED:
            raise ValueError(f"Cannot create a bookmark from {favorite}")

        hierarchy = favorite.path_hierarchy
        if hierarchy:
            parent = PathMapper.validate_path(hierarchy, self.nodes, favorite)
        else:
            parent = self._menu_directory()
            if parent is None:
                raise HierarchyCorruptionError(favorite, f"{BOOKMARKS_MENU} not found")

        fk = None
        if favorite.is_link:
            fk = self.db.find_place_id(favorite.url)
            if fk is None:
                fk = self.db.insert_place(favorite.url, favorite.title)

        node = LinkNode(
            resource_type=favorite.resource_type,
            title=favorite.title,
            path_hierarchy=hierarchy,
            url=favorite.url if favorite.is_link else None,
            store=StoreKind.BOOKMARKS,
            parent_id=parent.row_id,
            position=self.db.next_position(parent.row_id),
            fk=fk,
        )
        row_id = self.db.query_max_id(BOOKMARKS_TABLE) + 1
        node.row_id = self.db.insert_bookmark_row(self._row_for(node, row_id))

        logger.debug("Created bookmark %s", node.display_path)
        self.nodes.append(node)
        return node

    def remove_bookmark(self, favorite: LinkNode) -> list[LinkNode]:
        """Delete the bookmark counterpart of a favorite.

        A directory is removed together with everything below it, children
        first. URL rows still referenced by other bookmarks are kept.

        Args:
            favorite: Favorites node whose counterpart should be deleted

        Returns:
            The removed bookmark nodes (empty if there was no counterpart)
        """
        target = CongruenceMatcher.find_congruent(
            favorite, (n for n in self.nodes if not n.system_entry)
        )
        if target is None:
            logger.debug("No bookmark matches %s", favorite)
            return []
        if target.excluded:
            logger.debug("Not removing excluded bookmark %s", target.display_path)
            return []

        victims = self.descendants_of(target) + [target]
        for node in victims:
            self._delete(node)
            self.nodes.remove(node)
        return victims

    def descendants_of(self, directory: LinkNode) -> list[LinkNode]:
        """Return the nodes below a directory, children before their parents.

        Descendants are found through the parent id chain, so directories
        that share a title are never confused.
        """
        if not directory.is_directory:
            return []
        children: dict[Optional[int], list[LinkNode]] = {}
        for node in self.nodes:
            children.setdefault(node.parent_id, []).append(node)

        ordered: list[LinkNode] = []
        seen = {id(directory)}
        stack = [(directory, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                if node is not directory:
                    ordered.append(node)
                continue
            stack.append((node, True))
            for child in children.get(node.row_id, []):
                if id(child) not in seen:
                    seen.add(id(child))
                    stack.append((child, False))
        return ordered

    def _menu_directory(self) -> Optional[LinkNode]:
        for node in self.nodes:
            if (
                node.system_entry
                and node.is_directory
                and container_key(node.title) == MENU
            ):
                return node
        return None

    def _delete(self, node: LinkNode) -> None:
        self.db.delete_bookmark_row(node.row_id)
        if node.fk is not None and self.db.count_place_references(node.fk) == 0:
            self.db.delete_place(node.fk)
        logger.debug("Deleted bookmark %s", node.display_path)

    @staticmethod
    def _row_for(node: LinkNode, row_id: int) -> BookmarkRow:
        return BookmarkRow(
            id=row_id,
            type=ROW_TYPE_DIRECTORY if node.is_directory else ROW_TYPE_LINK,
            parent=node.parent_id,
            fk=node.fk,
            position=node.position,
            title=node.title,
        )
