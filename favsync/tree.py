"""Reconstruction of the bookmarks tree from unordered database rows.

Rows arrive in arbitrary order, but a bookmark's path can only be derived
once all of its ancestors exist. ``TreeBuilder`` therefore computes a
construction order for the directory rows first (every directory after its
parent), builds the directories in that order, and only then builds the
links, which can never be ancestors.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .containers import ROOT_GUID, ROOT_GUIDS, container_key
from .exceptions import HierarchyCorruptionError
from .models import LinkNode, ResourceType, StoreKind
from .paths import SYSTEM_DIRECTORIES, PathMapper
from .utils import (
    MAX_PARENT_PATH_LENGTH,
    MAX_PATH_LENGTH,
    ROOT_ROW_ID,
    ROW_TYPE_DIRECTORY,
    ROW_TYPE_LINK,
    SYSTEM_ROW_ID_LIMIT,
)

logger = logging.getLogger(__name__)


@dataclass
class BookmarkRow:
    """Raw moz_bookmarks row."""

    id: int
    type: int
    parent: Optional[int]
    fk: Optional[int] = None
    position: Optional[int] = None
    title: Optional[str] = None
    guid: Optional[str] = None


@dataclass
class PlaceRow:
    """Raw moz_places row (only the columns needed to resolve URLs)."""

    id: int
    url: str


@dataclass
class CorruptRow:
    """A row that could not be placed in the tree."""

    row: BookmarkRow
    reason: str


@dataclass
class TreeBuildResult:
    """Outcome of building the bookmarks tree."""

    nodes: list[LinkNode] = field(default_factory=list)
    """Directories in construction order, followed by links"""

    construction_order: list[int] = field(default_factory=list)
    """Directory row ids in the order they were built"""

    corrupted: list[CorruptRow] = field(default_factory=list)
    """Rows dropped because their hierarchy could not be resolved"""

    @property
    def repaired(self) -> list[LinkNode]:
        """Nodes whose title or parent was normalized."""
        return [node for node in self.nodes if node.needs_repair]

    @property
    def is_corrupt(self) -> bool:
        return bool(self.corrupted)


def parse_exclusion(value: str) -> tuple[str, ...]:
    """Split an exclusion path into a favorites-convention hierarchy.

    Both separators are accepted, and a leading Firefox container name
    (``Bookmarks Toolbar/...``) is translated.

    Examples:
        >>> parse_exclusion("\\\\Links\\\\Work")
        ('Links', 'Work')
        >>> parse_exclusion("Bookmarks Toolbar/Work")
        ('Links', 'Work')
    """
    parts = tuple(p for p in value.replace("\\", "/").split("/") if p)
    if parts and PathMapper.container_prefix(parts[0]) is not None:
        parts = PathMapper.to_opposite_convention(parts, StoreKind.BOOKMARKS)
    return parts


class TreeBuilder:
    """Builds LinkNodes for the bookmarks store from raw rows.

    Examples:
        >>> builder = TreeBuilder(favorites_root=Path("C:/Favorites"))
        >>> result = builder.build(rows, places)
        >>> for node in result.nodes:
        ...     print(node.display_path)
    """

    def __init__(
        self,
        favorites_root: Union[str, Path, None] = None,
        exclusions: Optional[Iterable[str]] = None,
        root_id: int = ROOT_ROW_ID,
        max_path_length: int = MAX_PATH_LENGTH,
        max_parent_path_length: int = MAX_PARENT_PATH_LENGTH,
    ):
        """Initialize tree builder.

        Args:
            favorites_root: Favorites directory the path length policy
                measures against
            exclusions: Bookmark paths to exclude from conversion
            root_id: Id of the root row
            max_path_length: Ceiling for a mapped path
            max_parent_path_length: Ceiling for a mapped parent path
        """
        self.favorites_root = Path(favorites_root) if favorites_root else Path("")
        self.exclusions = [
            e for e in (parse_exclusion(x) for x in exclusions or ()) if e
        ]
        self.root_id = root_id
        self.max_path_length = max_path_length
        self.max_parent_path_length = max_parent_path_length

    def build(
        self, rows: Iterable[BookmarkRow], places: Iterable[PlaceRow]
    ) -> TreeBuildResult:
        """Build the bookmarks tree.

        Args:
            rows: moz_bookmarks rows in any order
            places: moz_places rows referenced by the rows' foreign keys

        Returns:
            TreeBuildResult with the nodes and any corrupted rows
        """
        urls = {place.id: place.url for place in places}
        rows = list(rows)
        directory_rows = [r for r in rows if r.type == ROW_TYPE_DIRECTORY]
        other_rows = [r for r in rows if r.type != ROW_TYPE_DIRECTORY]

        result = TreeBuildResult()
        ordered, unplaceable = self.construction_order(directory_rows)
        for row in unplaceable:
            result.corrupted.append(CorruptRow(row, "parent directory not found"))

        nodes_by_id: dict[int, LinkNode] = {}
        for row in ordered:
            try:
                node = self._build_node(row, None, nodes_by_id)
            except HierarchyCorruptionError as e:
                result.corrupted.append(CorruptRow(row, str(e)))
                continue
            nodes_by_id[row.id] = node
            result.nodes.append(node)
            result.construction_order.append(row.id)

        for row in other_rows:
            url = urls.get(row.fk) if row.fk is not None else None
            if row.type == ROW_TYPE_LINK and url is None:
                result.corrupted.append(CorruptRow(row, f"no URL row {row.fk}"))
                continue
            try:
                result.nodes.append(self._build_node(row, url, nodes_by_id))
            except HierarchyCorruptionError as e:
                result.corrupted.append(CorruptRow(row, str(e)))

        if result.corrupted:
            logger.warning(
                "Bookmarks hierarchy is corrupted: %d row(s) dropped",
                len(result.corrupted),
            )
            for corrupt in result.corrupted:
                logger.debug("Dropped row %s: %s", corrupt.row, corrupt.reason)
        logger.debug(
            "Built %d bookmark nodes (%d directories)",
            len(result.nodes),
            len(result.construction_order),
        )
        return result

    def construction_order(
        self, directory_rows: Iterable[BookmarkRow]
    ) -> tuple[list[BookmarkRow], list[BookmarkRow]]:
        """Order directory rows so that every row follows its parent.

        The root row comes first. Each pass places every remaining row
        whose parent has been placed; rows within a pass are taken in
        (position, id) order. Passes stop when nothing new is placed.

        Args:
            directory_rows: Directory rows in any order

        Returns:
            Tuple of (ordered rows, rows that could not be placed)
        """
        rows = sorted(
            directory_rows,
            key=lambda r: (r.position if r.position is not None else 0, r.id),
        )
        root = next((r for r in rows if r.id == self.root_id), None)
        if root is None:
            logger.warning("Root row %d not found", self.root_id)
            return [], rows

        ordered = [root]
        placed = {root.id}
        remaining = [r for r in rows if r is not root]

        while remaining:
            pending = []
            for row in remaining:
                if row.parent in placed:
                    ordered.append(row)
                    placed.add(row.id)
                else:
                    pending.append(row)
            if len(pending) == len(remaining):
                # No progress: cyclic or dangling parent references
                logger.warning(
                    "Construction order stalled with %d unplaceable row(s)",
                    len(pending),
                )
                return ordered, pending
            remaining = pending

        return ordered, []

    def derive_hierarchy(
        self, parent_id: Optional[int], nodes_by_id: dict[int, LinkNode]
    ) -> tuple[tuple[str, ...], bool]:
        """Derive a path hierarchy by walking up the parent chain.

        Special containers end the walk: the root and the menu map to the
        favorites root, the toolbar and unsorted bookmarks to their
        favorites folders.

        Args:
            parent_id: Id of the node's parent row
            nodes_by_id: Directory nodes built so far

        Returns:
            Tuple of (hierarchy, whether the walk passed through an
            unmapped system directory such as Tags)

        Raises:
            HierarchyCorruptionError: If an ancestor is missing or the
                parent chain is cyclic
        """
        if parent_id is None or parent_id == 0:
            return (), False

        names: list[str] = []
        visited: set[int] = set()
        under_system = False
        current: Optional[int] = parent_id

        while current is not None and current != 0:
            if current in visited:
                raise HierarchyCorruptionError(
                    current, f"Cyclic parent reference at row {current}"
                )
            visited.add(current)

            ancestor = nodes_by_id.get(current)
            if ancestor is None:
                raise HierarchyCorruptionError(
                    current, f"The parent directory {current} does not exist"
                )

            if ancestor.system_entry:
                prefix = PathMapper.container_prefix(ancestor.title)
                if prefix is not None:
                    return prefix + tuple(reversed(names)), under_system
                under_system = True

            names.append(ancestor.title)
            current = ancestor.parent_id

        return tuple(reversed(names)), under_system

    @staticmethod
    def is_system_row(row: BookmarkRow) -> bool:
        """Check whether a row is a built-in Firefox entry.

        Rows carrying a guid are recognized by the well-known root guids.
        Without a guid a row is built-in when it has no title, or has a
        built-in title and a low id.
        """
        if not row.title:
            return True
        if row.guid:
            return row.guid == ROOT_GUID or row.guid in ROOT_GUIDS
        return row.id < SYSTEM_ROW_ID_LIMIT and row.title in SYSTEM_DIRECTORIES

    def is_excluded(self, node: LinkNode) -> bool:
        """Check a node against the exclusion list.

        An exclusion covers the entry it names and everything below it.
        System entries are never excluded.
        """
        if node.system_entry:
            return False
        full = node.full_hierarchy
        return any(full[: len(e)] == e for e in self.exclusions)

    def normalize(self, node: LinkNode, nodes_by_id: dict[int, LinkNode]) -> None:
        """Make a node's title and mapped path valid for the favorites side.

        Invalid characters are stripped. If the mapped path is too long,
        the node is first moved up to its grandparent while the parent path
        is over the parent ceiling, then its title is truncated by the
        remaining excess. Compliant nodes are left untouched.
        """
        clean, changed = PathMapper.strip_invalid_chars(node.title)
        if changed:
            logger.debug("Stripped invalid characters from %r", node.title)
            node.title = clean
            node.needs_repair = True

        if self._path_length(node) <= self.max_path_length:
            return

        while (
            node.path_hierarchy
            and self._parent_path_length(node) > self.max_parent_path_length
        ):
            parent = nodes_by_id.get(node.parent_id) if node.parent_id else None
            if parent is None or not parent.parent_id:
                break
            hierarchy, _ = self.derive_hierarchy(parent.parent_id, nodes_by_id)
            if len(hierarchy) >= len(node.path_hierarchy):
                break
            logger.debug(
                "Moving %r up from /%s to /%s",
                node.title,
                "/".join(node.path_hierarchy),
                "/".join(hierarchy),
            )
            node.parent_id = parent.parent_id
            node.path_hierarchy = hierarchy
            node.needs_repair = True

        excess = self._path_length(node) - self.max_path_length
        if excess > 0:
            node.title = node.title[: max(len(node.title) - excess, 1)]
            node.needs_repair = True

    def _path_length(self, node: LinkNode) -> int:
        return len(
            PathMapper.map_to_path(
                self.favorites_root, node.path_hierarchy, node.title
            )
        )

    def _parent_path_length(self, node: LinkNode) -> int:
        return len(PathMapper.map_to_path(self.favorites_root, node.path_hierarchy))

    def _build_node(
        self,
        row: BookmarkRow,
        url: Optional[str],
        nodes_by_id: dict[int, LinkNode],
    ) -> LinkNode:
        if row.type == ROW_TYPE_DIRECTORY:
            resource_type = ResourceType.DIRECTORY
            url = None
        elif row.type == ROW_TYPE_LINK:
            resource_type = ResourceType.LINK
        else:
            resource_type = ResourceType.UNRESOLVED

        title = row.title or ""
        system_entry = self.is_system_row(row)
        if system_entry:
            container = container_key(title, row.guid)
            if container is not None and container_key(title) != container:
                logger.debug(
                    "Row %d titled %r is the %s container", row.id, title, container
                )
                title = container

        if row.id == self.root_id:
            hierarchy: tuple[str, ...] = ()
            under_system = False
        else:
            hierarchy, under_system = self.derive_hierarchy(row.parent, nodes_by_id)

        node = LinkNode(
            resource_type=resource_type,
            title=title,
            path_hierarchy=hierarchy,
            url=url,
            store=StoreKind.BOOKMARKS,
            system_entry=system_entry,
            row_id=row.id,
            parent_id=row.parent,
            position=row.position,
            fk=row.fk,
        )

        if not system_entry:
            self.normalize(node, nodes_by_id)
            node.excluded = under_system or self.is_excluded(node)
        return node
