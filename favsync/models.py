"""Data models shared by the bookmarks and favorites stores.

The congruence rules live here too, next to the node they compare.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .containers import canonical_title

CongruenceKey = tuple


class ResourceType(str, Enum):
    """Kind of resource an entry represents."""

    LINK = "link"
    """A bookmark or an Internet shortcut"""

    DIRECTORY = "directory"
    """A bookmark folder or a favorites directory"""

    UNRESOLVED = "unresolved"
    """A row whose type could not be mapped (compared with the link rule)"""


class StoreKind(str, Enum):
    """The two stores that are kept in sync."""

    BOOKMARKS = "bookmarks"
    """Firefox bookmarks (places.sqlite)"""

    FAVORITES = "favorites"
    """Favorites directory with .url shortcut files"""

    @property
    def opposite(self) -> "StoreKind":
        """The store on the other side of the sync."""
        if self == StoreKind.BOOKMARKS:
            return StoreKind.FAVORITES
        return StoreKind.BOOKMARKS

    @property
    def label(self) -> str:
        """Human-readable store name."""
        return "Firefox bookmarks" if self == StoreKind.BOOKMARKS else "Favorites"


@dataclass(eq=False)
class LinkNode:
    """One entry (link or directory) of either store.

    Nodes compare by identity. Use ``is_congruent_to`` for structural
    comparison across stores or against manifest snapshots.
    """

    resource_type: ResourceType
    """Link, directory or unresolved"""

    title: str
    """Entry title (file name without extension on the favorites side)"""

    path_hierarchy: tuple[str, ...] = ()
    """Ancestor directory names from the store root to the parent"""

    url: Optional[str] = None
    """Target URL, set only for links"""

    store: StoreKind = StoreKind.FAVORITES
    """Store this node belongs to"""

    excluded: bool = False
    """Excluded from conversion by the operator"""

    system_entry: bool = False
    """Built-in entry that is never converted"""

    # Bookmarks database bookkeeping
    row_id: Optional[int] = None
    parent_id: Optional[int] = None
    position: Optional[int] = None
    fk: Optional[int] = None

    # Favorites directory bookkeeping (informational only)
    path: Optional[Path] = None
    last_modified: Optional[float] = None
    created: Optional[float] = None

    needs_repair: bool = False
    """Title or parent was normalized and must be written back to the store"""

    def __post_init__(self) -> None:
        self.resource_type = ResourceType(self.resource_type)
        self.store = StoreKind(self.store)
        self.path_hierarchy = tuple(self.path_hierarchy or ())
        if self.title is None:
            self.title = ""
        if self.path is not None and not isinstance(self.path, Path):
            self.path = Path(self.path)

        if self.resource_type == ResourceType.LINK and self.url is None:
            raise ValueError(f"Link '{self.title}' has no URL")
        if self.resource_type == ResourceType.DIRECTORY and self.url is not None:
            raise ValueError(f"Directory '{self.title}' cannot have a URL")

    @property
    def is_link(self) -> bool:
        return self.resource_type == ResourceType.LINK

    @property
    def is_directory(self) -> bool:
        return self.resource_type == ResourceType.DIRECTORY

    @property
    def full_hierarchy(self) -> tuple[str, ...]:
        """Hierarchy including this node's own title."""
        return self.path_hierarchy + (self.title,)

    @property
    def display_path(self) -> str:
        """Slash separated path used in messages and exclusion matching."""
        return "/".join(self.full_hierarchy)

    def is_congruent_to(self, other: "LinkNode") -> bool:
        """Check structural equivalence with another node (any store)."""
        return CongruenceMatcher.is_congruent(self, other)

    def is_child_of(self, ancestor: "LinkNode") -> bool:
        """Check whether this node lies below the ancestor directory."""
        return CongruenceMatcher.is_child_of(self, ancestor)

    def to_dict(self) -> dict:
        """Convert node to dictionary for JSON serialization."""
        return {
            "resource_type": self.resource_type.value,
            "title": self.title,
            "path_hierarchy": list(self.path_hierarchy),
            "url": self.url,
            "store": self.store.value,
            "excluded": self.excluded,
            "system_entry": self.system_entry,
            "row_id": self.row_id,
            "parent_id": self.parent_id,
            "position": self.position,
            "fk": self.fk,
            "path": str(self.path) if self.path is not None else None,
            "last_modified": self.last_modified,
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LinkNode":
        """Create LinkNode from dictionary.

        Unknown keys are ignored so newer manifests remain readable.
        """
        resource_type = ResourceType(data.get("resource_type", "unresolved"))
        url = data.get("url")
        if resource_type == ResourceType.DIRECTORY:
            url = None
        elif resource_type == ResourceType.LINK and url is None:
            url = ""
        return cls(
            resource_type=resource_type,
            title=data.get("title") or "",
            path_hierarchy=tuple(data.get("path_hierarchy") or ()),
            url=url,
            store=StoreKind(data.get("store", StoreKind.FAVORITES.value)),
            excluded=bool(data.get("excluded", False)),
            system_entry=bool(data.get("system_entry", False)),
            row_id=data.get("row_id"),
            parent_id=data.get("parent_id"),
            position=data.get("position"),
            fk=data.get("fk"),
            path=data.get("path"),
            last_modified=data.get("last_modified"),
            created=data.get("created"),
        )

    def __str__(self) -> str:
        return (
            f"{self.store.label} entry: type={self.resource_type.value} "
            f"title={self.title!r} url={self.url!r} "
            f"path=/{'/'.join(self.path_hierarchy)}"
        )


class CongruenceMatcher:
    """Structural equivalence between nodes of either store.

    Titles and hierarchies are the only identity the two stores share, so
    congruence is defined on them. Bookkeeping fields (row ids, filesystem
    paths, timestamps) never take part.
    """

    @staticmethod
    def congruence_key(node: LinkNode) -> CongruenceKey:
        """Return a hashable key; congruent nodes have equal keys."""
        title = canonical_title(node.title, node.path_hierarchy)
        if node.resource_type == ResourceType.DIRECTORY:
            return (node.resource_type.value, title, node.path_hierarchy)
        # Links and unresolved entries both use the link rule
        return (node.resource_type.value, node.url, title, node.path_hierarchy)

    @staticmethod
    def is_congruent(a: LinkNode, b: LinkNode) -> bool:
        """Check whether two nodes represent the same entry.

        Directories match on title and hierarchy. Links (and unresolved
        entries) additionally match on URL.
        """
        return CongruenceMatcher.congruence_key(
            a
        ) == CongruenceMatcher.congruence_key(b)

    @staticmethod
    def is_child_of(node: LinkNode, ancestor: LinkNode) -> bool:
        """Check whether a node lies anywhere below an ancestor directory.

        Args:
            node: Candidate descendant
            ancestor: Directory node

        Returns:
            True if the node's hierarchy passes through the ancestor
        """
        if not ancestor.is_directory or node is ancestor:
            return False
        ancestor_path = ancestor.path_hierarchy + (
            canonical_title(ancestor.title, ancestor.path_hierarchy),
        )
        return node.path_hierarchy[: len(ancestor_path)] == ancestor_path

    @staticmethod
    def find_congruent(
        node: LinkNode, candidates: Iterable[LinkNode]
    ) -> Optional[LinkNode]:
        """Return the first candidate congruent to the node, if any."""
        key = CongruenceMatcher.congruence_key(node)
        for candidate in candidates:
            if CongruenceMatcher.congruence_key(candidate) == key:
                return candidate
        return None
