"""Congruence lookup and manifest comparison for sync operations."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import CongruenceKey, CongruenceMatcher, LinkNode, StoreKind

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    """Operations that can be planned during sync."""

    ADD = "add"
    """Entry appeared in its store and must be created on the other side"""

    REMOVE = "remove"
    """Entry disappeared from its store and must be deleted on the other side"""


@dataclass
class SyncOperation:
    """A planned change, produced and consumed within one run."""

    store: StoreKind
    """Store in which the change was detected"""

    kind: OperationKind
    """Add or remove"""

    subject: LinkNode
    """Live node (for adds) or manifest node (for removes)"""

    @property
    def target(self) -> StoreKind:
        """Store that applying this operation modifies."""
        return self.store.opposite

    def __str__(self) -> str:
        return (
            f"{self.kind.value} {self.subject.resource_type.value} "
            f"/{self.subject.display_path} ({self.store.label} -> "
            f"{self.target.label})"
        )


class CongruenceIndex:
    """Set-like lookup of nodes by congruence key."""

    def __init__(self, nodes: Iterable[LinkNode] = ()):
        self._index: dict[CongruenceKey, list[LinkNode]] = {}
        for node in nodes:
            self.add(node)

    def add(self, node: LinkNode) -> None:
        key = CongruenceMatcher.congruence_key(node)
        self._index.setdefault(key, []).append(node)

    def find(self, node: LinkNode) -> Optional[LinkNode]:
        matches = self._index.get(CongruenceMatcher.congruence_key(node))
        return matches[0] if matches else None

    def __contains__(self, node: object) -> bool:
        if not isinstance(node, LinkNode):
            return False
        return CongruenceMatcher.congruence_key(node) in self._index

    def __len__(self) -> int:
        return sum(len(nodes) for nodes in self._index.values())


class ManifestComparator:
    """Classifies entries against manifests and the opposite store."""

    def classify_adds(
        self,
        store: StoreKind,
        live: list[LinkNode],
        manifest: list[LinkNode],
    ) -> list[SyncOperation]:
        """Find entries that appeared since the manifest was written.

        Args:
            store: Store the collections belong to
            live: Freshly enumerated nodes
            manifest: Nodes from the previous run's manifest

        Returns:
            One ADD operation per new, convertible entry (in live order)
        """
        known = CongruenceIndex(manifest)
        operations = []
        for node in live:
            if node.excluded or node.system_entry:
                continue
            if node not in known:
                operations.append(SyncOperation(store, OperationKind.ADD, node))
        logger.debug("%d new %s entries", len(operations), store.value)
        return operations

    def classify_removes(
        self,
        store: StoreKind,
        live: list[LinkNode],
        manifest: list[LinkNode],
    ) -> list[SyncOperation]:
        """Find manifest entries that no longer exist in the live store.

        Returns:
            One REMOVE operation per vanished entry (in manifest order)
        """
        present = CongruenceIndex(live)
        operations = []
        for node in manifest:
            if node.system_entry:
                continue
            if node not in present:
                operations.append(SyncOperation(store, OperationKind.REMOVE, node))
        logger.debug("%d removed %s entries", len(operations), store.value)
        return operations

    def cross_dedup(
        self,
        operations: list[SyncOperation],
        live_by_store: dict[StoreKind, list[LinkNode]],
    ) -> list[SyncOperation]:
        """Drop operations whose effect is already present on the other side.

        An ADD is dropped when a congruent entry already exists in the
        target store. A REMOVE is dropped when no congruent entry exists in
        the target store, since there is nothing left to delete.

        Args:
            operations: Classified operations
            live_by_store: Live nodes of both stores

        Returns:
            The surviving operations, order preserved
        """
        indexes = {
            kind: CongruenceIndex(nodes) for kind, nodes in live_by_store.items()
        }
        surviving = []
        for operation in operations:
            exists_on_target = operation.subject in indexes[operation.target]
            if operation.kind == OperationKind.ADD and exists_on_target:
                logger.debug("Already present on target, skipping: %s", operation)
                continue
            if operation.kind == OperationKind.REMOVE and not exists_on_target:
                logger.debug("Already absent on target, skipping: %s", operation)
                continue
            surviving.append(operation)
        return surviving
