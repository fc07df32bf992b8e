"""Core sync engine for reconciling bookmarks and favorites."""

import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..exceptions import HierarchyCorruptionError
from ..models import LinkNode, StoreKind
from ..output import OutputFormatter
from ..utils import format_duration
from .comparator import (
    CongruenceIndex,
    ManifestComparator,
    OperationKind,
    SyncOperation,
)
from .modes import SyncMode
from .operations import SyncOperations
from .state import ManifestStore

if TYPE_CHECKING:
    from ..bookmarks import BookmarkStore
    from ..favorites import FavoriteStore

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """State owned by a single sync run.

    The live collections are rebuilt from scratch on every run and are only
    reachable through this object.
    """

    bookmarks: "BookmarkStore"
    """Live bookmarks store (database already open)"""

    favorites: "FavoriteStore"
    """Live favorites store"""

    manifests: ManifestStore
    """Manifest persistence for both stores"""

    mode: SyncMode = SyncMode.TWO_WAY
    """Directions in which operations are applied"""

    def store(self, kind: StoreKind) -> Union["BookmarkStore", "FavoriteStore"]:
        return self.bookmarks if kind == StoreKind.BOOKMARKS else self.favorites

    def live_nodes(self) -> dict[StoreKind, list[LinkNode]]:
        return {kind: self.store(kind).nodes for kind in StoreKind}


class SyncEngine:
    """Orchestrates one sync run.

    A run moves through the phases enumerate, classify adds, classify
    removes, cross-dedup, apply and refresh. Only the refresh phase writes
    manifests, and it always rewrites both.
    """

    def __init__(self, output: Optional[OutputFormatter] = None):
        """Initialize sync engine.

        Args:
            output: Output formatter for displaying progress/status
        """
        self.output = output or OutputFormatter()
        self.comparator = ManifestComparator()

    def sync(self, context: SyncContext, dry_run: bool = False) -> dict:
        """Run a full sync cycle.

        Args:
            context: Stores, manifests and mode of this run
            dry_run: If True, only show what would be done

        Returns:
            Dictionary with sync statistics; ``operations`` holds the plan

        Raises:
            ManifestDeserializationError: If a manifest cannot be read
            StoreNotOpenError: If the bookmarks database is not open

        Examples:
            >>> engine = SyncEngine()
            >>> stats = engine.sync(context, dry_run=True)
            >>> print(f"Would add {stats['adds_to_bookmarks']} bookmarks")
        """
        start_time = time.time()

        if not self.output.quiet:
            self.output.info(f"Bookmarks: {context.bookmarks.root}")
            self.output.info(f"Favorites: {context.favorites.root}")
            self.output.info(f"Mode: {context.mode.value}")
            if dry_run:
                self.output.info("Dry run: No changes will be made")
            self.output.print("")

        manifests, first_run = self._load_manifests(context, dry_run)
        self._enumerate(context, repair=not dry_run)

        operations = self.plan(context, manifests)
        stats = self._categorize_operations(operations)
        stats["first_run"] = first_run
        stats["repaired"] = self._repaired_count(context)
        stats["corrupted"] = self._corrupted_count(context)
        self._display_sync_plan(stats, operations, dry_run)

        if not dry_run:
            pending = self._execute_operations(context, operations, stats)
            self.refresh(context, pending)

        stats["elapsed"] = time.time() - start_time
        if not self.output.quiet:
            self._display_summary(stats, dry_run)
        return stats

    def plan(
        self,
        context: SyncContext,
        manifests: dict[StoreKind, list[LinkNode]],
    ) -> list[SyncOperation]:
        """Compute the operations that converge both stores.

        Args:
            context: Run context with freshly enumerated stores
            manifests: Previous snapshot of each store

        Returns:
            Adds of both stores, then removes of both stores, after
            cross-dedup
        """
        live = context.live_nodes()
        operations: list[SyncOperation] = []
        for kind in StoreKind:
            operations += self.comparator.classify_adds(
                kind, live[kind], manifests[kind]
            )
        for kind in StoreKind:
            operations += self.comparator.classify_removes(
                kind, live[kind], manifests[kind]
            )
        planned = self.comparator.cross_dedup(operations, live)
        logger.debug(
            f"Planned {len(planned)} of {len(operations)} classified operations"
        )
        return planned

    def refresh(
        self,
        context: SyncContext,
        pending: Optional[list[SyncOperation]] = None,
    ) -> None:
        """Re-enumerate both stores and overwrite both manifests.

        Operations that were not applied stay eligible for the next run:
        the subject of a pending add is left out of its store's manifest,
        and the subject of a pending remove is kept in it.

        Args:
            context: Run context
            pending: Operations that failed or were not applied
        """
        self._enumerate(context, repair=False)
        pending = pending or []

        for kind in StoreKind:
            snapshot = list(context.store(kind).nodes)
            own = [op for op in pending if op.store == kind]

            not_added = CongruenceIndex(
                op.subject for op in own if op.kind == OperationKind.ADD
            )
            if len(not_added):
                snapshot = [node for node in snapshot if node not in not_added]
            snapshot += [op.subject for op in own if op.kind == OperationKind.REMOVE]

            context.manifests.save(kind, snapshot)

    def _load_manifests(
        self, context: SyncContext, dry_run: bool
    ) -> tuple[dict[StoreKind, list[LinkNode]], bool]:
        """Load both manifests, starting over if either is missing.

        Corrupt manifests raise before anything is modified.
        """
        loaded = {kind: context.manifests.load(kind) for kind in StoreKind}
        first_run = any(nodes is None for nodes in loaded.values())
        if first_run:
            logger.debug("First run: treating every live entry as new")
            if not dry_run:
                context.manifests.ensure_first_run()
            return {kind: [] for kind in StoreKind}, True
        return {kind: nodes or [] for kind, nodes in loaded.items()}, False

    def _enumerate(self, context: SyncContext, repair: bool) -> None:
        if self.output.quiet:
            context.bookmarks.enumerate(repair=repair)
            context.favorites.enumerate()
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            task = progress.add_task("Reading Firefox bookmarks...", total=None)
            bookmarks = context.bookmarks.enumerate(repair=repair)
            progress.update(task, description=f"Found {len(bookmarks)} bookmark(s)")

            task = progress.add_task("Reading favorites...", total=None)
            favorites = context.favorites.enumerate()
            progress.update(task, description=f"Found {len(favorites)} favorite(s)")

    def _execute_operations(
        self,
        context: SyncContext,
        operations: list[SyncOperation],
        stats: dict,
    ) -> list[SyncOperation]:
        """Apply operations in plan order.

        An error raised by a store only aborts the operation it occurs in,
        which then stays pending.

        Returns:
            Operations that were not applied (failed, or direction disabled)
        """
        dispatcher = SyncOperations(context.bookmarks, context.favorites)
        pending: list[SyncOperation] = []
        stats.update({"applied": 0, "deferred": 0, "failed": 0})

        def execute(operation: SyncOperation) -> None:
            if SyncOperations.is_skipped(operation):
                return
            if not context.mode.allows(operation.target):
                logger.debug(f"Direction disabled, deferring: {operation}")
                stats["deferred"] += 1
                pending.append(operation)
                return
            try:
                dispatcher.apply(operation)
                stats["applied"] += 1
            except (HierarchyCorruptionError, OSError, sqlite3.Error) as e:
                logger.warning(f"Failed {operation}: {e}")
                if not self.output.quiet:
                    self.output.error(f"Error applying {operation}: {e}")
                stats["failed"] += 1
                pending.append(operation)

        if self.output.quiet or not operations:
            for operation in operations:
                execute(operation)
            return pending

        with Progress() as progress:
            task = progress.add_task("Applying changes...", total=len(operations))
            for operation in operations:
                execute(operation)
                progress.update(task, advance=1)
        return pending

    def _categorize_operations(self, operations: list[SyncOperation]) -> dict:
        """Count planned operations per target store and kind."""
        stats = {
            "adds_to_bookmarks": 0,
            "adds_to_favorites": 0,
            "removes_from_bookmarks": 0,
            "removes_from_favorites": 0,
            "skips": 0,
            "operations": operations,
        }

        for operation in operations:
            if SyncOperations.is_skipped(operation):
                stats["skips"] += 1
            elif operation.kind == OperationKind.ADD:
                stats[f"adds_to_{operation.target.value}"] += 1
            else:
                stats[f"removes_from_{operation.target.value}"] += 1

        return stats

    @staticmethod
    def _repaired_count(context: SyncContext) -> int:
        build = getattr(context.bookmarks, "last_build", None)
        return len(build.repaired) if build is not None else 0

    @staticmethod
    def _corrupted_count(context: SyncContext) -> int:
        build = getattr(context.bookmarks, "last_build", None)
        return len(build.corrupted) if build is not None else 0

    def _display_sync_plan(
        self,
        stats: dict,
        operations: list[SyncOperation],
        dry_run: bool,
    ) -> None:
        """Display sync plan to user."""
        if self.output.quiet:
            return

        if stats["first_run"]:
            self.output.info("No manifests found: this is a first run")
        if stats["corrupted"] > 0:
            self.output.warning(
                f"Bookmarks hierarchy is corrupted: {stats['corrupted']} "
                "entry(ies) ignored"
            )

        self.output.info("Sync plan:")
        if stats["adds_to_bookmarks"] > 0:
            self.output.info(f"  + Add bookmarks: {stats['adds_to_bookmarks']}")
        if stats["adds_to_favorites"] > 0:
            self.output.info(f"  + Add favorites: {stats['adds_to_favorites']}")
        if stats["removes_from_bookmarks"] > 0:
            self.output.info(
                f"  ✗ Remove bookmarks: {stats['removes_from_bookmarks']}"
            )
        if stats["removes_from_favorites"] > 0:
            self.output.info(
                f"  ✗ Remove favorites: {stats['removes_from_favorites']}"
            )
        if stats["skips"] > 0:
            self.output.info(f"  = Skip: {stats['skips']}")

        if dry_run:
            for operation in operations:
                self.output.print(f"    {operation}")

        self.output.print("")

    def _display_summary(self, stats: dict, dry_run: bool) -> None:
        """Display sync summary."""
        self.output.print("")
        if dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Sync complete!")

        if stats["repaired"] > 0:
            self.output.info(f"Repaired bookmark titles: {stats['repaired']}")

        total_actions = (
            stats["adds_to_bookmarks"]
            + stats["adds_to_favorites"]
            + stats["removes_from_bookmarks"]
            + stats["removes_from_favorites"]
        )
        if total_actions == 0:
            self.output.info("No changes needed - everything is in sync!")
        elif not dry_run:
            self.output.info(f"Applied: {stats['applied']} of {total_actions}")
            if stats["deferred"] > 0:
                self.output.info(
                    f"  Deferred (direction disabled): {stats['deferred']}"
                )
            if stats["failed"] > 0:
                self.output.warning(f"  Failed: {stats['failed']}")

        self.output.info(f"Elapsed: {format_duration(stats['elapsed'])}")
