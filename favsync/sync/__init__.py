"""Sync engine for favsync - manifest diffing and conversion of entries."""

from .comparator import (
    CongruenceIndex,
    CongruenceMatcher,
    ManifestComparator,
    OperationKind,
    SyncOperation,
)
from .engine import SyncContext, SyncEngine
from .modes import SyncMode
from .operations import SyncOperations
from .state import ManifestStore

__all__ = [
    "SyncEngine",
    "SyncContext",
    "SyncMode",
    "SyncOperation",
    "SyncOperations",
    "OperationKind",
    "CongruenceMatcher",
    "CongruenceIndex",
    "ManifestComparator",
    "ManifestStore",
]
