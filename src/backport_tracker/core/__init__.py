"""Core snapshot, resolution and sync logic."""

from backport_tracker.core.fields import extract_field_names
from backport_tracker.core.models import IssueSnapshot
from backport_tracker.core.resolver import MAX_RECURSION_DEPTH, CloneChainResolver, IssueResolutionError
from backport_tracker.core.store import SnapshotStore, StoreError
from backport_tracker.core.synchronizer import IssueSynchronizer, SyncError, SyncStats

__all__ = [
    "MAX_RECURSION_DEPTH",
    "CloneChainResolver",
    "IssueResolutionError",
    "IssueSnapshot",
    "IssueSynchronizer",
    "SnapshotStore",
    "StoreError",
    "SyncError",
    "SyncStats",
    "extract_field_names",
]
