"""Jira-to-MongoDB synchronization.

This module runs one sync pass: it pages through the tracking query,
resolves each matched issue's clone chain, merges the snapshot into the
store and finally deletes every stored document the pass did not touch.

Failure handling:
- Per-issue fetch/search/upsert failures are logged and skipped
- A failing search page or the final stale-document delete aborts the run
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from backport_tracker.config import SyncConfig
from backport_tracker.core.resolver import CloneChainResolver, IssueResolutionError
from backport_tracker.core.store import StoreError
from backport_tracker.sync.jira_client import JiraClientError

if TYPE_CHECKING:
    from backport_tracker.core.store import SnapshotStore
    from backport_tracker.sync.jira_client import JiraClient

logger = logging.getLogger(__name__)

# Listing only needs keys; the resolver fetches full data per issue
PAGE_FIELDS = ["status"]


class SyncError(Exception):
    """A sync run failed and was aborted."""


@dataclass
class SyncStats:
    """Statistics for one sync run."""

    issues_seen: int = 0
    issues_upserted: int = 0
    issues_failed: int = 0
    stale_removed: int = 0
    upserted_ids: set[str] = field(default_factory=set)


class IssueSynchronizer:
    """Mirrors the issues matched by the tracking query into the store.

    Handles:
    - Offset pagination over the tracking query
    - Clone chain resolution per matched issue
    - Field-merge upserts keyed by issue key
    - Removal of documents for issues no longer matched
    """

    def __init__(
        self,
        client: JiraClient,
        store: SnapshotStore,
        config: SyncConfig | None = None,
        resolver: CloneChainResolver | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            client: Jira client, already entered as a context manager.
            store: Snapshot store to write into.
            config: Query and traversal settings.
            resolver: Clone chain resolver; built from config if omitted.
        """
        self.client = client
        self.store = store
        self.config = config or SyncConfig()
        self.resolver = resolver or CloneChainResolver(
            client,
            target_version_field=self.config.target_version_field,
            backport_versions_field=self.config.backport_versions_field,
            max_depth=self.config.max_depth,
        )

    async def sync(self) -> SyncStats:
        """Run one full sync pass.

        Returns:
            Statistics for the run.

        Raises:
            SyncError: If a search page or the stale-document delete fails.
        """
        stats = SyncStats()
        start_at = 0

        while True:
            try:
                issues = await self.client.search(
                    self.config.jql,
                    fields=PAGE_FIELDS,
                    max_results=self.config.page_size,
                    start_at=start_at,
                )
            except JiraClientError as e:
                raise SyncError(f"Error searching Jira issues: {e}") from e

            for issue in issues:
                stats.issues_seen += 1
                await self._sync_issue(issue.key, stats)

            if len(issues) < self.config.page_size:
                break
            start_at += len(issues)

        try:
            stats.stale_removed = await self.store.delete_stale(stats.upserted_ids)
        except StoreError as e:
            raise SyncError(str(e)) from e

        logger.info(f"Removed {stats.stale_removed} stale documents")
        logger.info(f"Sync finished: {stats.issues_upserted}/{stats.issues_seen} issue(s) upserted, {stats.issues_failed} failed")
        return stats

    async def _sync_issue(self, issue_key: str, stats: SyncStats) -> None:
        """Resolve and store a single issue, recording the outcome in stats."""
        try:
            snapshot = await self.resolver.resolve(issue_key, 0)
        except IssueResolutionError as e:
            logger.warning(f"Error storing issue {issue_key}: {e}")
            stats.issues_failed += 1
            return

        if snapshot is None:
            logger.warning(f"No snapshot produced for issue {issue_key}")
            stats.issues_failed += 1
            return

        try:
            await self.store.upsert(snapshot)
        except StoreError as e:
            logger.warning(f"Error upserting issue {issue_key}: {e}")
            stats.issues_failed += 1
            return

        logger.info(f"Upserted issue {issue_key}")
        logger.debug(f"Issue {issue_key} stored with {snapshot.chain_depth()} clone level(s)")
        stats.issues_upserted += 1
        stats.upserted_ids.add(issue_key)
