"""Clone chain resolution.

Walks "is cloned by" links from a root issue to build a nested
IssueSnapshot of the issue and its backports. At every level only the
newest clone is followed, and recursion stops at a fixed depth. Clone links
may form cycles; the depth bound is the only guard against them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from backport_tracker.core.fields import extract_field_names
from backport_tracker.core.models import IssueSnapshot
from backport_tracker.sync.jira_client import JiraClientError

if TYPE_CHECKING:
    from backport_tracker.sync.jira_client import JiraClient

logger = logging.getLogger(__name__)

MAX_RECURSION_DEPTH = 6
DEFAULT_TARGET_VERSION_FIELD = "customfield_12319940"
DEFAULT_BACKPORT_VERSIONS_FIELD = "customfield_12323940"

CLONE_LINK_JQL = 'issue in linkedIssues("{key}", "is cloned by") ORDER BY created DESC'


class IssueResolutionError(Exception):
    """Fetching an issue or searching for its clone failed."""

    def __init__(self, message: str, issue_key: str) -> None:
        super().__init__(message)
        self.issue_key = issue_key


class CloneChainResolver:
    """Builds IssueSnapshots by following clone links.

    Attributes:
        client: Jira client used for fetches and link searches.
        target_version_field: Custom field id of "Target Version".
        backport_versions_field: Custom field id of "Target Backport Versions".
        max_depth: Deepest level that is still fetched (root is 0).
    """

    def __init__(
        self,
        client: JiraClient,
        target_version_field: str = DEFAULT_TARGET_VERSION_FIELD,
        backport_versions_field: str = DEFAULT_BACKPORT_VERSIONS_FIELD,
        max_depth: int = MAX_RECURSION_DEPTH,
    ) -> None:
        self.client = client
        self.target_version_field = target_version_field
        self.backport_versions_field = backport_versions_field
        self.max_depth = max_depth

    def fields_for_depth(self, depth: int) -> list[str]:
        """Fields to request at a given depth.

        Summary, assignee and backport versions are only shown for the root,
        so deeper levels skip them.
        """
        if depth == 0:
            return [
                "summary",
                "status",
                "assignee",
                self.target_version_field,
                self.backport_versions_field,
            ]
        return ["status", self.target_version_field]

    async def resolve(self, issue_key: str, depth: int = 0) -> IssueSnapshot | None:
        """Resolve an issue and its clone chain.

        Args:
            issue_key: Key of the issue to fetch.
            depth: Level of this issue in the chain (0 for the root).

        Returns:
            The snapshot, or None if depth is past the bound.

        Raises:
            IssueResolutionError: If a fetch or link search fails at any level.
        """
        if depth > self.max_depth:
            logger.info(f"Max recursion depth reached for issue {issue_key}")
            return None

        try:
            issue = await self.client.get_issue(issue_key, self.fields_for_depth(depth))
        except JiraClientError as e:
            raise IssueResolutionError(f"Error getting issue {issue_key}: {e}", issue_key) from e

        snapshot = IssueSnapshot(
            id=issue.key,
            status=issue.status,
            target_version=extract_field_names(issue.fields.get(self.target_version_field)),
        )
        if depth == 0:
            snapshot.assignee = issue.assignee
            snapshot.summary = issue.summary
            snapshot.target_backport_versions = extract_field_names(issue.fields.get(self.backport_versions_field))

        try:
            clones = await self.client.search(
                CLONE_LINK_JQL.format(key=issue.key),
                fields=["status"],
                max_results=1,
            )
        except JiraClientError as e:
            raise IssueResolutionError(f"Error searching for clones of {issue.key}: {e}", issue.key) from e

        if clones:
            clone_key = clones[0].key
            logger.debug(f"{issue.key} is cloned by {clone_key} (depth {depth + 1})")
            snapshot.clone = await self.resolve(clone_key, depth + 1)

        return snapshot
