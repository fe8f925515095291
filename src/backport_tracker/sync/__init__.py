"""Jira API access for issue synchronization."""

from backport_tracker.sync.jira_client import (
    JiraAuthError,
    JiraClient,
    JiraClientError,
    JiraIssue,
    JiraNotFoundError,
    JiraRateLimitError,
)
from backport_tracker.sync.transport import RetryingTransport

__all__ = [
    "JiraAuthError",
    "JiraClient",
    "JiraClientError",
    "JiraIssue",
    "JiraNotFoundError",
    "JiraRateLimitError",
    "RetryingTransport",
]
