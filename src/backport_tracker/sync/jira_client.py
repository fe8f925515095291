"""Jira REST API v2 client for backport tracking.

This module provides an async HTTP client for the two Jira operations the
tracker needs: fetching an issue with a field selection and running a JQL
search page. Authentication uses a personal access token sent as a bearer
credential; the token falls back to the JIRA_TOKEN environment variable.
Rate limiting is handled below this layer by RetryingTransport.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

import httpx

from backport_tracker.sync.transport import (
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_RETRIES,
    TOO_MANY_REQUESTS,
    RetryingTransport,
    parse_retry_after,
)

logger = logging.getLogger(__name__)

# Jira API constants
API_PREFIX = "/rest/api/2"
DEFAULT_TIMEOUT = 30.0


class JiraClientError(Exception):
    """Base exception for Jira client errors."""


class JiraAuthError(JiraClientError):
    """Authentication with Jira failed."""


class JiraRateLimitError(JiraClientError):
    """Jira kept rate limiting after all retries were spent."""

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after  # Seconds to wait before retry


class JiraNotFoundError(JiraClientError):
    """Requested resource not found."""


@dataclass
class JiraIssue:
    """A Jira issue with the raw fields returned by the API."""

    key: str  # e.g., "OCPBUGS-123"
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> str | None:
        """Workflow status name, if the status field was returned."""
        status = self.fields.get("status")
        if isinstance(status, dict):
            return status.get("name")
        return None

    @property
    def assignee(self) -> str | None:
        """Assignee display name, if the issue is assigned."""
        assignee = self.fields.get("assignee")
        if isinstance(assignee, dict):
            return assignee.get("displayName")
        return None

    @property
    def summary(self) -> str:
        return self.fields.get("summary") or ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> JiraIssue:
        return cls(key=data["key"], fields=data.get("fields") or {})


class JiraClient:
    """Async Jira REST API v2 client.

    Uses a bearer token for authentication. Requests go through a
    RetryingTransport, so a 429 only surfaces here once the retry budget
    is exhausted.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Jira client.

        Args:
            base_url: Jira instance URL (e.g., https://issues.example.com).
            token: Personal access token. If None, reads from JIRA_TOKEN env var.
            timeout: Request timeout in seconds.
            max_retries: Retries allowed for rate-limited requests.
            initial_backoff: First backoff wait in seconds.
            transport: Transport performing the I/O (tests pass a mock).

        Raises:
            JiraAuthError: If no token is provided or found in environment.
        """
        # Normalize base URL (remove trailing slash)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self._transport = transport

        self._token = token or os.getenv("JIRA_TOKEN")
        if not self._token:
            raise JiraAuthError("No Jira token provided. Set JIRA_TOKEN environment variable or pass token parameter.")

        # Never log the token!
        self._headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._token}",
        }

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> JiraClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
            transport=RetryingTransport(
                self._transport,
                max_retries=self.max_retries,
                initial_backoff=self.initial_backoff,
            ),
        )
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("JiraClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make an HTTP request and map failures onto client errors.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: API endpoint (e.g., "/rest/api/2/issue/PROJ-123").
            **kwargs: Additional arguments passed to httpx request.

        Returns:
            httpx.Response object.

        Raises:
            JiraAuthError: If authentication fails.
            JiraRateLimitError: If still rate limited after transport retries.
            JiraNotFoundError: If resource is not found.
            JiraClientError: For other API and transport errors.
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise JiraClientError(f"HTTP error on {method} {endpoint}: {e}") from e

        if response.status_code == TOO_MANY_REQUESTS:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            raise JiraRateLimitError(
                f"Jira API rate limit exceeded after {self.max_retries} retries",
                retry_after=retry_after,
            )

        if response.status_code == 401:
            raise JiraAuthError("Jira authentication failed. Check your token.")
        if response.status_code == 403:
            raise JiraAuthError("Jira access forbidden. Check token permissions.")

        if response.status_code == 404:
            raise JiraNotFoundError(f"Resource not found: {endpoint}")

        if response.status_code >= 400:
            error_body = response.text
            logger.error(f"Jira API error {response.status_code}: {error_body}")
            raise JiraClientError(f"Jira API error {response.status_code}: {error_body[:200]}")

        return response

    # =========================================================================
    # Issue Operations
    # =========================================================================

    async def get_issue(self, issue_key: str, fields: list[str]) -> JiraIssue:
        """Get a single issue by key.

        Args:
            issue_key: The issue key (e.g., "PROJ-123").
            fields: Field ids to return; keeps the payload small.

        Returns:
            JiraIssue object.
        """
        endpoint = f"{API_PREFIX}/issue/{issue_key}"
        response = await self._request("GET", endpoint, params={"fields": ",".join(fields)})
        try:
            return JiraIssue.from_api(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise JiraClientError(f"Invalid issue payload for {issue_key}: {e}") from e

    async def search(
        self,
        jql: str,
        fields: list[str],
        max_results: int,
        start_at: int = 0,
    ) -> list[JiraIssue]:
        """Run one page of a JQL search.

        Args:
            jql: JQL query string.
            fields: Field ids to return for each issue.
            max_results: Page size.
            start_at: Offset of the first result.

        Returns:
            Issues in the order Jira returned them.
        """
        params: dict[str, Any] = {
            "jql": jql,
            "fields": ",".join(fields),
            "maxResults": max_results,
            "startAt": start_at,
        }
        response = await self._request("GET", f"{API_PREFIX}/search", params=params)
        try:
            data = response.json()
            issues = [JiraIssue.from_api(item) for item in data.get("issues", [])]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise JiraClientError(f"Invalid search payload at {start_at}: {e}") from e
        logger.debug(f"JQL page at {start_at} returned {len(issues)} issue(s)")
        return issues
