"""Shared fakes for Jira and MongoDB."""

from __future__ import annotations

import copy
import re
from types import SimpleNamespace
from typing import Any

import pytest

from backport_tracker.sync.jira_client import JiraClientError, JiraIssue, JiraNotFoundError

CLONE_JQL_PATTERN = re.compile(r'linkedIssues\("([^"]+)", "is cloned by"\)')

TARGET_FIELD = "customfield_12319940"
BACKPORT_FIELD = "customfield_12323940"


def make_fields(
    status: str = "New",
    versions: list[str] | None = None,
    backports: list[str] | None = None,
    summary: str = "",
    assignee: str | None = None,
) -> dict[str, Any]:
    """Build a Jira fields payload the way the REST API returns it."""
    fields: dict[str, Any] = {
        "status": {"name": status},
        "summary": summary,
        "assignee": {"displayName": assignee} if assignee else None,
        TARGET_FIELD: [{"id": str(i), "name": v} for i, v in enumerate(versions or [])],
        BACKPORT_FIELD: [{"id": str(i), "name": v} for i, v in enumerate(backports or [])],
    }
    return fields


class FakeJira:
    """In-memory stand-in for JiraClient.

    ``issues`` maps keys to field payloads, ``clones`` maps a key to the key
    of the issue that clones it, ``tracked`` is what the tracking query matches.
    """

    def __init__(
        self,
        issues: dict[str, dict[str, Any]] | None = None,
        clones: dict[str, str] | None = None,
        tracked: list[str] | None = None,
    ) -> None:
        self.issues = issues or {}
        self.clones = clones or {}
        self.tracked = tracked or []
        self.failing_gets: set[str] = set()
        self.failing_clone_searches: set[str] = set()
        self.fail_tracking_search = False
        self.get_calls: list[tuple[str, list[str]]] = []
        self.search_calls: list[dict[str, Any]] = []

    async def get_issue(self, issue_key: str, fields: list[str]) -> JiraIssue:
        self.get_calls.append((issue_key, list(fields)))
        if issue_key in self.failing_gets:
            raise JiraClientError(f"Jira API error 500: {issue_key}")
        if issue_key not in self.issues:
            raise JiraNotFoundError(f"Resource not found: {issue_key}")
        wanted = {name: value for name, value in self.issues[issue_key].items() if name in fields}
        return JiraIssue(key=issue_key, fields=wanted)

    async def search(self, jql: str, fields: list[str], max_results: int, start_at: int = 0) -> list[JiraIssue]:
        self.search_calls.append({"jql": jql, "fields": list(fields), "max_results": max_results, "start_at": start_at})
        match = CLONE_JQL_PATTERN.search(jql)
        if match:
            key = match.group(1)
            if key in self.failing_clone_searches:
                raise JiraClientError(f"Jira API error 400: bad JQL for {key}")
            clone = self.clones.get(key)
            return [JiraIssue(key=clone, fields={"status": {"name": "New"}})] if clone else []

        if self.fail_tracking_search:
            raise JiraClientError("Jira API error 503: unavailable")
        page = self.tracked[start_at : start_at + max_results]
        return [JiraIssue(key=key, fields={"status": {"name": "New"}}) for key in page]

    @property
    def tracking_searches(self) -> list[dict[str, Any]]:
        return [call for call in self.search_calls if not CLONE_JQL_PATTERN.search(call["jql"])]


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self.documents = documents

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return self.documents if length is None else self.documents[:length]


class FakeCollection:
    """Tiny in-memory collection supporting the operators the store uses."""

    def __init__(self, documents: list[dict[str, Any]] | None = None) -> None:
        self.documents: dict[str, dict[str, Any]] = {doc["_id"]: copy.deepcopy(doc) for doc in documents or []}

    async def update_one(self, filter: dict[str, Any], update: dict[str, Any], upsert: bool = False) -> SimpleNamespace:
        doc_id = filter["_id"]
        document = self.documents.get(doc_id)
        if document is None:
            if not upsert:
                return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
            document = {"_id": doc_id}
            self.documents[doc_id] = document
            matched = 0
        else:
            matched = 1

        before = copy.deepcopy(document)
        document.update(copy.deepcopy(update.get("$set", {})))
        for name in update.get("$unset", {}):
            document.pop(name, None)
        modified = int(matched == 1 and document != before)
        return SimpleNamespace(matched_count=matched, modified_count=modified, upserted_id=None if matched else doc_id)

    async def delete_many(self, filter: dict[str, Any]) -> SimpleNamespace:
        keep = set(filter["_id"]["$nin"])
        stale = [doc_id for doc_id in self.documents if doc_id not in keep]
        for doc_id in stale:
            del self.documents[doc_id]
        return SimpleNamespace(deleted_count=len(stale))

    def find(self, filter: dict[str, Any]) -> FakeCursor:
        return FakeCursor([copy.deepcopy(doc) for doc in self.documents.values()])


@pytest.fixture
def fake_collection() -> FakeCollection:
    return FakeCollection()
