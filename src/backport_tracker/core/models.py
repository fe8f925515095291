"""Core data models for the backport tracker."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Fields written by sync; anything else on a stored document (e.g. "completed")
# belongs to the document API and must survive a re-sync.
SYNC_FIELDS = (
    "status",
    "target_version",
    "assignee",
    "summary",
    "target_backport_versions",
    "clone",
)


class IssueSnapshot(BaseModel):
    """An issue and the chain of issues cloned from it.

    Only the root of a chain (depth 0) carries assignee, summary and
    target_backport_versions. ``clone`` holds the next issue in the chain.
    """

    id: str = Field(description="Jira issue key")
    status: str | None = None
    target_version: str = ""
    assignee: str | None = None
    summary: str | None = None
    target_backport_versions: str | None = None
    clone: IssueSnapshot | None = None

    def to_document(self) -> dict[str, Any]:
        """Render the snapshot as a MongoDB document, keyed by ``_id``."""
        document: dict[str, Any] = {"_id": self.id}
        for name in SYNC_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            document[name] = value.to_document() if isinstance(value, IssueSnapshot) else value
        return document

    def chain_depth(self) -> int:
        """Number of clone levels below this snapshot."""
        depth = 0
        node = self.clone
        while node is not None:
            depth += 1
            node = node.clone
        return depth
