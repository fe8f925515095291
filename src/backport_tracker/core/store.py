"""Snapshot persistence in MongoDB."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import pymongo
from pymongo.errors import PyMongoError

from backport_tracker.core.models import SYNC_FIELDS

if TYPE_CHECKING:
    from pymongo import AsyncMongoClient
    from pymongo.asynchronous.collection import AsyncCollection

    from backport_tracker.core.models import IssueSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds


class StoreError(Exception):
    """A MongoDB operation failed."""


class SnapshotStore:
    """Reads and writes issue snapshots in one MongoDB collection.

    Sync writes are field-level merges (``$set``/``$unset`` on sync-derived
    fields only), so fields owned by the document API such as ``completed``
    are left alone. Every operation runs under ``pymongo.timeout``.
    """

    def __init__(self, collection: AsyncCollection[dict[str, Any]], timeout: float = DEFAULT_TIMEOUT) -> None:
        self.collection = collection
        self.timeout = timeout

    @classmethod
    def from_client(
        cls,
        client: AsyncMongoClient[dict[str, Any]],
        database: str,
        collection: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> SnapshotStore:
        return cls(client[database][collection], timeout=timeout)

    async def upsert(self, snapshot: IssueSnapshot) -> None:
        """Insert the snapshot, or merge its fields into the stored document.

        Sync-derived fields the snapshot no longer carries (an unassigned
        issue, a dropped clone) are unset.
        """
        document = snapshot.to_document()
        issue_id = document.pop("_id")
        update: dict[str, Any] = {"$set": document}
        stale = {name: "" for name in SYNC_FIELDS if name not in document}
        if stale:
            update["$unset"] = stale

        try:
            with pymongo.timeout(self.timeout):
                await self.collection.update_one({"_id": issue_id}, update, upsert=True)
        except PyMongoError as e:
            raise StoreError(f"Error upserting issue {issue_id}: {e}") from e

    async def delete_stale(self, keep_ids: Iterable[str]) -> int:
        """Delete every document whose id is not in ``keep_ids``.

        Returns:
            Number of documents deleted.
        """
        keep = sorted(set(keep_ids))
        try:
            with pymongo.timeout(self.timeout):
                result = await self.collection.delete_many({"_id": {"$nin": keep}})
        except PyMongoError as e:
            raise StoreError(f"Error removing stale documents: {e}") from e
        return result.deleted_count

    async def list_documents(self) -> list[dict[str, Any]]:
        try:
            with pymongo.timeout(self.timeout):
                return await self.collection.find({}).to_list(None)
        except PyMongoError as e:
            raise StoreError(f"Error finding documents: {e}") from e

    async def mark_completed(self, issue_id: str, completed: bool) -> int:
        """Set the ``completed`` flag on an existing document.

        Returns:
            Number of documents modified (0 if the id is unknown or unchanged).
        """
        try:
            with pymongo.timeout(self.timeout):
                result = await self.collection.update_one({"_id": issue_id}, {"$set": {"completed": completed}})
        except PyMongoError as e:
            raise StoreError(f"Error updating document {issue_id}: {e}") from e
        logger.info(f"Marked {issue_id} completed={completed} (modified {result.modified_count})")
        return result.modified_count
