"""Document API server.

Exposes the synced snapshots to the dashboard:
- GET /api/documents: every stored document
- POST /api/documents/complete: set or clear a document's completed flag
- Optional static directory mounted at /

The server only ever writes the ``completed`` field, so it cannot clobber
sync-derived data while a sync runs alongside it.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from pymongo import AsyncMongoClient

from backport_tracker.config import Config
from backport_tracker.core.store import SnapshotStore, StoreError

logger = logging.getLogger(__name__)


class CompleteRequest(BaseModel):
    """Body of a mark-completed request."""

    id: str = Field(description="Issue key of the document")
    completed: bool = False


class CompleteResponse(BaseModel):
    success: bool = True
    modified: int
    completed: bool


def create_app(config: Config, store: SnapshotStore | None = None) -> FastAPI:
    """Build the API application.

    Args:
        config: Loaded configuration.
        store: Store to serve; if None, one is opened from ``config.mongodb``
            for the lifetime of the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if store is not None:
            yield
            return

        mongo: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(config.mongodb.uri)
        app.state.store = SnapshotStore.from_client(
            mongo,
            config.mongodb.database,
            config.mongodb.collection,
            timeout=config.mongodb.timeout,
        )
        try:
            yield
        finally:
            await mongo.close()

    app = FastAPI(title="backport-tracker", lifespan=lifespan)
    if store is not None:
        app.state.store = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"Error decoding request: {exc.errors()}")
        return JSONResponse(status_code=400, content={"detail": "Bad request"})

    @app.get("/api/documents")
    async def get_documents(request: Request) -> list[dict[str, Any]]:
        try:
            return await request.app.state.store.list_documents()
        except StoreError as e:
            logger.error(f"Error finding documents: {e}")
            raise HTTPException(status_code=500, detail="Error retrieving documents") from e

    @app.post("/api/documents/complete", response_model=CompleteResponse)
    async def mark_complete(body: CompleteRequest, request: Request) -> CompleteResponse:
        try:
            modified = await request.app.state.store.mark_completed(body.id, body.completed)
        except StoreError as e:
            logger.error(f"Error updating document: {e}")
            raise HTTPException(status_code=500, detail="Error updating document") from e
        return CompleteResponse(modified=modified, completed=body.completed)

    static_dir = config.server.static_dir
    if static_dir is not None and Path(static_dir).is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="ui")
    elif static_dir is not None:
        logger.info(f"Static directory {static_dir} not found, serving API only")

    return app
