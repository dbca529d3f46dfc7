"""FastAPI application serving the shared document."""

import asyncio
import logging
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..config import Config
from ..storage import JsonFileStore, StorageError

logger = logging.getLogger(__name__)


def create_app(config: Config, store: JsonFileStore | None = None) -> FastAPI:
    """Create the FastAPI document server.

    Args:
        config: Application configuration.
        store: Optional store; defaults to the file at ``config.server.data_path``.

    Returns:
        Configured FastAPI application.
    """
    if store is None:
        store = JsonFileStore(config.server.data_path, config.collections)

    app = FastAPI(
        title="Bookrental Data Server",
        description="Single-document JSON store for the book rental app",
        version="0.1.0",
    )

    # Store references for route handlers
    app.state.config = config
    app.state.store = store

    # ==================== Document Routes ====================

    @app.get("/data")
    async def read_document():
        """Return the whole document, or the empty default."""
        return await asyncio.to_thread(store.read)

    @app.post("/data")
    async def write_document(request: Request) -> JSONResponse:
        """Replace the whole document with the request body."""
        try:
            body = await request.json()
        except ValueError as e:
            logger.warning(f"Rejected write with invalid JSON body: {e}")
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

        try:
            await asyncio.to_thread(store.write, body)
        except StorageError as e:
            logger.error(f"Save failed: {e}")
            return JSONResponse({"error": "Save Failed"}, status_code=500)

        return JSONResponse({"success": True})

    # ==================== API Routes ====================

    @app.get("/api/stats")
    async def api_stats() -> dict[str, Any]:
        """Get per-collection record counts."""
        stats = await asyncio.to_thread(store.get_stats)
        stats["timestamp"] = datetime.now().isoformat()
        return stats

    @app.get("/api/health")
    async def api_health() -> dict[str, Any]:
        """Health check endpoint for monitoring and load balancers.

        Always returns 200 OK, even before the first document is written.
        """
        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "data_path": str(store.path),
            "document_exists": store.exists(),
        }

    return app
