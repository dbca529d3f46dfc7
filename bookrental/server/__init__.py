"""HTTP server for the shared document.

Exposes ``GET /data`` and ``POST /data`` using FastAPI.
"""

from .app import create_app

__all__ = ["create_app"]
