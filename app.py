"""
App assembly entry point.

Re-exports the FastAPI `app` from `server_registry.api.main` so servers can
be started with ``uvicorn app:app``.
"""

from server_registry.api.main import app  # noqa: F401
