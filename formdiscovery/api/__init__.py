"""
Form discovery API - FastAPI REST API over form sessions.

Endpoints (from routes/sessions.py):
    POST   /api/sessions                        - Open a session (storage | function)
    GET    /api/sessions/{id}                   - Get session snapshot
    PUT    /api/sessions/{id}/selection         - Change selection, wait for discovery
    PATCH  /api/sessions/{id}/fields/{name}     - Edit a field
    POST   /api/sessions/{id}/validate/{name}   - Validate a field value
    DELETE /api/sessions/{id}                   - Close a session

Health:
    GET    /api/health                          - Health check
"""

from .registry import FunctionBackend, SessionRegistry, StorageBackend
from .routes import sessions_router
from .server import create_app

__all__ = [
    "create_app",
    "SessionRegistry",
    "StorageBackend",
    "FunctionBackend",
    "sessions_router",
]
