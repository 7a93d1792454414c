"""
FastAPI REST API server for form discovery sessions.

Exposes storage mount and function creation form sessions to a frontend.
Discovery backends are supplied by the host through a SessionRegistry.

Usage:
    # Run standalone with a registry factory ("module:callable")
    python -m formdiscovery.api.server --registry myhost.wiring:build_registry

    # Or via factory
    from formdiscovery.api import create_app, SessionRegistry
    app = create_app(SessionRegistry(storage=..., functions=...))
    uvicorn.run(app, port=5002)

API Structure:
    /api/sessions/  - Form session endpoints (from routes/sessions.py)
    /api/health     - Health check
"""

from __future__ import annotations

import importlib
import logging
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .registry import SessionRegistry
from .routes import sessions_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    status: str
    sessions: int
    kinds: List[str]


def create_app(
    registry: Optional[SessionRegistry] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        registry: Session registry holding the discovery backends. An empty
            registry (no session kinds available) when omitted.
        enable_cors: Whether to enable CORS middleware.

    Returns:
        Configured FastAPI application.
    """
    registry = registry if registry is not None else SessionRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Close every open session on shutdown."""
        logger.info("Form discovery API starting...")
        yield
        logger.info(
            "Form discovery API shutting down, closing %d session(s)",
            len(registry.session_ids()),
        )
        registry.close_all()

    app = FastAPI(
        title="Form Discovery API",
        description="Selection-triggered discovery and form state for storage mount and function creation forms.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.registry = registry

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    app.include_router(sessions_router, prefix="/api")

    @app.get("/api/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        """Health check endpoint."""
        reg: SessionRegistry = request.app.state.registry
        kinds = []
        if reg.storage is not None:
            kinds.append("storage")
        if reg.functions is not None:
            kinds.append("function")
        return HealthResponse(status="ok", sessions=len(reg.session_ids()), kinds=kinds)

    return app


def _load_registry(target: str) -> SessionRegistry:
    """Import ``module:callable`` and call it to build the registry."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Registry factory must look like 'module:callable', got '{target}'")
    factory: Callable[[], SessionRegistry] = getattr(importlib.import_module(module_name), attr)
    return factory()


def main():
    """Run the API server."""
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="Form Discovery API Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5002, help="Port to bind to")
    parser.add_argument(
        "--registry",
        default=None,
        help="Registry factory as module:callable returning a SessionRegistry",
    )
    parser.add_argument("--no-cors", action="store_true", help="Disable CORS")
    args = parser.parse_args()

    registry = _load_registry(args.registry) if args.registry else None
    if registry is None:
        logger.warning("No registry factory given, no session kinds will be available")
    app = create_app(registry, enable_cors=not args.no_cors)

    print(f"Starting Form Discovery API server at http://{args.host}:{args.port}")
    print("    POST   /api/sessions                      - Open a session")
    print("    GET    /api/sessions/{id}                 - Get session snapshot")
    print("    PUT    /api/sessions/{id}/selection       - Change selection")
    print("    PATCH  /api/sessions/{id}/fields/{name}   - Edit a field")
    print("    POST   /api/sessions/{id}/validate/{name} - Validate a field value")
    print("    DELETE /api/sessions/{id}                 - Close a session")
    print("    GET    /api/health                        - Health check")

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
