"""
Routes package for the form discovery API.

This package contains the FastAPI routers for:
- sessions: Form session lifecycle, selection, field edits and validation
"""

from .sessions import router as sessions_router

__all__ = [
    "sessions_router",
]
