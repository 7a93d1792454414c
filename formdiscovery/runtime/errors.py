"""Exceptions raised for misuse of a form session.

Lookup failures never surface as exceptions; they are captured as failed
stages and classified into banners. These errors cover programmer mistakes
only.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class FormDiscoveryError(Exception):
    """Base class for form discovery errors."""

    error_code = "form_discovery_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnknownFieldError(FormDiscoveryError):
    """The named field does not exist on the form."""

    error_code = "unknown_field"

    def __init__(self, field_name: str):
        super().__init__(f"Unknown field: {field_name}", {"field": field_name})
        self.field_name = field_name


class SessionClosedError(FormDiscoveryError):
    """The session was closed and accepts no further input."""

    error_code = "session_closed"

    def __init__(self, session_id: Optional[str] = None):
        super().__init__(
            "Session is closed",
            {"session_id": session_id} if session_id else {},
        )
