"""
Session endpoints for the form discovery API.

Provides REST endpoints for:
- Session lifecycle (POST/GET/DELETE /api/sessions[/{id}])
- Selection changes (PUT /api/sessions/{id}/selection)
- Field edits and validation (PATCH /api/sessions/{id}/fields/{name},
  POST /api/sessions/{id}/validate/{name})
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from formdiscovery.config.scenarios import SiteDescriptor
from formdiscovery.runtime import (
    FormDiscoveryError,
    FormSession,
    SessionClosedError,
    UnknownFieldError,
)
from formdiscovery.runtime.projector import FunctionFormProjector
from formdiscovery.runtime.types import discovery_result_to_dict, form_snapshot_to_dict

from ..registry import SESSION_KINDS, SessionRegistry, UnsupportedSessionKindError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# =============================================================================
# Pydantic Models
# =============================================================================


class CreateSessionRequest(BaseModel):
    """Request for POST /api/sessions."""

    kind: str = Field(description="Session kind: storage or function")
    site_resource_id: Optional[str] = Field(
        default=None, description="Resource id of the site the form is opened for"
    )
    site_kind: Optional[str] = Field(
        default=None, description="Site kind used to resolve scenario toggles (e.g. app,linux)"
    )

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        """Validate that kind is a known session kind."""
        if v not in SESSION_KINDS:
            raise ValueError(f"kind must be one of {list(SESSION_KINDS)}, got '{v}'")
        return v


class SelectionRequest(BaseModel):
    """Request for PUT /api/sessions/{id}/selection."""

    key: Optional[str] = None


class FieldEditRequest(BaseModel):
    """Request for PATCH /api/sessions/{id}/fields/{name}."""

    value: Any = None


class ValidateRequest(BaseModel):
    """Request for POST /api/sessions/{id}/validate/{name}.

    Validates the field's current value when ``value`` is omitted.
    """

    value: Any = None


class SessionResponse(BaseModel):
    """Session state returned by every session endpoint."""

    session_id: str
    kind: str
    snapshot: Dict[str, Any]
    discovery: Optional[Dict[str, Any]] = None
    generated_fields: List[Dict[str, Any]] = Field(default_factory=list)


class ValidateResponse(BaseModel):
    """Response for POST /api/sessions/{id}/validate/{name}."""

    field: str
    valid: bool
    error: Optional[str] = None


class CloseResponse(BaseModel):
    """Response for DELETE /api/sessions/{id}."""

    session_id: str
    closed: bool


# =============================================================================
# Helpers
# =============================================================================


def _registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def _raise(status_code: int, error: FormDiscoveryError) -> NoReturn:
    raise HTTPException(
        status_code=status_code,
        detail={
            "error": error.error_code,
            "message": error.message,
            "details": error.details,
        },
    )


def _session_not_found(session_id: str) -> NoReturn:
    raise HTTPException(
        status_code=404,
        detail={
            "error": "session_not_found",
            "message": f"Session '{session_id}' not found",
            "details": {"session_id": session_id},
        },
    )


def _get_session(request: Request, session_id: str) -> FormSession:
    session = _registry(request).get(session_id)
    if session is None:
        _session_not_found(session_id)
    return session


def _session_response(session: FormSession) -> SessionResponse:
    projector = session.projector
    generated: List[Dict[str, Any]] = []
    if isinstance(projector, FunctionFormProjector):
        generated = [
            {
                "name": d.name,
                "kind": d.kind.value,
                "label": d.label,
                "required": d.required,
                "binding_id": d.binding_id,
                "resource": d.resource,
                "allow_create": d.allow_create,
                "help": d.help,
            }
            for d in projector.descriptors()
        ]
    last = session.last_result
    return SessionResponse(
        session_id=session.session_id,
        kind=session.kind,
        snapshot=form_snapshot_to_dict(session.snapshot()),
        discovery=discovery_result_to_dict(last) if last is not None else None,
        generated_fields=generated,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(body: CreateSessionRequest, request: Request) -> SessionResponse:
    """Open a new form session.

    Raises:
        HTTPException 400: If no backend is registered for the kind.
    """
    site = None
    if body.site_resource_id or body.site_kind:
        site = SiteDescriptor(
            resource_id=body.site_resource_id or "", kind=body.site_kind or "app"
        )
    try:
        session = _registry(request).create(body.kind, site)
    except UnsupportedSessionKindError as e:
        _raise(400, e)
    return _session_response(session)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, request: Request) -> SessionResponse:
    """Current snapshot of a session."""
    return _session_response(_get_session(request, session_id))


@router.put("/{session_id}/selection", response_model=SessionResponse)
async def put_selection(
    session_id: str, body: SelectionRequest, request: Request
) -> SessionResponse:
    """Change the selection and wait for its discovery to settle."""
    session = _get_session(request, session_id)
    try:
        session.select(body.key or None)
    except SessionClosedError as e:
        _raise(409, e)
    await session.settle()
    return _session_response(session)


@router.patch("/{session_id}/fields/{field_name}", response_model=SessionResponse)
async def patch_field(
    session_id: str, field_name: str, body: FieldEditRequest, request: Request
) -> SessionResponse:
    """Apply a user edit to one field.

    Editing the selection field starts discovery and waits for it to settle.
    """
    session = _get_session(request, session_id)
    try:
        session.edit(field_name, body.value)
    except UnknownFieldError as e:
        _raise(404, e)
    except SessionClosedError as e:
        _raise(409, e)
    if field_name == session.projector.selection_field:
        await session.settle()
    return _session_response(session)


@router.post("/{session_id}/validate/{field_name}", response_model=ValidateResponse)
async def validate_field(
    session_id: str, field_name: str, body: ValidateRequest, request: Request
) -> ValidateResponse:
    """Validate a candidate value against the current form state."""
    session = _get_session(request, session_id)
    try:
        error = session.validate(field_name, body.value)
    except UnknownFieldError as e:
        _raise(404, e)
    return ValidateResponse(field=field_name, valid=error is None, error=error)


@router.delete("/{session_id}", response_model=CloseResponse)
async def delete_session(session_id: str, request: Request) -> CloseResponse:
    """Close a session and discard its outstanding discovery."""
    session = _registry(request).remove(session_id)
    if session is None:
        _session_not_found(session_id)
    return CloseResponse(session_id=session_id, closed=True)
