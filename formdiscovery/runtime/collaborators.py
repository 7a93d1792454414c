"""
collaborators.py - Interfaces consumed by discovery pipelines.

The resource-management client, the function host APIs and the permission
service live outside this package. Pipelines only talk to them through the
abstract base classes below, so tests and hosts can plug in any transport.

Collaborators either return an ApiResponse (success or failure payload) or
raise. Both are captured at the stage boundary by the pipeline.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

# RBAC scope required to create resources from the function form
WRITE_SCOPE = "./write"


@dataclass(frozen=True)
class ApiResponse:
    """Envelope returned by collaborator calls.

    Attributes:
        data: Response body on success.
        success: Whether the call succeeded.
        error: Error payload on failure (string, dict or anything JSON-able).
    """

    data: Any = None
    success: bool = True
    error: Any = None

    @classmethod
    def ok(cls, data: Any) -> "ApiResponse":
        return cls(data=data, success=True)

    @classmethod
    def failure(cls, error: Any = None, data: Any = None) -> "ApiResponse":
        return cls(data=data, success=False, error=error)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ApiResponse":
        """Parse the ``{data, metadata: {success, error}}`` wire shape."""
        metadata = payload.get("metadata") or {}
        return cls(
            data=payload.get("data"),
            success=bool(metadata.get("success", False)),
            error=metadata.get("error"),
        )


def error_message_or_stringify(error: Any, depth: int = 3) -> str:
    """Render a collaborator error payload as display text.

    Looks for a ``message``/``Message`` field, descending through nested
    ``error`` objects, and falls back to the JSON text of the payload.
    """
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    if isinstance(error, BaseException):
        return str(error) or error.__class__.__name__
    if isinstance(error, dict) and depth > 0:
        for key in ("message", "Message"):
            if isinstance(error.get(key), str) and error[key]:
                return error[key]
        nested = error.get("error") or error.get("Error")
        if nested is not None:
            return error_message_or_stringify(nested, depth - 1)
    try:
        return json.dumps(error, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return str(error)


# =============================================================================
# Storage collaborators
# =============================================================================


class CredentialLookup(ABC):
    """Lists the access keys of a storage account."""

    @abstractmethod
    async def list_keys(self, account_id: str) -> ApiResponse:
        """Return ``{"keys": [{"value": ...}, ...]}`` in ``data``."""
        ...


class CapabilityFetch(ABC):
    """Enumerates the containers and file shares of a storage account."""

    @abstractmethod
    async def get_containers(self, account_name: str, payload: Dict[str, str]) -> ApiResponse:
        """Return a list of ``{"name": ...}`` items in ``data``."""
        ...

    @abstractmethod
    async def get_file_shares(self, account_name: str, payload: Dict[str, str]) -> ApiResponse:
        """Return a list of ``{"name": ...}`` items in ``data``."""
        ...


# =============================================================================
# Function collaborators
# =============================================================================


class BindingLookup(ABC):
    """Fetches binding definitions from the function host."""

    @abstractmethod
    async def get_binding(self, resource_id: str, binding_id: str) -> ApiResponse:
        """Return ``{"properties": [BindingDefinition dict, ...]}`` in ``data``."""
        ...


class FunctionInventoryLookup(ABC):
    """Lists the functions that already exist in an app."""

    @abstractmethod
    async def get_functions(self, resource_id: str) -> ApiResponse:
        """Return ``{"value": [FunctionRecord dict, ...]}`` in ``data``."""
        ...


class PermissionCheck(ABC):
    """Answers RBAC questions for the signed-in identity."""

    @abstractmethod
    async def has_permission(self, scope_id: str, required_scopes: List[str]) -> bool:
        ...


def resource_group_scope(resource_id: str) -> str:
    """Resource-group level scope of a resource id."""
    return resource_id.split("/providers")[0]


def subscription_scope(resource_id: str) -> str:
    """Subscription level scope of a resource id."""
    return resource_group_scope(resource_id).split("/resourceGroups")[0]


def first_key_value(data: Optional[Dict[str, Any]]) -> Optional[str]:
    """Extract the first access key from a list-keys payload."""
    keys = (data or {}).get("keys") or []
    if not keys:
        return None
    value = keys[0].get("value") if isinstance(keys[0], dict) else None
    return value or None
