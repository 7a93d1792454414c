"""
registry.py - Open form sessions of the API process.

The registry holds the collaborator wiring for each session kind and the
sessions created from it. Hosts construct it with their own backends and
hand it to ``create_app``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from formdiscovery.config.messages import MessageCatalog
from formdiscovery.config.scenarios import SiteDescriptor
from formdiscovery.runtime import (
    FUNCTION_SESSION,
    STORAGE_SESSION,
    FormDiscoveryError,
    FormSession,
    create_function_session,
    create_storage_session,
)
from formdiscovery.runtime.collaborators import (
    BindingLookup,
    CapabilityFetch,
    CredentialLookup,
    FunctionInventoryLookup,
    PermissionCheck,
)
from formdiscovery.runtime.types import FunctionTemplate, StorageAccount

logger = logging.getLogger(__name__)

SESSION_KINDS = (STORAGE_SESSION, FUNCTION_SESSION)


class UnsupportedSessionKindError(FormDiscoveryError):
    """No wiring is registered for the requested session kind."""

    error_code = "unsupported_session_kind"

    def __init__(self, kind: str):
        super().__init__(
            f"Session kind '{kind}' is not available",
            {"kind": kind, "available": list(SESSION_KINDS)},
        )


@dataclass
class StorageBackend:
    """Collaborators and catalog for storage mount sessions."""

    accounts: Sequence[StorageAccount]
    credentials: CredentialLookup
    capabilities: CapabilityFetch


@dataclass
class FunctionBackend:
    """Collaborators and catalog for function creation sessions."""

    resource_id: str
    templates: Sequence[FunctionTemplate]
    bindings: BindingLookup
    inventory: FunctionInventoryLookup
    permissions: PermissionCheck


@dataclass
class SessionRegistry:
    """Creates, tracks and closes form sessions."""

    storage: Optional[StorageBackend] = None
    functions: Optional[FunctionBackend] = None
    messages: Optional[MessageCatalog] = None
    _sessions: Dict[str, FormSession] = field(default_factory=dict, repr=False)

    def create(self, kind: str, site: Optional[SiteDescriptor] = None) -> FormSession:
        """Create a session of ``kind``.

        Raises:
            UnsupportedSessionKindError: If the kind is unknown or has no
                backend registered.
        """
        if kind == STORAGE_SESSION and self.storage is not None:
            session = create_storage_session(
                self.storage.accounts,
                self.storage.credentials,
                self.storage.capabilities,
                site=site,
                messages=self.messages,
            )
        elif kind == FUNCTION_SESSION and self.functions is not None:
            session = create_function_session(
                self.functions.resource_id,
                self.functions.templates,
                self.functions.bindings,
                self.functions.inventory,
                self.functions.permissions,
                messages=self.messages,
            )
        else:
            raise UnsupportedSessionKindError(kind)
        self._sessions[session.session_id] = session
        logger.info("Created %s session %s", kind, session.session_id)
        return session

    def get(self, session_id: str) -> Optional[FormSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[FormSession]:
        """Close and forget a session. Returns it, or None if unknown."""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()
        return session

    def session_ids(self) -> List[str]:
        return list(self._sessions)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.remove(session_id)
