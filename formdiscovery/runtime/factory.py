"""
factory.py - Session factory functions.

Builds fully wired FormSessions. Session-scoped inputs (catalogs,
collaborators, scenario flags) are passed explicitly; process-wide settings
(stage timeout, cancellation, classifier policy) come from the runtime config
unless overridden.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from formdiscovery.config.messages import MessageCatalog
from formdiscovery.config.runtime_config import ClassifierPolicy
from formdiscovery.config.scenarios import (
    ScenarioFlags,
    SiteDescriptor,
    resolve_scenario_flags,
)

from .collaborators import (
    BindingLookup,
    CapabilityFetch,
    CredentialLookup,
    FunctionInventoryLookup,
    PermissionCheck,
)
from .error_classifier import (
    BindingErrorClassifier,
    ClassifierContext,
    StorageErrorClassifier,
)
from .fallback import FallbackResolver
from .key_store import ResourceKeyStore
from .pipelines import BindingDiscoveryPipeline, StorageDiscoveryPipeline
from .projector import FunctionFormProjector, StorageFormProjector
from .session import FormSession
from .types import FunctionTemplate, SelectionKey, StorageAccount

logger = logging.getLogger(__name__)

STORAGE_SESSION = "storage"
FUNCTION_SESSION = "function"


def create_storage_session(
    accounts: Sequence[StorageAccount],
    credentials: CredentialLookup,
    capabilities: CapabilityFetch,
    site: Optional[SiteDescriptor] = None,
    flags: Optional[ScenarioFlags] = None,
    messages: Optional[MessageCatalog] = None,
    policy: Optional[ClassifierPolicy] = None,
    stage_timeout_s: Optional[float] = None,
    cancel_superseded: Optional[bool] = None,
    session_id: Optional[str] = None,
) -> FormSession:
    """Create a storage mount form session.

    Args:
        accounts: Storage accounts the user can pick from.
        credentials: Key listing collaborator.
        capabilities: Container/share listing collaborator.
        site: Site the form is opened for. Used to resolve scenario flags
            when ``flags`` is not given.
        flags: Explicit scenario flags.
        messages: Message catalog. English table when omitted.
        policy: Classifier precedence policy override.
        stage_timeout_s: Per-call timeout override.
        cancel_superseded: Cancellation override.
        session_id: Session identifier.

    Returns:
        Configured FormSession with no selection.
    """
    if flags is None:
        flags = resolve_scenario_flags(site) if site is not None else ScenarioFlags()
    messages = messages or MessageCatalog()
    key_store: ResourceKeyStore[StorageAccount] = ResourceKeyStore(accounts, lambda a: a.name)

    def context_for(key: Optional[SelectionKey]) -> ClassifierContext:
        account = key_store.resolve(key)
        return ClassifierContext(
            supports_alternate_mode=flags.supports_blob_storage,
            account_kind=account.kind if account else None,
        )

    logger.debug(
        "create_storage_session: %d account(s), blob=%s, banner=%s",
        len(accounts),
        flags.supports_blob_storage,
        flags.show_warning_banner,
    )
    return FormSession(
        kind=STORAGE_SESSION,
        key_store=key_store,
        pipeline=StorageDiscoveryPipeline(
            accounts,
            credentials,
            capabilities,
            supports_blob_storage=flags.supports_blob_storage,
            stage_timeout_s=stage_timeout_s,
        ),
        classifier=StorageErrorClassifier(messages, policy),
        projector=StorageFormProjector(accounts, flags, messages),
        context_for=context_for,
        cancel_superseded=cancel_superseded,
        session_id=session_id,
    )


def create_function_session(
    resource_id: str,
    templates: Sequence[FunctionTemplate],
    bindings: BindingLookup,
    inventory: FunctionInventoryLookup,
    permissions: PermissionCheck,
    messages: Optional[MessageCatalog] = None,
    default_function_name: Optional[str] = None,
    stage_timeout_s: Optional[float] = None,
    cancel_superseded: Optional[bool] = None,
    session_id: Optional[str] = None,
) -> FormSession:
    """Create a function creation form session.

    Args:
        resource_id: Function app the form creates into.
        templates: Templates the user can pick from.
        bindings: Binding definition collaborator.
        inventory: Existing function listing collaborator.
        permissions: RBAC collaborator.
        messages: Message catalog. English table when omitted.
        default_function_name: Fallback function name override.
        stage_timeout_s: Per-call timeout override.
        cancel_superseded: Cancellation override.
        session_id: Session identifier.

    Returns:
        Configured FormSession with no selection.
    """
    messages = messages or MessageCatalog()
    resolver = FallbackResolver()
    logger.debug(
        "create_function_session: %s with %d template(s)", resource_id, len(templates)
    )
    return FormSession(
        kind=FUNCTION_SESSION,
        key_store=ResourceKeyStore(templates, lambda t: t.id),
        pipeline=BindingDiscoveryPipeline(
            resource_id,
            templates,
            bindings,
            inventory,
            permissions,
            stage_timeout_s=stage_timeout_s,
        ),
        classifier=BindingErrorClassifier(messages),
        projector=FunctionFormProjector(
            templates, resolver, messages, default_function_name=default_function_name
        ),
        resolver=resolver,
        cancel_superseded=cancel_superseded,
        session_id=session_id,
    )
