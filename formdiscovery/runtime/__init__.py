# formdiscovery/runtime package
# Selection-triggered discovery and form-state reconciliation.
#
# Core components:
#   - types: Core dataclasses (DiscoveryResult, LookupStage, FormSnapshot, ...)
#   - collaborators: Abstract lookup interfaces and the ApiResponse payload
#   - pipelines: Storage and binding discovery pipelines
#   - staleness: Generation tags and result acceptance
#   - error_classifier: Discovery outcome -> single form banner
#   - fallback: Forced defaults and user-prompt setting filters
#   - projector: Field state owned per form
#   - session: FormSession wiring one form together
#   - factory: create_storage_session / create_function_session
#
# Usage:
#     from formdiscovery.runtime import create_storage_session
#     session = create_storage_session(accounts, credentials, capabilities)
#     session.select("myaccount")
#     await session.settle()
#     snapshot = session.snapshot()

from .errors import FormDiscoveryError, SessionClosedError, UnknownFieldError
from .factory import (
    FUNCTION_SESSION,
    STORAGE_SESSION,
    create_function_session,
    create_storage_session,
)
from .session import FormSession
from .types import (
    BannerCategory,
    DiscoveryResult,
    ErrorBanner,
    FormSnapshot,
    FunctionTemplate,
    GenerationTag,
    StorageAccount,
    StorageMode,
)

__all__ = [
    # Errors
    "FormDiscoveryError",
    "UnknownFieldError",
    "SessionClosedError",
    # Sessions
    "FormSession",
    "STORAGE_SESSION",
    "FUNCTION_SESSION",
    "create_storage_session",
    "create_function_session",
    # Types
    "BannerCategory",
    "DiscoveryResult",
    "ErrorBanner",
    "FormSnapshot",
    "FunctionTemplate",
    "GenerationTag",
    "StorageAccount",
    "StorageMode",
]
