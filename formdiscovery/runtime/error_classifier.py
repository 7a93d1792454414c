"""
error_classifier.py - Map discovery outcomes to a single banner.

Storage rules, first match wins:
1. A relevant capability list is non-empty          -> none
2. Credentials failed, or a relevant lookup raised  -> accessDenied
3. One relevant list (alternate mode off, or a blob-only account):
   failed with detail -> partialFailure (detail embedded)
   failed, no detail  -> emptyResult
   empty              -> emptyResult
4. Both lists relevant and empty/failed: the first list (in the configured
   order) that failed with a detail -> partialFailure; otherwise the
   accessDenied catch-all ("neither option available"). With the
   "catch_all" priority the catch-all always wins.

Binding rules:
1. Function inventory failed  -> accessDenied
2. A binding fetch failed      -> partialFailure (with detail) / emptyResult
3. Otherwise                   -> none
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from formdiscovery.config.messages import MessageCatalog
from formdiscovery.config.runtime_config import ClassifierPolicy, get_classifier_policy

from .pipelines.bindings import BINDING_STAGE_PREFIX, STAGE_FUNCTIONS
from .pipelines.storage import STAGE_CONTAINERS, STAGE_CREDENTIALS, STAGE_FILE_SHARES
from .types import (
    BLOB_CAPABLE_KINDS,
    NO_BANNER,
    BannerCategory,
    DiscoveryResult,
    ErrorBanner,
    LookupStage,
    StorageCapabilities,
    StorageKind,
    StorageMode,
)


@dataclass(frozen=True)
class ClassifierContext:
    """Configuration-dependent inputs to classification.

    Attributes:
        supports_alternate_mode: Whether the alternate (blob) mode is enabled.
        account_kind: Kind of the selected storage account, when known.
    """

    supports_alternate_mode: bool = True
    account_kind: Optional[str] = None


# Message keys per storage mode: (failed with detail, failed, empty)
_MODE_MESSAGES = {
    StorageMode.AZURE_BLOB: ("blobsFailureWithError", "blobsFailure", "noBlobs"),
    StorageMode.AZURE_FILES: (
        "fileSharesFailureWithError",
        "fileSharesFailure",
        "noFileShares",
    ),
}

_MODE_STAGES = {
    StorageMode.AZURE_BLOB: STAGE_CONTAINERS,
    StorageMode.AZURE_FILES: STAGE_FILE_SHARES,
}


class ErrorClassifier(ABC):
    """Base class for discovery outcome classifiers."""

    def __init__(self, messages: Optional[MessageCatalog] = None):
        self._messages = messages or MessageCatalog()

    def _banner(self, category: BannerCategory, key: str, *args: object) -> ErrorBanner:
        return ErrorBanner(category=category, message=self._messages.t(key, *args), message_key=key)

    @abstractmethod
    def classify(self, result: DiscoveryResult, context: ClassifierContext) -> ErrorBanner:
        """Classify ``result`` into at most one active banner."""
        ...


class StorageErrorClassifier(ErrorClassifier):
    """Classifies storage discovery results."""

    def __init__(
        self,
        messages: Optional[MessageCatalog] = None,
        policy: Optional[ClassifierPolicy] = None,
    ):
        super().__init__(messages)
        self._policy = policy or get_classifier_policy()

    @staticmethod
    def relevant_modes(context: ClassifierContext) -> List[StorageMode]:
        """Capability lists consulted for the account and configuration."""
        if not context.supports_alternate_mode:
            return [StorageMode.AZURE_FILES]
        kind = context.account_kind
        modes = []
        if kind is None or kind in BLOB_CAPABLE_KINDS:
            modes.append(StorageMode.AZURE_BLOB)
        if kind != StorageKind.BLOB_STORAGE:
            modes.append(StorageMode.AZURE_FILES)
        return modes or [StorageMode.AZURE_FILES]

    def classify(self, result: DiscoveryResult, context: ClassifierContext) -> ErrorBanner:
        capabilities = result.capabilities
        if not isinstance(capabilities, StorageCapabilities):
            return NO_BANNER

        modes = self.relevant_modes(context)
        if any(capabilities.items_for(mode) for mode in modes):
            return NO_BANNER

        credentials = result.stage(STAGE_CREDENTIALS)
        stages = {mode: result.stage(_MODE_STAGES[mode]) for mode in modes}
        if (credentials is None or credentials.failed) or any(
            s is not None and s.failed and s.raised for s in stages.values()
        ):
            return self._banner(BannerCategory.ACCESS_DENIED, "noWriteAccessStorageAccount")

        if len(modes) == 1:
            mode = modes[0]
            return self._single_list_banner(mode, stages[mode])

        if self._policy.both_empty_priority == "failure_detail":
            for mode_name in self._policy.detail_mode_order:
                mode = StorageMode(mode_name)
                stage = stages.get(mode)
                if stage is not None and stage.failed and stage.error_detail:
                    return self._banner(
                        BannerCategory.PARTIAL_FAILURE,
                        _MODE_MESSAGES[mode][0],
                        stage.error_detail,
                    )
        return self._banner(BannerCategory.ACCESS_DENIED, "noBlobsOrFilesShares")

    def _single_list_banner(self, mode: StorageMode, stage: Optional[LookupStage]) -> ErrorBanner:
        with_error, failure, empty = _MODE_MESSAGES[mode]
        if stage is not None and stage.failed:
            if stage.error_detail:
                return self._banner(BannerCategory.PARTIAL_FAILURE, with_error, stage.error_detail)
            return self._banner(BannerCategory.EMPTY_RESULT, failure)
        return self._banner(BannerCategory.EMPTY_RESULT, empty)


class BindingErrorClassifier(ErrorClassifier):
    """Classifies binding discovery results."""

    def classify(self, result: DiscoveryResult, context: ClassifierContext) -> ErrorBanner:
        if result.capabilities is None:
            return NO_BANNER

        functions = result.stage(STAGE_FUNCTIONS)
        if functions is not None and functions.failed:
            return self._banner(BannerCategory.ACCESS_DENIED, "functionsInfoFailure")

        failed = [s for s in result.stages_with_prefix(BINDING_STAGE_PREFIX) if s.failed]
        if not failed:
            return NO_BANNER
        for stage in failed:
            if stage.error_detail:
                return self._banner(
                    BannerCategory.PARTIAL_FAILURE, "bindingsFailureWithError", stage.error_detail
                )
        return self._banner(BannerCategory.EMPTY_RESULT, "bindingsFailure")
