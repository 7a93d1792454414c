"""
fallback.py - Default choices derived from discovered capabilities.

Storage: when exactly one of the two mutually exclusive lists is non-empty,
the mode backed by it is forced. Both non-empty keeps the user's choice; both
empty makes no choice (the error banner covers that case).

Bindings: each discovered binding keeps only the settings named in the
template's user-prompt list. Binding order and setting order are preserved.
"""

from __future__ import annotations

import dataclasses
from typing import Iterable, List, Optional, Sequence

from .types import BindingDefinition, CapabilitySet, StorageCapabilities, StorageMode


class FallbackResolver:
    """Derives forced defaults and filtered settings."""

    def resolve_default(self, capabilities: Optional[CapabilitySet]) -> Optional[StorageMode]:
        """Mode to force-select, or None to leave the current choice alone."""
        if not isinstance(capabilities, StorageCapabilities):
            return None
        has_blobs = bool(capabilities.blob_containers)
        has_files = bool(capabilities.file_shares)
        if has_blobs and not has_files:
            return StorageMode.AZURE_BLOB
        if has_files and not has_blobs:
            return StorageMode.AZURE_FILES
        return None

    def filter_settings(
        self,
        bindings: Iterable[BindingDefinition],
        user_prompt: Sequence[str],
    ) -> List[BindingDefinition]:
        """Restrict binding settings to the user-prompt names.

        Returns new definitions; the inputs are not modified.
        """
        prompts = set(user_prompt)
        return [
            dataclasses.replace(
                binding,
                settings=tuple(s for s in binding.settings if s.name in prompts),
            )
            for binding in bindings
        ]
