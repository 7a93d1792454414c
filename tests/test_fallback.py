"""
Tests for forced storage defaults and user-prompt setting filters.
"""

from __future__ import annotations

from formdiscovery.runtime.fallback import FallbackResolver
from formdiscovery.runtime.types import (
    BindingCapabilities,
    BindingDefinition,
    BindingSetting,
    StorageCapabilities,
    StorageMode,
)


class TestResolveDefault:
    """Tests for mutual exclusivity of the forced mode."""

    def test_only_blobs_forces_blob(self):
        caps = StorageCapabilities(blob_containers=("c1",))
        assert FallbackResolver().resolve_default(caps) == StorageMode.AZURE_BLOB

    def test_only_files_forces_files(self):
        caps = StorageCapabilities(file_shares=("s1",))
        assert FallbackResolver().resolve_default(caps) == StorageMode.AZURE_FILES

    def test_both_non_empty_keeps_choice(self):
        caps = StorageCapabilities(blob_containers=("c1",), file_shares=("s1",))
        assert FallbackResolver().resolve_default(caps) is None

    def test_both_empty_forces_nothing(self):
        assert FallbackResolver().resolve_default(StorageCapabilities()) is None

    def test_non_storage_capabilities(self):
        assert FallbackResolver().resolve_default(BindingCapabilities()) is None
        assert FallbackResolver().resolve_default(None) is None


class TestFilterSettings:
    """Tests for binding setting filtering."""

    @staticmethod
    def _binding(type_: str, *names: str) -> BindingDefinition:
        return BindingDefinition(
            type=type_,
            direction="in",
            settings=tuple(BindingSetting(name=n) for n in names),
        )

    def test_keeps_only_prompted_settings_in_order(self):
        bindings = [
            self._binding("blob", "name", "path", "connection"),
            self._binding("queue", "queueName", "connection"),
        ]
        filtered = FallbackResolver().filter_settings(bindings, ["connection", "path"])

        assert [b.type for b in filtered] == ["blob", "queue"]
        assert [s.name for s in filtered[0].settings] == ["path", "connection"]
        assert [s.name for s in filtered[1].settings] == ["connection"]

    def test_inputs_not_mutated(self):
        bindings = [self._binding("blob", "name", "path")]
        FallbackResolver().filter_settings(bindings, ["path"])
        assert [s.name for s in bindings[0].settings] == ["name", "path"]

    def test_empty_prompt_removes_all_settings(self):
        filtered = FallbackResolver().filter_settings([self._binding("blob", "path")], [])
        assert filtered[0].settings == ()
