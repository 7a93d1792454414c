"""
staleness.py - Generation tracking for discovery runs.

The guard holds the session's single active generation. Each effective
selection bumps the counter; a result is applied only when its tag equals the
current tag. Arrival order is irrelevant: a run that resolves late after a
newer selection is rejected by comparison, not by timing.
"""

from __future__ import annotations

import logging
from typing import Optional

from .types import DiscoveryResult, GenerationTag, SelectionKey

logger = logging.getLogger(__name__)


class StalenessGuard:
    """Accepts only results produced for the current selection generation."""

    def __init__(self) -> None:
        self._current = GenerationTag(key=None, generation=0)

    @property
    def current_tag(self) -> GenerationTag:
        return self._current

    @property
    def current_key(self) -> Optional[SelectionKey]:
        return self._current.key

    def begin(self, key: Optional[SelectionKey]) -> GenerationTag:
        """Start a new generation for ``key`` and return its tag."""
        self._current = GenerationTag(key=key, generation=self._current.generation + 1)
        return self._current

    def invalidate(self) -> GenerationTag:
        """Supersede every outstanding run (teardown)."""
        return self.begin(None)

    def is_current(self, tag: GenerationTag) -> bool:
        return tag == self._current

    def accept(
        self,
        result: DiscoveryResult,
        current_key: Optional[SelectionKey] = None,
    ) -> bool:
        """Decide whether ``result`` may be applied to form state.

        Args:
            result: Completed discovery result.
            current_key: Selection key the caller believes is current. When
                given it must also equal the result's key.

        Returns:
            True only for a result of the current generation.
        """
        accepted = self.is_current(result.tag)
        if accepted and current_key is not None:
            accepted = result.tag.key == current_key
        if not accepted:
            logger.debug(
                "Dropping stale discovery result %s (current %s)", result.tag, self._current
            )
        return accepted
