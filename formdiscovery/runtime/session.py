"""
session.py - Selection-triggered discovery for one open form.

A FormSession wires the components of one form together:

    select(key)
      -> ResourceKeyStore.select      (same key: keep the existing run)
      -> StalenessGuard.begin         (new generation tag)
      -> FormStateProjector.begin_pending
      -> task: DiscoveryPipeline.run(tag)
           -> StalenessGuard.accept   (stale: dropped)
           -> ErrorClassifier.classify
           -> FallbackResolver.resolve_default
           -> FormStateProjector.merge

All mutation happens on the event loop thread. A superseded run is cancelled
when configured to; either way its result is rejected by the guard.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

from formdiscovery.config.runtime_config import cancel_superseded_runs

from .error_classifier import ClassifierContext, ErrorClassifier
from .errors import SessionClosedError
from .fallback import FallbackResolver
from .key_store import ResourceKeyStore
from .pipelines import DiscoveryPipeline
from .projector import FormStateProjector
from .staleness import StalenessGuard
from .types import (
    NO_BANNER,
    DiscoveryResult,
    FieldState,
    FormSnapshot,
    GenerationTag,
    SelectionKey,
)

logger = logging.getLogger(__name__)

ContextFactory = Callable[[Optional[SelectionKey]], ClassifierContext]


class FormSession:
    """One open form: its selection, discovery runs and field state."""

    def __init__(
        self,
        kind: str,
        key_store: ResourceKeyStore[Any],
        pipeline: DiscoveryPipeline,
        classifier: ErrorClassifier,
        projector: FormStateProjector,
        resolver: Optional[FallbackResolver] = None,
        guard: Optional[StalenessGuard] = None,
        context_for: Optional[ContextFactory] = None,
        cancel_superseded: Optional[bool] = None,
        session_id: Optional[str] = None,
    ):
        """Initialize the session.

        Args:
            kind: Form kind ("storage" or "function").
            key_store: Holds the selection key and its catalog.
            pipeline: Discovery pipeline run per selection.
            classifier: Maps results to the form banner.
            projector: Owner of field state.
            resolver: Forced-default resolution. A fresh resolver when omitted.
            guard: Generation tracking. A fresh guard when omitted.
            context_for: Builds the classifier context for a key.
            cancel_superseded: Cancel in-flight runs on reselection. Read
                from the runtime config when omitted.
            session_id: Identifier used in logs and by the HTTP layer.
        """
        self.kind = kind
        self.session_id = session_id or uuid.uuid4().hex
        self._key_store = key_store
        self._pipeline = pipeline
        self._classifier = classifier
        self._projector = projector
        self._resolver = resolver or FallbackResolver()
        self._guard = guard or StalenessGuard()
        self._context_for = context_for or (lambda key: ClassifierContext())
        self._cancel_superseded = (
            cancel_superseded if cancel_superseded is not None else cancel_superseded_runs()
        )
        self._task: Optional["asyncio.Task[DiscoveryResult]"] = None
        self._last_result: Optional[DiscoveryResult] = None
        self._closed = False

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def selection(self) -> Optional[SelectionKey]:
        return self._key_store.key

    @property
    def current_tag(self) -> GenerationTag:
        return self._guard.current_tag

    @property
    def projector(self) -> FormStateProjector:
        return self._projector

    @property
    def last_result(self) -> Optional[DiscoveryResult]:
        """Most recently accepted discovery result."""
        return self._last_result

    def snapshot(self) -> FormSnapshot:
        return self._projector.snapshot(self._guard.current_tag)

    # =========================================================================
    # Input
    # =========================================================================

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(self.session_id)

    def select(self, key: Optional[SelectionKey]) -> Optional["asyncio.Task[DiscoveryResult]"]:
        """Select ``key`` and start discovery for it.

        Must be called from a running event loop. Selecting the current key
        again does not start a new run.

        Returns:
            The discovery task for the selection, or None when there is
            nothing to discover (cleared selection).
        """
        self._ensure_open()
        if not self._key_store.select(key):
            logger.debug("%s: %s already selected, keeping run", self.session_id, key)
            return self._task

        previous = self._task
        tag = self._guard.begin(key)
        logger.info("%s: selected %s", self.session_id, tag)

        if previous is not None and not previous.done() and self._cancel_superseded:
            logger.debug("%s: cancelling superseded run", self.session_id)
            previous.cancel()

        self._projector.begin_pending(key)
        if key is None:
            self._task = None
            self._apply(DiscoveryResult(tag=tag))
            return None

        self._task = asyncio.get_running_loop().create_task(self._run(tag))
        return self._task

    def edit(self, name: str, value: Any) -> FieldState:
        """Apply a user edit. Editing the selection field selects the value."""
        self._ensure_open()
        if name == self._projector.selection_field:
            self.select(value or None)
            return self._projector.field(name)
        return self._projector.edit(name, value)

    def validate(self, name: str, value: Any = None) -> Optional[str]:
        """Validate ``value`` (the current value when None) for field ``name``."""
        state = self._projector.field(name)
        return self._projector.validate(name, state.value if value is None else value)

    async def settle(self) -> Optional[DiscoveryResult]:
        """Wait until the latest selection's run has completed.

        Returns:
            The accepted result of the current generation, if any.
        """
        while True:
            task = self._task
            if task is None:
                break
            await asyncio.wait({task})
            if task is self._task:
                if not task.cancelled():
                    # Re-raise errors from applying the result
                    task.result()
                break
        if self._last_result is not None and self._guard.is_current(self._last_result.tag):
            return self._last_result
        return None

    def close(self) -> None:
        """Tear the session down; outstanding results are discarded."""
        if self._closed:
            return
        self._closed = True
        self._guard.invalidate()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._key_store.clear()
        logger.info("%s: closed", self.session_id)

    # =========================================================================
    # Discovery
    # =========================================================================

    async def _run(self, tag: GenerationTag) -> DiscoveryResult:
        try:
            result = await self._pipeline.run(tag)
        except asyncio.CancelledError:
            logger.debug("%s: run %s cancelled", self.session_id, tag)
            raise
        except Exception as e:
            logger.exception("%s: run %s failed", self.session_id, tag)
            result = self._pipeline.failure_result(tag, e)
        self._apply(result)
        return result

    def _apply(self, result: DiscoveryResult) -> bool:
        if self._closed or not self._guard.accept(result, self._key_store.key):
            return False
        if result.capabilities is None:
            banner = NO_BANNER
        else:
            banner = self._classifier.classify(result, self._context_for(result.tag.key))
        forced_mode = self._resolver.resolve_default(result.capabilities)
        self._projector.merge(result, banner, forced_mode)
        self._last_result = result
        logger.info(
            "%s: applied %s (banner=%s, forced=%s)",
            self.session_id,
            result.tag,
            banner.category.value,
            forced_mode.value if forced_mode else None,
        )
        return True
