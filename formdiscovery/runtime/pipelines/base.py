"""
base.py - Abstract base class for discovery pipelines.

A pipeline takes a generation tag, performs its dependent lookups and returns
a DiscoveryResult. Pipelines do NOT own:
- Staleness decisions (that's the guard's job)
- Error classification (that's the classifier's job)
- Form state (that's the projector's job)

Every collaborator call goes through ``_call_stage`` which converts failure
payloads, exceptions and timeouts into LookupStage outcomes. Nothing raised
by a collaborator propagates past the pipeline; cancellation does.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

from formdiscovery.config.runtime_config import get_stage_timeout_s

from ..collaborators import ApiResponse, error_message_or_stringify
from ..types import DiscoveryResult, GenerationTag, LookupStage, StageStatus

logger = logging.getLogger(__name__)


class DiscoveryPipeline(ABC):
    """Base class for selection-triggered discovery pipelines."""

    def __init__(self, stage_timeout_s: Optional[float] = None):
        """Initialize the pipeline.

        Args:
            stage_timeout_s: Upper bound per collaborator call. Read from the
                runtime config when omitted.
        """
        self._stage_timeout_s = (
            stage_timeout_s if stage_timeout_s is not None else get_stage_timeout_s()
        )

    @property
    @abstractmethod
    def pipeline_id(self) -> str:
        """Identifier used in logs ("storage", "bindings")."""
        ...

    @abstractmethod
    async def run(self, tag: GenerationTag) -> DiscoveryResult:
        """Run discovery for the selection captured in ``tag``.

        Args:
            tag: Generation tag of the selection. Copied onto the result.

        Returns:
            DiscoveryResult with every stage outcome, in execution order.
        """
        ...

    @abstractmethod
    def failure_result(self, tag: GenerationTag, error: BaseException) -> DiscoveryResult:
        """Result reported when ``run`` itself raised.

        Must classify as accessDenied so the form never stays pending.
        """
        ...

    def _raised_stage(
        self,
        name: str,
        error: BaseException,
        detail: Optional[str] = None,
        started: Optional[float] = None,
    ) -> LookupStage:
        """FAILED stage for a call that raised or timed out."""
        return LookupStage(
            name=name,
            status=StageStatus.FAILED,
            error_detail=detail or error_message_or_stringify(error),
            raised=True,
            duration_ms=_elapsed_ms(started) if started is not None else 0,
        )

    async def _call_stage(
        self,
        name: str,
        call: Callable[[], Awaitable[Any]],
    ) -> LookupStage:
        """Await one collaborator call and capture its outcome.

        ApiResponse results map to SUCCESS/FAILED from their ``success`` flag;
        any other return value is treated as successful data.
        """
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(call(), timeout=self._stage_timeout_s)
        except asyncio.TimeoutError as e:
            detail = f"Timed out after {self._stage_timeout_s:g}s"
            logger.error("%s: stage %s %s", self.pipeline_id, name, detail)
            return self._raised_stage(name, e, detail, started)
        except Exception as e:
            logger.error(
                "%s: stage %s raised: %s", self.pipeline_id, name, e, exc_info=True
            )
            return self._raised_stage(name, e, started=started)

        duration_ms = _elapsed_ms(started)
        if isinstance(response, ApiResponse):
            if response.success:
                return LookupStage(
                    name=name,
                    status=StageStatus.SUCCESS,
                    data=response.data,
                    duration_ms=duration_ms,
                )
            return LookupStage(
                name=name,
                status=StageStatus.FAILED,
                data=response.data,
                error_detail=error_message_or_stringify(response.error) or None,
                duration_ms=duration_ms,
            )
        return LookupStage(
            name=name, status=StageStatus.SUCCESS, data=response, duration_ms=duration_ms
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
