"""Scenario toggles for discovery sessions.

Scenario statuses are resolved from scenarios.yaml rules evaluated against the
site descriptor the form is opened for. Environment variables take precedence:
FORMDISCOVERY_SCENARIO_<ID> (upper-cased id, e.g.
FORMDISCOVERY_SCENARIO_AZUREBLOBMOUNT=disabled).

Usage:
    from formdiscovery.config.scenarios import ScenarioService, resolve_scenario_flags

    flags = resolve_scenario_flags(site)
    if flags.supports_blob_storage:
        ...
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

_SCENARIOS_PATH = Path(__file__).parent / "scenarios.yaml"


class ScenarioIds:
    """Known scenario identifiers."""

    AZURE_BLOB_MOUNT = "azureBlobMount"
    SHOW_STORAGE_MOUNT_WARNING_BANNER = "showAzureStorageMountWarningBanner"


class ScenarioStatus(str, Enum):
    """Result of a scenario check."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SiteDescriptor:
    """Read-only description of the site a form is opened for.

    Attributes:
        resource_id: Full resource id of the site.
        kind: Comma separated site kind (e.g. "app,linux").
    """

    resource_id: str
    kind: str = "app"


@dataclass(frozen=True)
class ScenarioFlags:
    """Boolean toggles consumed by a discovery session."""

    supports_blob_storage: bool = True
    show_warning_banner: bool = False


def _rule_matches(when: Dict[str, Any], site: SiteDescriptor) -> bool:
    kind = (site.kind or "").lower()
    contains = when.get("kind_contains")
    if contains is not None and str(contains).lower() not in kind:
        return False
    lacks = when.get("kind_lacks")
    if lacks is not None and str(lacks).lower() in kind:
        return False
    return True


def _parse_status(scenario_id: str, value: Any) -> ScenarioStatus:
    if value is None:
        return ScenarioStatus.UNKNOWN
    try:
        return ScenarioStatus(str(value).strip().lower())
    except ValueError:
        logger.warning("Invalid status %r for scenario %s, treating as unknown", value, scenario_id)
        return ScenarioStatus.UNKNOWN


class ScenarioService:
    """Evaluates scenario rules against a site descriptor."""

    def __init__(self, scenarios: Optional[Dict[str, Any]] = None):
        """Initialize the service.

        Args:
            scenarios: Scenario table in the scenarios.yaml shape. Loaded from
                disk when omitted.
        """
        if scenarios is None:
            scenarios = self._load()
        self._scenarios: Dict[str, Any] = scenarios

    @staticmethod
    def _load() -> Dict[str, Any]:
        if not _SCENARIOS_PATH.exists():
            return {}
        with open(_SCENARIOS_PATH, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return data.get("scenarios") or {}

    def check(self, scenario_id: str, site: SiteDescriptor) -> ScenarioStatus:
        """Resolve the status of one scenario for a site."""
        env_value = os.environ.get(f"FORMDISCOVERY_SCENARIO_{scenario_id.upper()}")
        if env_value:
            try:
                return ScenarioStatus(env_value.strip().lower())
            except ValueError:
                logger.warning(
                    "Ignoring invalid scenario override %s=%s", scenario_id, env_value
                )

        entry = self._scenarios.get(scenario_id)
        if entry is None:
            return ScenarioStatus.UNKNOWN

        rules: List[Dict[str, Any]] = entry.get("rules") or []
        for rule in rules:
            if _rule_matches(rule.get("when") or {}, site):
                return _parse_status(scenario_id, rule.get("status"))
        return _parse_status(scenario_id, entry.get("default"))


def resolve_scenario_flags(
    site: SiteDescriptor, service: Optional[ScenarioService] = None
) -> ScenarioFlags:
    """Resolve the toggles a storage session needs for one site.

    Blob support is on unless explicitly disabled; the warning banner is
    shown only when explicitly enabled.
    """
    service = service or ScenarioService()
    blob = service.check(ScenarioIds.AZURE_BLOB_MOUNT, site)
    banner = service.check(ScenarioIds.SHOW_STORAGE_MOUNT_WARNING_BANNER, site)
    return ScenarioFlags(
        supports_blob_storage=blob != ScenarioStatus.DISABLED,
        show_warning_banner=banner == ScenarioStatus.ENABLED,
    )
