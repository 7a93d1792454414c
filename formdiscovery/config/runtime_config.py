"""Runtime configuration registry for discovery sessions.

Provides centralized configuration for pipeline timeouts, run cancellation,
error classification precedence and form defaults.
Environment variables take precedence over YAML config.

Usage:
    from formdiscovery.config.runtime_config import (
        get_stage_timeout_s,
        cancel_superseded_runs,
        get_classifier_policy,
    )

    timeout = get_stage_timeout_s()  # Returns 30.0 unless overridden
    if cancel_superseded_runs():
        task.cancel()
    policy = get_classifier_policy()  # ClassifierPolicy(...)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "runtime.yaml"
_cached_config: Optional[Dict[str, Any]] = None

# Stage timeout bounds in seconds
TIMEOUT_MIN_S = 1.0
TIMEOUT_MAX_S = 300.0

VALID_BOTH_EMPTY_PRIORITIES = ("failure_detail", "catch_all")
VALID_MODES = ("AzureBlob", "AzureFiles")


@dataclass
class ClassifierPolicy:
    """Precedence rules used when both storage capability lists are empty.

    Attributes:
        both_empty_priority: "failure_detail" surfaces the first failing
            list's error detail as a partial failure; "catch_all" always
            reports that neither option is available.
        detail_mode_order: Order in which the two lists are consulted for a
            failure detail.
    """

    both_empty_priority: str = "failure_detail"
    detail_mode_order: List[str] = field(
        default_factory=lambda: ["AzureBlob", "AzureFiles"]
    )


def _load_config() -> Dict[str, Any]:
    """Load runtime.yaml configuration, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH, encoding="utf-8") as f:
            _cached_config = yaml.safe_load(f) or _default_config()
    else:
        _cached_config = _default_config()

    return _cached_config


def _default_config() -> Dict[str, Any]:
    """Return default configuration if runtime.yaml doesn't exist."""
    return {
        "version": "1.0",
        "discovery": {
            "stage_timeout_s": 30,
            "cancel_superseded_runs": True,
        },
        "classifier": {
            "both_empty_priority": "failure_detail",
            "detail_mode_order": ["AzureBlob", "AzureFiles"],
        },
        "storage": {
            "default_mode": "AzureBlob",
        },
        "functions": {
            "default_function_name": "NewFunction",
        },
    }


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None


def reload_config() -> Dict[str, Any]:
    """Drop the cache and load runtime.yaml again."""
    reset_config()
    return _load_config()


def _section(name: str) -> Dict[str, Any]:
    return _load_config().get(name) or {}


def get_stage_timeout_s() -> float:
    """Get the per-stage lookup timeout in seconds.

    Environment variable precedence (highest to lowest):
    1. FORMDISCOVERY_STAGE_TIMEOUT_S
    2. Config file value (discovery.stage_timeout_s)
    3. Default: 30

    The value is clamped to [TIMEOUT_MIN_S, TIMEOUT_MAX_S].
    """
    raw: Any = os.environ.get("FORMDISCOVERY_STAGE_TIMEOUT_S")
    source = "FORMDISCOVERY_STAGE_TIMEOUT_S"
    if raw is None:
        raw = _section("discovery").get("stage_timeout_s", 30)
        source = "discovery.stage_timeout_s"

    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value '%s'. Falling back to 30s.", source, raw)
        return 30.0

    if value < TIMEOUT_MIN_S or value > TIMEOUT_MAX_S:
        clamped = min(max(value, TIMEOUT_MIN_S), TIMEOUT_MAX_S)
        logger.warning(
            "Stage timeout %.1fs from %s is out of bounds [%.0f, %.0f]. Clamping to %.1fs.",
            value,
            source,
            TIMEOUT_MIN_S,
            TIMEOUT_MAX_S,
            clamped,
        )
        return clamped
    return value


def cancel_superseded_runs() -> bool:
    """Whether in-flight runs are cancelled when the selection changes.

    FORMDISCOVERY_CANCEL_SUPERSEDED ("1"/"0") overrides the config file.
    """
    env_value = os.environ.get("FORMDISCOVERY_CANCEL_SUPERSEDED")
    if env_value is not None:
        return env_value.strip().lower() in ("1", "true", "yes")
    return bool(_section("discovery").get("cancel_superseded_runs", True))


def get_classifier_policy() -> ClassifierPolicy:
    """Get the both-empty precedence policy for storage classification.

    FORMDISCOVERY_BOTH_EMPTY_PRIORITY overrides classifier.both_empty_priority.
    Invalid values log a warning and fall back to "failure_detail".
    """
    section = _section("classifier")
    priority = os.environ.get("FORMDISCOVERY_BOTH_EMPTY_PRIORITY") or section.get(
        "both_empty_priority", "failure_detail"
    )
    if priority not in VALID_BOTH_EMPTY_PRIORITIES:
        logger.warning(
            "Invalid both_empty_priority '%s' (valid: %s). Falling back to 'failure_detail'.",
            priority,
            ", ".join(VALID_BOTH_EMPTY_PRIORITIES),
        )
        priority = "failure_detail"

    order = [m for m in (section.get("detail_mode_order") or []) if m in VALID_MODES]
    for mode in VALID_MODES:
        if mode not in order:
            order.append(mode)

    return ClassifierPolicy(both_empty_priority=priority, detail_mode_order=order)


def get_default_storage_mode() -> str:
    """Get the storage type preselected before any discovery completes."""
    mode = _section("storage").get("default_mode", "AzureBlob")
    return mode if mode in VALID_MODES else "AzureBlob"


def get_default_function_name() -> str:
    """Get the fallback name for templates without a default function name."""
    return _section("functions").get("default_function_name") or "NewFunction"
