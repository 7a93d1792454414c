"""Message lookup for banners, notices and validation errors.

Translation is owned by the host application. MessageCatalog wraps either an
injected translator callable or the English table in messages.yaml.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_MESSAGES_PATH = Path(__file__).parent / "messages.yaml"

Translator = Callable[[str], str]


@lru_cache(maxsize=1)
def _load_messages() -> Dict[str, str]:
    if not _MESSAGES_PATH.exists():
        return {}
    with open(_MESSAGES_PATH, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return {str(k): str(v) for k, v in (data.get("messages") or {}).items()}


class MessageCatalog:
    """Resolves message keys to display strings."""

    def __init__(
        self,
        translator: Optional[Translator] = None,
        overrides: Optional[Dict[str, str]] = None,
    ):
        self._translator = translator
        self._table = {**_load_messages(), **(overrides or {})}

    def t(self, key: str, *args: object) -> str:
        """Look up ``key`` and format positional arguments into it.

        Unknown keys resolve to the key itself so a missing string never
        hides a banner.
        """
        if self._translator is not None:
            template = self._translator(key)
        else:
            template = self._table.get(key)
            if template is None:
                logger.debug("No message for key '%s'", key)
                template = key
        if not args:
            return template
        try:
            return template.format(*args)
        except (IndexError, KeyError):
            logger.warning("Message '%s' does not accept %d argument(s)", key, len(args))
            return template
