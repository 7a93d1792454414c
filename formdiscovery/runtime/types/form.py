"""Form state types: field state, banners and the published snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class BannerCategory(str, Enum):
    """User-facing classification of a discovery outcome."""

    NONE = "none"
    PARTIAL_FAILURE = "partialFailure"
    EMPTY_RESULT = "emptyResult"
    ACCESS_DENIED = "accessDenied"


@dataclass(frozen=True)
class ErrorBanner:
    """The single active banner of a form.

    Attributes:
        category: Classified condition.
        message: Display string ("" for NONE).
        message_key: Catalog key the message was resolved from.
    """

    category: BannerCategory = BannerCategory.NONE
    message: str = ""
    message_key: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.category != BannerCategory.NONE


NO_BANNER = ErrorBanner()


@dataclass(frozen=True)
class FieldOption:
    """One selectable option of a field."""

    key: str
    text: str
    disabled: bool = False


@dataclass
class FieldState:
    """Value, validation error and options of one form field.

    Owned exclusively by the form state projector.

    Attributes:
        value: Current value.
        error: Validation error, None when valid.
        options: Selectable options (empty for free-form fields).
        enabled: False while the field cannot be edited.
        visible: False when the rendering layer should hide the field.
        touched: True once the user edited the field.
        placeholder: Hint shown while the value is empty.
    """

    value: Any = None
    error: Optional[str] = None
    options: List[FieldOption] = field(default_factory=list)
    enabled: bool = True
    visible: bool = True
    touched: bool = False
    placeholder: Optional[str] = None


@dataclass(frozen=True)
class Notice:
    """Non-blocking informational banner (e.g. read-only warning)."""

    key: str
    message: str
    level: str = "warning"


@dataclass(frozen=True)
class FormSnapshot:
    """Read-only view consumed by the rendering layer."""

    field_values: Dict[str, Any]
    field_errors: Dict[str, Optional[str]]
    field_options: Dict[str, List[FieldOption]]
    field_enabled: Dict[str, bool]
    field_visible: Dict[str, bool]
    banner: ErrorBanner
    notices: List[Notice]
    selection: Optional[str]
    generation: int
    pending: bool


def field_option_to_dict(option: FieldOption) -> Dict[str, Any]:
    """Convert FieldOption to a dictionary for serialization."""
    return {"key": option.key, "text": option.text, "disabled": option.disabled}


def error_banner_to_dict(banner: ErrorBanner) -> Dict[str, Any]:
    """Convert ErrorBanner to a dictionary for serialization."""
    return {
        "category": banner.category.value,
        "message": banner.message,
        "message_key": banner.message_key,
    }


def form_snapshot_to_dict(snapshot: FormSnapshot) -> Dict[str, Any]:
    """Convert FormSnapshot to a dictionary for serialization."""
    return {
        "field_values": dict(snapshot.field_values),
        "field_errors": dict(snapshot.field_errors),
        "field_options": {
            name: [field_option_to_dict(o) for o in options]
            for name, options in snapshot.field_options.items()
        },
        "field_enabled": dict(snapshot.field_enabled),
        "field_visible": dict(snapshot.field_visible),
        "banner": error_banner_to_dict(snapshot.banner),
        "notices": [
            {"key": n.key, "message": n.message, "level": n.level}
            for n in snapshot.notices
        ],
        "selection": snapshot.selection,
        "generation": snapshot.generation,
        "pending": snapshot.pending,
    }
