"""
form_builder.py - Typed field descriptors for the function creation form.

Each binding setting carries a schema tag (its ``value_type``). The builder
maps every tag to a fixed FieldKind so the projector and the rendering layer
work against typed descriptors instead of raw binding dictionaries:

    string (no resource) -> TEXT
    string + resource    -> RESOURCE
    int                  -> NUMBER
    boolean              -> CHECKBOX
    enum                 -> DROPDOWN
    checkBoxList         -> MULTI_SELECT
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .types import BindingDefinition, BindingSetting, FieldOption, FunctionRecord

logger = logging.getLogger(__name__)

FUNCTION_NAME_FIELD = "functionName"
TEMPLATE_FIELD = "templateId"

FUNCTION_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_\-]{0,127}$")


class FieldKind(str, Enum):
    """Rendering kind of a generated field."""

    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    MULTI_SELECT = "multiSelect"
    RESOURCE = "resource"


_KIND_BY_VALUE_TYPE = {
    "string": FieldKind.TEXT,
    "int": FieldKind.NUMBER,
    "boolean": FieldKind.CHECKBOX,
    "enum": FieldKind.DROPDOWN,
    "checkBoxList": FieldKind.MULTI_SELECT,
}


@dataclass(frozen=True)
class FieldDescriptor:
    """A generated form field.

    Attributes:
        name: Form value key (the setting name).
        kind: How the field is rendered and validated.
        label: Display label.
        default: Initial value.
        required: Whether an empty value is invalid.
        options: Allowed values for DROPDOWN/MULTI_SELECT fields.
        binding_id: Binding the setting belongs to.
        resource: Resource type targeted by RESOURCE fields.
        allow_create: Whether a RESOURCE picker may create new resources.
        help: Help text.
    """

    name: str
    kind: FieldKind
    label: str = ""
    default: Any = None
    required: bool = False
    options: Tuple[FieldOption, ...] = ()
    binding_id: Optional[str] = None
    resource: Optional[str] = None
    allow_create: bool = False
    help: str = ""

    @property
    def option_backed(self) -> bool:
        return self.kind in (FieldKind.DROPDOWN, FieldKind.MULTI_SELECT)


def field_kind_for(setting: BindingSetting) -> FieldKind:
    if setting.resource and setting.value_type == "string":
        return FieldKind.RESOURCE
    kind = _KIND_BY_VALUE_TYPE.get(setting.value_type)
    if kind is None:
        logger.debug(
            "Unknown setting type '%s' for %s, rendering as text",
            setting.value_type,
            setting.name,
        )
        return FieldKind.TEXT
    return kind


def _default_for(setting: BindingSetting, kind: FieldKind) -> Any:
    if kind == FieldKind.CHECKBOX:
        if isinstance(setting.default_value, str):
            return setting.default_value.lower() == "true"
        return bool(setting.default_value)
    if kind == FieldKind.MULTI_SELECT:
        if setting.default_value is None:
            return []
        if isinstance(setting.default_value, (list, tuple)):
            return [str(v) for v in setting.default_value]
        return [str(setting.default_value)]
    if setting.default_value is None:
        return ""
    return setting.default_value if kind == FieldKind.NUMBER else str(setting.default_value)


def initial_function_name(default_name: str, functions: Iterable[FunctionRecord]) -> str:
    """First free function name: ``default_name``, then ``default_name1``..."""
    taken = {f.name.lower() for f in functions}
    if default_name.lower() not in taken:
        return default_name
    suffix = 1
    while f"{default_name}{suffix}".lower() in taken:
        suffix += 1
    return f"{default_name}{suffix}"


class CreateFunctionFormBuilder:
    """Builds the generated fields of the function creation form."""

    def __init__(
        self,
        bindings: Sequence[BindingDefinition],
        functions: Sequence[FunctionRecord],
        default_function_name: str,
        rg_write_permission: bool = False,
        sub_write_permission: bool = False,
    ):
        self._bindings = list(bindings)
        self._functions = list(functions)
        self._default_function_name = default_function_name
        self._allow_create = rg_write_permission or sub_write_permission

    @property
    def existing_function_names(self) -> List[str]:
        return [f.name for f in self._functions]

    def function_name(self) -> str:
        return initial_function_name(self._default_function_name, self._functions)

    def build(self) -> List[FieldDescriptor]:
        """Descriptors for every binding setting, in binding then setting order.

        A setting name claimed by an earlier binding is skipped.
        """
        descriptors: List[FieldDescriptor] = []
        seen: Dict[str, str] = {}
        for binding in self._bindings:
            for setting in binding.settings:
                if setting.name in seen:
                    logger.warning(
                        "Setting %s of %s already provided by %s, skipping",
                        setting.name,
                        binding.binding_id,
                        seen[setting.name],
                    )
                    continue
                seen[setting.name] = binding.binding_id
                kind = field_kind_for(setting)
                descriptors.append(
                    FieldDescriptor(
                        name=setting.name,
                        kind=kind,
                        label=setting.label or setting.name,
                        default=_default_for(setting, kind),
                        required=setting.required,
                        options=tuple(
                            FieldOption(key=o.value, text=o.display) for o in setting.options
                        ),
                        binding_id=binding.binding_id,
                        resource=setting.resource,
                        allow_create=kind == FieldKind.RESOURCE and self._allow_create,
                        help=setting.help,
                    )
                )
        return descriptors
