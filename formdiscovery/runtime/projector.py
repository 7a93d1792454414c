"""
projector.py - Form state derived from accepted discovery results.

The projector is the only writer of field state. Three entry points mutate it:

    begin_pending(key)               A new selection: the banner and every
                                     dependent field are cleared, option-backed
                                     fields validate as pending.
    merge(result, banner, forced)    An accepted discovery result: options,
                                     banner and forced defaults are applied.
                                     Values of unaffected fields are kept.
    edit(name, value)                A user edit: the value is stored, the
                                     field marked touched and revalidated.

StorageFormProjector and FunctionFormProjector carry the field sets of the
two forms.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from formdiscovery.config.messages import MessageCatalog
from formdiscovery.config.runtime_config import (
    get_default_function_name,
    get_default_storage_mode,
)
from formdiscovery.config.scenarios import ScenarioFlags

from .errors import UnknownFieldError
from .fallback import FallbackResolver
from .form_builder import (
    FUNCTION_NAME_FIELD,
    FUNCTION_NAME_PATTERN,
    TEMPLATE_FIELD,
    CreateFunctionFormBuilder,
    FieldDescriptor,
    FieldKind,
)
from .types import (
    NO_BANNER,
    BannerCategory,
    BindingCapabilities,
    DiscoveryResult,
    ErrorBanner,
    FieldOption,
    FieldState,
    FormSnapshot,
    FunctionRecord,
    FunctionTemplate,
    GenerationTag,
    Notice,
    SelectionKey,
    StorageAccount,
    StorageCapabilities,
    StorageKind,
    StorageMode,
)

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


class FormStateProjector(ABC):
    """Owns field state, the active banner and notices of one form."""

    #: Field whose value is the selection key.
    selection_field: str = ""

    def __init__(self, messages: Optional[MessageCatalog] = None):
        self._messages = messages or MessageCatalog()
        self._fields: Dict[str, FieldState] = {}
        self._banner: ErrorBanner = NO_BANNER
        self._pending = False

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def banner(self) -> ErrorBanner:
        return self._banner

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def field_names(self) -> List[str]:
        return list(self._fields)

    def field(self, name: str) -> FieldState:
        try:
            return self._fields[name]
        except KeyError:
            raise UnknownFieldError(name) from None

    def options(self, name: str) -> List[FieldOption]:
        return list(self.field(name).options)

    def notices(self) -> List[Notice]:
        return []

    def snapshot(self, tag: GenerationTag) -> FormSnapshot:
        return FormSnapshot(
            field_values={n: f.value for n, f in self._fields.items()},
            field_errors={n: f.error for n, f in self._fields.items()},
            field_options={n: list(f.options) for n, f in self._fields.items()},
            field_enabled={n: f.enabled for n, f in self._fields.items()},
            field_visible={n: f.visible for n, f in self._fields.items()},
            banner=self._banner,
            notices=self.notices(),
            selection=tag.key,
            generation=tag.generation,
            pending=self._pending,
        )

    # =========================================================================
    # Mutation
    # =========================================================================

    def edit(self, name: str, value: Any) -> FieldState:
        """Store a user edit and revalidate the field."""
        state = self.field(name)
        state.value = value
        state.touched = True
        self._after_edit(name)
        state.error = self.validate(name, value)
        return state

    def _after_edit(self, name: str) -> None:
        """Hook for fields whose options depend on the edited field."""

    def _revalidate(self) -> None:
        for name, state in self._fields.items():
            if state.touched or not _is_empty(state.value):
                state.error = self.validate(name, state.value)
            else:
                state.error = None

    @abstractmethod
    def begin_pending(self, key: Optional[SelectionKey]) -> None:
        """Clear the banner and dependent fields for a new selection."""
        ...

    @abstractmethod
    def merge(
        self,
        result: DiscoveryResult,
        banner: ErrorBanner,
        forced_mode: Optional[StorageMode] = None,
    ) -> None:
        """Apply an accepted discovery result."""
        ...

    @abstractmethod
    def validate(self, name: str, value: Any) -> Optional[str]:
        """Validation message for ``value`` in field ``name``, None when valid."""
        ...

    def _required(self, value: Any) -> Optional[str]:
        if _is_empty(value):
            return self._messages.t("validation_requiredError")
        return None

    def _member_of(self, name: str, value: Any, allow_disabled: bool = False) -> Optional[str]:
        keys = {o.key for o in self.field(name).options if allow_disabled or not o.disabled}
        if value not in keys:
            return self._messages.t("validation_invalidOption")
        return None


# =============================================================================
# Storage form
# =============================================================================

ACCOUNT_NAME_FIELD = "accountName"
TYPE_FIELD = "type"
SHARE_NAME_FIELD = "shareName"
ACCESS_KEY_FIELD = "accessKey"
MOUNT_NAME_FIELD = "name"
MOUNT_PATH_FIELD = "mountPath"

READONLY_BLOB_NOTICE = "readonlyBlobStorageWarning"


class StorageFormProjector(FormStateProjector):
    """Fields of the storage mount form."""

    selection_field = ACCOUNT_NAME_FIELD

    def __init__(
        self,
        accounts: Sequence[StorageAccount],
        flags: Optional[ScenarioFlags] = None,
        messages: Optional[MessageCatalog] = None,
        default_mode: Optional[StorageMode] = None,
    ):
        super().__init__(messages)
        self._flags = flags or ScenarioFlags()
        self._accounts = {a.name: a for a in accounts}
        if not self._flags.supports_blob_storage:
            self._default_mode = StorageMode.AZURE_FILES
        else:
            self._default_mode = default_mode or StorageMode(get_default_storage_mode())
        self._capabilities: Optional[StorageCapabilities] = None

        self._fields = {
            ACCOUNT_NAME_FIELD: FieldState(value="", options=self._account_options()),
            TYPE_FIELD: FieldState(value=self._default_mode.value),
            SHARE_NAME_FIELD: FieldState(value=""),
            ACCESS_KEY_FIELD: FieldState(value=None, visible=False),
            MOUNT_NAME_FIELD: FieldState(value=""),
            MOUNT_PATH_FIELD: FieldState(value=""),
        }
        self._refresh_type()
        self._refresh_share_options()
        self._refresh_enabled()

    def _account_options(self) -> List[FieldOption]:
        return [
            FieldOption(key=a.name, text=a.name)
            for a in self._accounts.values()
            if self._flags.supports_blob_storage or a.kind != StorageKind.BLOB_STORAGE
        ]

    def _selected_account(self) -> Optional[StorageAccount]:
        return self._accounts.get(self._fields[ACCOUNT_NAME_FIELD].value)

    @property
    def mode(self) -> StorageMode:
        try:
            return StorageMode(self._fields[TYPE_FIELD].value)
        except ValueError:
            return self._default_mode

    def _refresh_type(self) -> None:
        state = self._fields[TYPE_FIELD]
        caps = self._capabilities
        state.options = [
            FieldOption(
                key=StorageMode.AZURE_BLOB.value,
                text=self._messages.t("azureBlob"),
                disabled=caps is not None and not caps.blob_containers,
            ),
            FieldOption(
                key=StorageMode.AZURE_FILES.value,
                text=self._messages.t("azureFiles"),
                disabled=caps is not None and not caps.file_shares,
            ),
        ]
        account = self._selected_account()
        state.visible = self._flags.supports_blob_storage and (
            account is None or account.kind != StorageKind.BLOB_STORAGE
        )

    def _refresh_share_options(self) -> None:
        state = self._fields[SHARE_NAME_FIELD]
        if self._capabilities is None:
            state.options = []
        else:
            state.options = [
                FieldOption(key=name, text=name)
                for name in self._capabilities.items_for(self.mode)
            ]
        state.placeholder = self._messages.t("loading" if self._pending else "selectAnOption")
        if not _is_empty(state.value) and state.value not in {o.key for o in state.options}:
            state.value = ""
            state.touched = False

    def _refresh_enabled(self) -> None:
        """Dependent fields are editable only once discovery produced options."""
        caps = self._capabilities
        available = (
            not self._pending
            and caps is not None
            and self._banner.category != BannerCategory.ACCESS_DENIED
        )
        self._fields[TYPE_FIELD].enabled = available
        self._fields[SHARE_NAME_FIELD].enabled = available and bool(caps.items_for(self.mode))

    def notices(self) -> List[Notice]:
        if self.mode == StorageMode.AZURE_BLOB and self._flags.show_warning_banner:
            return [Notice(key=READONLY_BLOB_NOTICE, message=self._messages.t(READONLY_BLOB_NOTICE))]
        return []

    def begin_pending(self, key: Optional[SelectionKey]) -> None:
        self._pending = True
        self._banner = NO_BANNER
        self._capabilities = None

        account = self._fields[ACCOUNT_NAME_FIELD]
        account.value = key or ""
        account.error = None

        mode = self._fields[TYPE_FIELD]
        mode.value = self._default_mode.value
        mode.touched = False

        share = self._fields[SHARE_NAME_FIELD]
        share.value = ""
        share.touched = False

        self._fields[ACCESS_KEY_FIELD].value = None
        self._refresh_type()
        self._refresh_share_options()
        self._refresh_enabled()
        self._revalidate()

    def merge(
        self,
        result: DiscoveryResult,
        banner: ErrorBanner,
        forced_mode: Optional[StorageMode] = None,
    ) -> None:
        self._pending = False
        self._banner = banner
        caps = result.capabilities
        self._capabilities = caps if isinstance(caps, StorageCapabilities) else None

        if not self._flags.supports_blob_storage:
            forced_mode = StorageMode.AZURE_FILES
        if forced_mode is not None:
            self._fields[TYPE_FIELD].value = forced_mode.value

        self._fields[ACCESS_KEY_FIELD].value = (
            self._capabilities.access_key if self._capabilities else None
        )
        self._refresh_type()
        self._refresh_share_options()
        self._refresh_enabled()
        self._revalidate()
        if banner.active:
            self._fields[ACCOUNT_NAME_FIELD].error = banner.message

    def _after_edit(self, name: str) -> None:
        if name == TYPE_FIELD:
            self._refresh_share_options()
            self._refresh_enabled()

    def validate(self, name: str, value: Any) -> Optional[str]:
        if name in (ACCOUNT_NAME_FIELD, TYPE_FIELD, SHARE_NAME_FIELD) and self._pending:
            return self._messages.t("validation_discoveryPending")
        if name == ACCOUNT_NAME_FIELD:
            if self._banner.active:
                return self._banner.message
            return self._required(value) or self._member_of(name, value)
        if name == TYPE_FIELD:
            touched = self._fields[TYPE_FIELD].touched
            return self._required(value) or self._member_of(name, value, allow_disabled=not touched)
        if name == SHARE_NAME_FIELD:
            return self._required(value) or self._member_of(name, value)
        if name in (MOUNT_NAME_FIELD, MOUNT_PATH_FIELD):
            return self._required(value)
        if name == ACCESS_KEY_FIELD:
            return None
        raise UnknownFieldError(name)


# =============================================================================
# Function form
# =============================================================================


class FunctionFormProjector(FormStateProjector):
    """Fields of the function creation form.

    Besides the template picker and the function name, one field is generated
    per binding setting the template prompts for. Generated fields are
    replaced wholesale on every accepted result.
    """

    selection_field = TEMPLATE_FIELD

    def __init__(
        self,
        templates: Sequence[FunctionTemplate],
        resolver: Optional[FallbackResolver] = None,
        messages: Optional[MessageCatalog] = None,
        default_function_name: Optional[str] = None,
    ):
        super().__init__(messages)
        self._templates = {t.id: t for t in templates}
        self._resolver = resolver or FallbackResolver()
        self._default_function_name = default_function_name or get_default_function_name()
        self._descriptors: Dict[str, FieldDescriptor] = {}
        self._functions: List[FunctionRecord] = []

        self._fields = {
            TEMPLATE_FIELD: FieldState(
                value="",
                options=[FieldOption(key=t.id, text=t.name) for t in templates],
            ),
            FUNCTION_NAME_FIELD: FieldState(value=self._default_function_name),
        }

    def descriptors(self) -> List[FieldDescriptor]:
        return list(self._descriptors.values())

    def _template_default_name(self, key: Optional[SelectionKey]) -> str:
        template = self._templates.get(key) if key is not None else None
        if template is not None and template.default_function_name:
            return template.default_function_name
        return self._default_function_name

    def _drop_generated(self) -> None:
        for name in self._descriptors:
            self._fields.pop(name, None)
        self._descriptors = {}

    def begin_pending(self, key: Optional[SelectionKey]) -> None:
        self._pending = True
        self._banner = NO_BANNER
        self._drop_generated()

        template = self._fields[TEMPLATE_FIELD]
        template.value = key or ""
        template.error = None

        name = self._fields[FUNCTION_NAME_FIELD]
        if not name.touched:
            name.value = self._template_default_name(key)
        self._revalidate()

    def merge(
        self,
        result: DiscoveryResult,
        banner: ErrorBanner,
        forced_mode: Optional[StorageMode] = None,
    ) -> None:
        self._pending = False
        self._banner = banner
        self._drop_generated()

        caps = result.capabilities
        template = self._templates.get(result.tag.key) if result.tag.key else None
        if isinstance(caps, BindingCapabilities) and template is not None:
            self._functions = list(caps.functions)
            bindings = self._resolver.filter_settings(caps.bindings, template.user_prompt)
            builder = CreateFunctionFormBuilder(
                bindings,
                caps.functions,
                self._template_default_name(template.id),
                rg_write_permission=caps.rg_write,
                sub_write_permission=caps.sub_write,
            )
            name = self._fields[FUNCTION_NAME_FIELD]
            if not name.touched:
                name.value = builder.function_name()
            for descriptor in builder.build():
                if descriptor.name in self._fields:
                    logger.warning("Setting %s shadows a form field, skipping", descriptor.name)
                    continue
                self._descriptors[descriptor.name] = descriptor
                self._fields[descriptor.name] = FieldState(
                    value=descriptor.default,
                    options=list(descriptor.options),
                )
        self._revalidate()

    def validate(self, name: str, value: Any) -> Optional[str]:
        if name == TEMPLATE_FIELD:
            if self._pending:
                return self._messages.t("validation_discoveryPending")
            return self._required(value) or self._member_of(name, value)
        if name == FUNCTION_NAME_FIELD:
            return self._validate_function_name(value)
        descriptor = self._descriptors.get(name)
        if descriptor is None:
            raise UnknownFieldError(name)
        return self._validate_generated(descriptor, value)

    def _validate_function_name(self, value: Any) -> Optional[str]:
        if self._pending:
            return self._messages.t("validation_discoveryPending")
        error = self._required(value)
        if error:
            return error
        if not FUNCTION_NAME_PATTERN.match(str(value)):
            return self._messages.t("validation_functionNameInvalid")
        if str(value).lower() in {f.name.lower() for f in self._functions}:
            return self._messages.t("validation_functionNameExists")
        return None

    def _validate_generated(self, descriptor: FieldDescriptor, value: Any) -> Optional[str]:
        if descriptor.required and descriptor.kind != FieldKind.CHECKBOX:
            error = self._required(value)
            if error:
                return error
        if _is_empty(value):
            return None
        if descriptor.kind == FieldKind.NUMBER:
            try:
                int(str(value))
            except ValueError:
                return self._messages.t("validation_intRequired")
            return None
        if descriptor.kind == FieldKind.DROPDOWN:
            return self._member_of(descriptor.name, value)
        if descriptor.kind == FieldKind.MULTI_SELECT:
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                error = self._member_of(descriptor.name, item)
                if error:
                    return error
        return None
