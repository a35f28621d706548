"""
Parameter specifications.

ParamSpec: one named parameter of a service contract (what callers send or
    receive, its semantic type and policies).
ParamValidator: one named validation rule attached to a parameter.
OverrideParam: a partial ParamSpec patch applied after interface inheritance.
    Only the fields a patch explicitly sets are written.
"""

import copy
import importlib
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import ContractDefinitionError
from .modes import PARAM_MODES, PARAM_MODE_IO_MAP, PARAM_MODES_SYS, IN, OUT, INOUT


class AllowHtml(Enum):
    """Markup policy for String parameters."""
    NONE = "none"  # Strict check, no markup at all
    SAFE = "safe"  # Strict check here; sanitizing is left to the caller
    ANY = "any"    # No check


def _collapse_mode(mode: str) -> str:
    if mode not in PARAM_MODES:
        raise ContractDefinitionError(f"Invalid parameter mode '{mode}' (supported: {PARAM_MODES})")
    return PARAM_MODE_IO_MAP[mode]


@lru_cache(maxsize=256)
def load_callable(path: str) -> Callable:
    """Resolve 'package.module:function' to the callable it names."""
    module_name, sep, attr = path.partition(':')
    if not sep or not attr:
        raise ContractDefinitionError(f"Validator path must look like 'module:function', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ContractDefinitionError(f"Unable to find validation method [{attr}] in module [{module_name}]")


@dataclass(frozen=True)
class ParamValidator:
    """
    A named validation rule.

    predicate: callable or 'module:function' import path returning a bool.
        None makes this a type-specific rule: the declared semantic type
        check, reported with this rule's fail_message.
    string_input: pass the string-converted value instead of the raw value.
    """
    name: str
    predicate: Union[Callable[[Any], bool], str, None] = None
    string_input: bool = False
    fail_message: Optional[str] = None

    def get_predicate(self) -> Optional[Callable[[Any], bool]]:
        if self.predicate is None or callable(self.predicate):
            return self.predicate
        return load_callable(self.predicate)


@dataclass
class ParamSpec:
    """Specification for a single service parameter."""
    name: str
    type: str = "String"                 # Semantic type tag, e.g. "Long", "BigDecimal"
    mode: str = IN
    optional: bool = False
    internal: bool = False
    allow_html: AllowHtml = AllowHtml.NONE
    default_value: Any = None            # Value, or zero-arg callable evaluated per use
    string_map_prefix: Optional[str] = None
    string_list_suffix: Optional[str] = None
    validators: List[ParamValidator] = field(default_factory=list)
    type_convert: bool = False
    entity_name: Optional[str] = None
    field_name: Optional[str] = None
    form_label: Optional[str] = None
    form_display: bool = True
    description: str = ""
    system: bool = False

    def __post_init__(self):
        if self.mode in PARAM_MODES_SYS:
            self.system = True
        self.mode = _collapse_mode(self.mode)
        if isinstance(self.allow_html, str):
            self.allow_html = AllowHtml(self.allow_html)
        if self.string_map_prefix and self.string_list_suffix:
            raise ContractDefinitionError(
                f"Parameter '{self.name}' declares both string-map-prefix and string-list-suffix"
            )

    def clone(self) -> "ParamSpec":
        """Independent copy; mutating it never touches the original."""
        return replace(self, validators=list(self.validators))

    @property
    def is_in(self) -> bool:
        return self.mode in (IN, INOUT)

    @property
    def is_out(self) -> bool:
        return self.mode in (OUT, INOUT)

    def default(self) -> Any:
        """Evaluate the default value (callables are invoked on every call)."""
        if callable(self.default_value):
            return self.default_value()
        return copy.deepcopy(self.default_value)

    def primary_fail_message(self) -> Optional[str]:
        """The first validator failure message, used for missing-value errors."""
        for validator in self.validators:
            if validator.fail_message:
                return validator.fail_message
        return None


class OverrideParam(BaseModel):
    """
    Partial ParamSpec patch.

    type/mode/entity_name/field_name/form_label are written when non-empty,
    default_value when not None. form_display, optional and allow_html are
    written only when explicitly set on the patch.
    """
    model_config = ConfigDict(frozen=True, extra='forbid', arbitrary_types_allowed=True)

    name: str
    type: Optional[str] = None
    mode: Optional[str] = None
    entity_name: Optional[str] = None
    field_name: Optional[str] = None
    form_label: Optional[str] = None
    default_value: Any = None
    form_display: Optional[bool] = None
    optional: Optional[bool] = None
    allow_html: Optional[AllowHtml] = None

    @field_validator('mode')
    @classmethod
    def collapse_mode(cls, v):
        if v is None:
            return None
        try:
            return _collapse_mode(v)
        except ContractDefinitionError as e:
            # pydantic wraps ValueError into its own ValidationError
            raise ValueError(str(e))

    def is_explicit(self, field_name: str) -> bool:
        return field_name in self.model_fields_set

    def apply_to(self, param: ParamSpec) -> None:
        """Overwrite the fields of param that this patch sets."""
        if self.type:
            param.type = self.type
        if self.mode:
            param.mode = self.mode
        if self.entity_name:
            param.entity_name = self.entity_name
        if self.field_name:
            param.field_name = self.field_name
        if self.form_label:
            param.form_label = self.form_label
        if self.default_value is not None:
            param.default_value = self.default_value
        if self.is_explicit('form_display') and self.form_display is not None:
            param.form_display = self.form_display
        if self.is_explicit('optional') and self.optional is not None:
            param.optional = self.optional
        if self.is_explicit('allow_html') and self.allow_html is not None:
            param.allow_html = self.allow_html
