"""
Service contract package.

Provides the parameter contract model, interface resolution, context
validation, and context coercion for callable services.
"""

from .errors import (
    ContractError,
    ContractDefinitionError,
    RecursionLimitExceeded,
    ServiceValidationError,
    MissingRequiredParameter,
    UnknownParameter,
    TypeMismatch,
    HtmlPolicyViolation,
    ContractWarning,
    DanglingOverride,
    UnresolvedInterfaceReference,
    TypeConversionFailure,
)
from .modes import IN, OUT, INOUT, IN_SYS, OUT_SYS, INOUT_SYS
from .params import AllowHtml, ParamSpec, ParamValidator, OverrideParam
from .registry import (
    ServiceContract,
    InterfaceRef,
    PermissionSpec,
    SemaphorePolicy,
    LogLevel,
    ContractRegistry,
)
from .resolve import InterfaceResolver
from .validate import validate, is_valid
from .normalize import MakeValidOptions, make_valid, coerce, apply_defaults, apply_type_convert
from .semantic_types import Locale

__all__ = [
    'ContractError',
    'ContractDefinitionError',
    'RecursionLimitExceeded',
    'ServiceValidationError',
    'MissingRequiredParameter',
    'UnknownParameter',
    'TypeMismatch',
    'HtmlPolicyViolation',
    'ContractWarning',
    'DanglingOverride',
    'UnresolvedInterfaceReference',
    'TypeConversionFailure',
    'IN',
    'OUT',
    'INOUT',
    'IN_SYS',
    'OUT_SYS',
    'INOUT_SYS',
    'AllowHtml',
    'ParamSpec',
    'ParamValidator',
    'OverrideParam',
    'ServiceContract',
    'InterfaceRef',
    'PermissionSpec',
    'SemaphorePolicy',
    'LogLevel',
    'ContractRegistry',
    'InterfaceResolver',
    'validate',
    'is_valid',
    'MakeValidOptions',
    'make_valid',
    'coerce',
    'apply_defaults',
    'apply_type_convert',
    'Locale',
]
