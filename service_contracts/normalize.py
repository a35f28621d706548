"""
Context coercion - builds a service-ready context from a loosely-typed one.

Handles:
- Type conversion to each parameter's declared type (locale/time zone aware)
- Name prefixing (source 'shipCity' -> target 'city' with name_prefix='ship')
- Grouping: keys sharing a string_map_prefix -> nested dict,
  keys sharing a string_list_suffix -> list
- Default values (apply_defaults)
- In-place conversion of type_convert parameters (apply_type_convert)

Coercion never raises on bad values: conversion failures are appended to
the caller's error list and logged, and the original value is passed through
for the validator to judge.
"""

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from . import config
from .convert import default_locale, default_timezone, simple_type_convert, to_locale, to_timezone
from .errors import ContractDefinitionError, TypeConversionFailure
from .modes import LOCALE, PARAM_MODES, PARAM_MODE_IO_MAP, TIMEZONE, matches
from .params import ParamSpec
from .registry import ServiceContract
from .semantic_types import Locale

logger = logging.getLogger(__name__)


@dataclass
class MakeValidOptions:
    """
    Options for make_valid(). Every field is independent.

    include_internal: also copy internal parameters
    target: map to fill (a new dict when None)
    name_prefix: prefix of the keys read from source
    to_name_prefix: prefix of the keys written to target
    locale / tz: conversion locale and time zone; derived from the source's
        reserved 'locale'/'timeZone' keys, else the system default
    error_messages: sink for TypeConversionFailure instances (discarded when None)
    """
    include_internal: bool = True
    target: Optional[MutableMapping[str, Any]] = None
    name_prefix: Optional[str] = None
    to_name_prefix: Optional[str] = None
    locale: Optional[Locale] = None
    tz: Optional[tzinfo] = None
    error_messages: Optional[List[TypeConversionFailure]] = None


def prefixed_name(prefix: Optional[str], name: str) -> str:
    """Camel-case prefixing: ('ship', 'city') -> 'shipCity'."""
    if not prefix:
        return name
    return prefix + name[:1].upper() + name[1:]


def make_valid(
    contract: ServiceContract,
    mode: str,
    source: Optional[Mapping[str, Any]],
    options: Optional[MakeValidOptions] = None,
) -> MutableMapping[str, Any]:
    """
    Build a context holding only the parameters of contract for mode.

    Args:
        contract: Resolved contract
        mode: IN, OUT, INOUT, or a *-SYS variant (only the reserved system
            parameters, then treated as the base direction)
        source: Loosely-typed input map
        options: MakeValidOptions; defaults when None

    Returns:
        The target map

    Raises:
        ContractDefinitionError: If mode is not a parameter mode
    """
    if mode not in PARAM_MODES:
        raise ContractDefinitionError(f"Invalid coercion mode '{mode}' for service [{contract.name}] (supported: {PARAM_MODES})")
    options = options or MakeValidOptions()
    source = source or {}
    target = options.target if options.target is not None else {}
    sink = options.error_messages

    locale = options.locale or context_locale(source, sink)
    tz = options.tz or context_timezone(source, sink)

    direction = PARAM_MODE_IO_MAP[mode]
    params = contract.params_for_mode(mode)
    if params is None:
        params = contract.param_list()

    for param in params:
        if not matches(param.mode, direction):
            continue
        if param.internal and not options.include_internal:
            continue

        source_key = prefixed_name(options.name_prefix, param.name)
        target_key = prefixed_name(options.to_name_prefix, param.name)

        if source_key in source:
            target[target_key] = _convert(contract, param, source[source_key], locale, tz, sink)
        elif param.string_map_prefix:
            grouped = make_prefix_map(source, prefixed_name(options.name_prefix, param.string_map_prefix))
            if grouped:
                target[target_key] = grouped
        elif param.string_list_suffix:
            grouped = make_suffix_list(source, param.string_list_suffix)
            if grouped:
                target[target_key] = grouped
    return target


# make_valid is the coercion entry point
coerce = make_valid


def make_prefix_map(source: Mapping[str, Any], prefix: str) -> Dict[str, Any]:
    """Entries whose key starts with prefix, keyed by the rest of the key."""
    return {key[len(prefix):]: value for key, value in source.items() if key.startswith(prefix)}


def make_suffix_list(source: Mapping[str, Any], suffix: str) -> List[Any]:
    """Values whose key ends with suffix, in source order."""
    return [value for key, value in source.items() if key.endswith(suffix)]


def apply_defaults(contract: ServiceContract, context: MutableMapping[str, Any], mode: str) -> None:
    """
    Fill every null parameter of the given direction from its default, in place.

    Environment:
        SERVICE_CONTRACTS_LOG_DEFAULTS: log each applied default at INFO
    """
    direction = PARAM_MODE_IO_MAP.get(mode, mode)
    log_applied = (config.log_defaults_enabled() or contract.debug) and not contract.quiet
    for param in contract.param_list():
        if not matches(param.mode, direction) or param.default_value is None:
            continue
        if context.get(param.name) is not None:
            continue
        value = param.default()
        context[param.name] = value
        if log_applied:
            logger.info(f"Set default value [{value!r}] for parameter [{contract.name}.{param.name}]")


def apply_type_convert(
    contract: ServiceContract,
    context: MutableMapping[str, Any],
    mode: str,
    locale: Optional[Locale] = None,
    tz: Optional[tzinfo] = None,
    error_messages: Optional[List[TypeConversionFailure]] = None,
) -> None:
    """Convert the present values of type_convert parameters in place."""
    params = contract.type_convert_params()
    if not params:
        return
    direction = PARAM_MODE_IO_MAP.get(mode, mode)
    locale = locale or context_locale(context, error_messages)
    tz = tz or context_timezone(context, error_messages)
    for param in params:
        if not matches(param.mode, direction):
            continue
        value = context.get(param.name)
        if value is not None:
            context[param.name] = _convert(contract, param, value, locale, tz, error_messages)


# =============================================================================
# LOCALE / TIME ZONE
# =============================================================================

def context_locale(source: Mapping[str, Any], sink: Optional[list] = None) -> Locale:
    """The locale carried by source under 'locale', else the system default."""
    if source.get(LOCALE) is not None:
        try:
            locale = to_locale(source[LOCALE], field=LOCALE)
        except TypeConversionFailure as e:
            _record(e, None, sink)
        else:
            if locale is not None:
                return locale
    return default_locale()


def context_timezone(source: Mapping[str, Any], sink: Optional[list] = None) -> tzinfo:
    """The time zone carried by source under 'timeZone', else the system default."""
    if source.get(TIMEZONE) is not None:
        try:
            tz = to_timezone(source[TIMEZONE], field=TIMEZONE)
        except TypeConversionFailure as e:
            _record(e, None, sink)
        else:
            if tz is not None:
                return tz
    return default_timezone()


# =============================================================================
# HELPERS
# =============================================================================

def _convert(
    contract: ServiceContract,
    param: ParamSpec,
    value: Any,
    locale: Locale,
    tz: tzinfo,
    sink: Optional[list],
) -> Any:
    try:
        return simple_type_convert(value, param.type, locale=locale, tz=tz, field=param.name)
    except TypeConversionFailure as e:
        _record(e, contract, sink)
        return value


def _record(error: TypeConversionFailure, contract: Optional[ServiceContract], sink: Optional[list]) -> None:
    service = contract.name if contract is not None else None
    logger.warning(
        f"Type conversion of [{error.field}] failed for service [{service}]: {error}",
        extra={"event": "type_conversion_failure", "service": service, "param": error.field},
    )
    if sink is not None:
        sink.append(error)
