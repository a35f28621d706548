"""
Context validation against a resolved contract.

validate() checks, in order:
- OUT contexts reporting an error/fail response skip validation entirely
- Required parameters are present and non-null
- No undeclared keys are present
- Present values pass their validators (or the declared type check)
- String IN parameters carry no markup unless allow_html is 'any'

Each check collects every violation it finds and raises one
ServiceValidationError subclass carrying all of them; later checks do not
run once one has failed.
"""

import logging
from typing import Any, List, Mapping, Optional

from .convert import to_str
from .errors import (
    ContractDefinitionError,
    HtmlPolicyViolation,
    MissingRequiredParameter,
    ServiceValidationError,
    TypeConversionFailure,
    TypeMismatch,
    UnknownParameter,
)
from .markup import markup_errors
from .modes import IN, OUT, PARAM_MODE_PARAMS_MAP, is_error_response, mode_io
from .params import AllowHtml, ParamSpec, ParamValidator
from .registry import ServiceContract
from .semantic_types import Locale, canonical_type, instance_of, is_string_type

logger = logging.getLogger(__name__)


def validate(
    contract: ServiceContract,
    context: Optional[Mapping[str, Any]],
    mode: str,
    locale: Optional[Locale] = None,
    log: bool = True,
) -> None:
    """
    Validate a context for one direction of a contract.

    Args:
        contract: Resolved contract
        context: Argument map (IN) or result map (OUT)
        mode: IN or OUT (IN-SYS/OUT-SYS are treated as IN/OUT)
        locale: Locale for string-input validators
        log: Log the violations at ERROR before raising

    Raises:
        ContractDefinitionError: If mode is not a parameter direction
        MissingRequiredParameter, UnknownParameter, TypeMismatch,
        HtmlPolicyViolation: With the complete list of violations of the
            first failing check
    """
    direction = mode_io(mode) if mode else mode
    if direction not in (IN, OUT):
        raise ContractDefinitionError(f"Invalid validation mode '{mode}' for service [{contract.name}]")
    context = context or {}

    if direction == OUT and is_error_response(context):
        return

    names = contract.params_by_mode(direction)
    required = contract.params_by_mode(direction, include_optional=False)

    try:
        _check_missing(contract, context, direction, required)
        _check_unknown(contract, context, direction, set(names))
        _check_types(contract, context, direction, names, locale)
        if direction == IN:
            _check_markup(contract, context, direction)
    except ServiceValidationError as e:
        if log:
            logger.error(
                f"Service [{contract.name}] {direction} validation failed: {e}",
                extra={"event": e.error_code, "service": contract.name, "names": e.names},
            )
        raise


def is_valid(contract: ServiceContract, context: Optional[Mapping[str, Any]], locale: Optional[Locale] = None) -> bool:
    """True if context passes IN validation."""
    try:
        validate(contract, context, IN, locale=locale, log=False)
    except ServiceValidationError:
        return False
    return True


# =============================================================================
# CHECKS
# =============================================================================

def _check_missing(contract: ServiceContract, context: Mapping[str, Any], direction: str, required: List[str]) -> None:
    missing = [name for name in required if context.get(name) is None]
    if not missing:
        return
    messages = []
    for name in missing:
        fail_message = contract.get_param(name).primary_fail_message()
        messages.append(fail_message or f"The following required parameter is missing: [{contract.name}.{name}]")
    raise MissingRequiredParameter(messages, contract.name, direction, missing)


def _check_unknown(contract: ServiceContract, context: Mapping[str, Any], direction: str, declared: set) -> None:
    # Reserved system keys ride along with every call
    reserved = set(PARAM_MODE_PARAMS_MAP[f"{direction}-SYS"])
    unknown = [key for key in context if key not in declared and key not in reserved]
    if not unknown:
        return
    messages = [f"Unknown parameter found: [{contract.name}.{key}]" for key in unknown]
    raise UnknownParameter(messages, contract.name, direction, unknown)


def _check_types(
    contract: ServiceContract,
    context: Mapping[str, Any],
    direction: str,
    names: List[str],
    locale: Optional[Locale],
) -> None:
    failed: List[str] = []
    messages: List[str] = []
    for name in names:
        value = context.get(name)
        if value is None:
            continue
        param = contract.get_param(name)
        if param.validators:
            errors = [
                msg for validator in param.validators
                for msg in _run_validator(contract, param, validator, value, locale)
            ]
        elif not instance_of(value, param.type):
            errors = [_type_message(contract, param, value)]
        else:
            errors = []
        if errors:
            failed.append(name)
            messages.extend(errors)
    if failed:
        raise TypeMismatch(messages, contract.name, direction, failed)


def _check_markup(contract: ServiceContract, context: Mapping[str, Any], direction: str) -> None:
    failed: List[str] = []
    messages: List[str] = []
    for param in contract.in_params():
        if param.allow_html == AllowHtml.ANY or not is_string_type(param.type):
            continue
        value = context.get(param.name)
        if not isinstance(value, str):
            continue
        errors = markup_errors(f"{contract.name}.{param.name}", value)
        if errors:
            failed.append(param.name)
            messages.extend(errors)
    if failed:
        raise HtmlPolicyViolation(messages, contract.name, direction, failed)


# =============================================================================
# HELPERS
# =============================================================================

def _type_message(contract: ServiceContract, param: ParamSpec, value: Any) -> str:
    expected = canonical_type(param.type) or param.type
    return (
        f"Type check failed for field [{contract.name}.{param.name}]; "
        f"expected type is [{expected}]; actual type is [{type(value).__name__}]"
    )


def _run_validator(
    contract: ServiceContract,
    param: ParamSpec,
    validator: ParamValidator,
    value: Any,
    locale: Optional[Locale],
) -> List[str]:
    """Messages for one failed validator (empty when it passes)."""
    predicate = validator.get_predicate()
    if predicate is None:
        if instance_of(value, param.type):
            return []
        return [validator.fail_message or _type_message(contract, param, value)]

    argument = value
    if validator.string_input:
        try:
            argument = to_str(value, locale=locale, field=param.name)
        except TypeConversionFailure:
            argument = str(value)

    try:
        passed = bool(predicate(argument))
    except Exception:
        logger.exception(
            f"Validator [{validator.name}] raised for field [{contract.name}.{param.name}]",
            extra={"event": "validator_error", "service": contract.name, "param": param.name},
        )
        passed = False
    if passed:
        return []
    return [
        validator.fail_message
        or f"The following parameter failed validation [{validator.name}]: [{contract.name}.{param.name}]"
    ]

