"""
Error taxonomy for service contracts.

Three families:
- Fatal resolution errors (RecursionLimitExceeded) abort the whole chain.
- Validation errors (ServiceValidationError subclasses) are raised once per
  check with the COMPLETE list of violations found at that check.
- Warnings (ContractWarning subclasses) and TypeConversionFailure are
  collected and logged; resolution and coercion never raise them.
"""

from typing import Any, Dict, List, Optional


class ContractError(Exception):
    """Base class for all service contract errors."""


class ContractDefinitionError(ContractError, ValueError):
    """Raised when a contract definition is structurally invalid."""


class RecursionLimitExceeded(ContractError):
    """Raised when interface resolution exceeds the recursion ceiling."""

    def __init__(self, service: str, limit: int):
        super().__init__(
            f"Interface resolution stack overflow for service [{service}]; "
            f"{limit} nested calls reached"
        )
        self.service = service
        self.limit = limit


# =============================================================================
# VALIDATION
# =============================================================================

class ServiceValidationError(ContractError):
    """
    Raised when a context fails validation against a contract.

    Carries every violation found by the failing check, so callers get the
    full diagnostic in one round trip.
    """

    error_code = "validation_failed"

    def __init__(
        self,
        messages: List[str],
        service: str,
        mode: str,
        names: Optional[List[str]] = None,
    ):
        self.messages = list(messages)
        self.service = service
        self.mode = mode
        self.names = list(names or [])
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return f"{len(self.messages)} {self.error_code} error(s) for service [{self.service}] ({self.mode})"

    def __str__(self):
        return "; ".join(self.messages) if self.messages else self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": self.error_code,
            "message": self.message,
            "service": self.service,
            "mode": self.mode,
            "names": self.names,
            "messages": self.messages,
        }


class MissingRequiredParameter(ServiceValidationError):
    error_code = "missing_required"


class UnknownParameter(ServiceValidationError):
    error_code = "unknown_parameter"


class TypeMismatch(ServiceValidationError):
    error_code = "type_mismatch"


class HtmlPolicyViolation(ServiceValidationError):
    error_code = "html_policy"


# =============================================================================
# NON-FATAL
# =============================================================================

class ContractWarning(ContractError):
    """Non-fatal resolution issue. Logged and returned, never raised."""

    def __init__(self, message: str, service: str, name: str):
        super().__init__(message)
        self.service = service
        self.name = name


class DanglingOverride(ContractWarning):
    def __init__(self, service: str, name: str):
        super().__init__(
            f"Override param found but no parameter existing; ignoring: {service}.{name}",
            service,
            name,
        )


class UnresolvedInterfaceReference(ContractWarning):
    def __init__(self, service: str, name: str):
        super().__init__(
            f"Inherited model [{name}] not found for [{service}]",
            service,
            name,
        )


class TypeConversionFailure(ContractError):
    """A value could not be converted to a parameter's semantic type."""

    def __init__(self, message: str, field: str = None, type_name: str = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.type_name = type_name
        self.value = value
