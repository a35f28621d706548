"""
Semantic type tags and the structural type check.

Parameter types are strings ("String", "Long", "java.math.BigDecimal", or a
domain type such as "Product"). Known tags map to a canonical short name;
anything else is a domain type that this module cannot check structurally.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from typing import Any, Optional

_CANONICAL = [
    "String", "Boolean", "Integer", "Long", "Float", "Double", "BigDecimal",
    "BigInteger", "Timestamp", "Date", "Time", "List", "Map", "Set",
    "Collection", "Locale", "TimeZone", "Object", "GenericValue", "GenericEntity",
]

TYPE_ALIASES = {name: name for name in _CANONICAL}
TYPE_ALIASES.update({
    "java.lang.String": "String",
    "java.lang.Boolean": "Boolean",
    "java.lang.Integer": "Integer",
    "java.lang.Long": "Long",
    "java.lang.Float": "Float",
    "java.lang.Double": "Double",
    "java.lang.Object": "Object",
    "java.math.BigDecimal": "BigDecimal",
    "java.math.BigInteger": "BigInteger",
    "java.sql.Timestamp": "Timestamp",
    "java.sql.Date": "Date",
    "java.sql.Time": "Time",
    "java.util.List": "List",
    "java.util.Map": "Map",
    "java.util.Set": "Set",
    "java.util.Collection": "Collection",
    "java.util.Locale": "Locale",
    "java.util.TimeZone": "TimeZone",
})

INTEGRAL_TYPES = ("Integer", "Long", "BigInteger")
FLOATING_TYPES = ("Float", "Double")


@dataclass(frozen=True)
class Locale:
    """Language/country/variant triple, e.g. Locale('en', 'US')."""
    language: str
    country: str = ""
    variant: str = ""

    def __str__(self):
        return "_".join(part for part in (self.language, self.country, self.variant) if part)


def canonical_type(type_name: Optional[str]) -> Optional[str]:
    """Canonical short name for a known type tag, None for domain types."""
    if not type_name:
        return None
    return TYPE_ALIASES.get(type_name)


def is_string_type(type_name: Optional[str]) -> bool:
    return canonical_type(type_name) == "String"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def instance_of(value: Any, type_name: Optional[str]) -> bool:
    """
    Check if value is compatible with a semantic type.

    Handles special cases:
    - None is compatible with every type (presence is checked elsewhere)
    - int is accepted for Float/Double/BigDecimal (numeric flexibility)
    - bool is never an integer
    - domain types accept any value
    """
    if value is None:
        return True
    canonical = canonical_type(type_name)
    if canonical is None or canonical == "Object":
        return True

    if canonical == "String":
        return isinstance(value, str)
    if canonical == "Boolean":
        return isinstance(value, bool)
    if canonical in INTEGRAL_TYPES:
        return _is_int(value)
    if canonical in FLOATING_TYPES:
        return isinstance(value, float) or _is_int(value)
    if canonical == "BigDecimal":
        return isinstance(value, Decimal) or _is_int(value)
    if canonical == "Timestamp":
        return isinstance(value, datetime)
    if canonical == "Date":
        return isinstance(value, date) and not isinstance(value, datetime)
    if canonical == "Time":
        return isinstance(value, time)
    if canonical == "List":
        return isinstance(value, (list, tuple))
    if canonical == "Set":
        return isinstance(value, (set, frozenset))
    if canonical == "Collection":
        return isinstance(value, (list, tuple, set, frozenset))
    if canonical in ("Map", "GenericValue", "GenericEntity"):
        return isinstance(value, Mapping)
    if canonical == "Locale":
        return isinstance(value, Locale)
    if canonical == "TimeZone":
        return isinstance(value, tzinfo)
    return True
