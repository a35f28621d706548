"""
Value Conversion Utilities
==========================

Single source of truth for converting loosely-typed context values to the
semantic type a parameter declares. Numbers honour the locale's separators,
timestamps honour the time zone.

Usage:
    from service_contracts.convert import simple_type_convert, to_locale

    value = simple_type_convert("1.234,5", "BigDecimal", locale=to_locale("de_DE"))
    # Decimal('1234.5')

Every converter raises TypeConversionFailure when the value cannot be
converted; callers that must not fail (make_valid) catch it and pass the
original value through.
"""

import json
from datetime import date, datetime, time, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser
from dateutil import tz as dateutil_tz

from . import config
from .errors import TypeConversionFailure
from .semantic_types import (
    FLOATING_TYPES,
    INTEGRAL_TYPES,
    Locale,
    canonical_type,
    instance_of,
)

# Languages whose number format uses a decimal comma
DECIMAL_COMMA_LANGUAGES = {
    'de', 'fr', 'es', 'it', 'pt', 'nl', 'ru', 'pl', 'sv', 'da', 'nb', 'fi', 'cs', 'tr', 'id',
}

TRUE_STRINGS = ('true', '1', 'yes', 'on', 'y')
FALSE_STRINGS = ('false', '0', 'no', 'off', 'n')


def _fail(expected: str, value: Any, field: str = None, type_name: str = None) -> TypeConversionFailure:
    return TypeConversionFailure(
        f"Expected {expected}, got {type(value).__name__}: {value!r}",
        field=field,
        type_name=type_name or expected,
        value=value,
    )


# ============================================================================
# LOCALE / TIME ZONE
# ============================================================================

def to_locale(value: Any, *, field: str = None) -> Optional[Locale]:
    """
    Convert 'en_US', 'en-US' or 'en' to a Locale.

    Raises:
        TypeConversionFailure: If value is not a locale string
    """
    if value is None or value == "":
        return None
    if isinstance(value, Locale):
        return value
    if not isinstance(value, str):
        raise _fail("Locale", value, field)
    parts = value.strip().replace('-', '_').split('_')
    language = parts[0].lower()
    if not language.isalpha() or not 2 <= len(language) <= 8:
        raise _fail("Locale", value, field)
    country = parts[1].upper() if len(parts) > 1 else ""
    variant = "_".join(parts[2:]) if len(parts) > 2 else ""
    if country and not country.isalnum():
        raise _fail("Locale", value, field)
    return Locale(language, country, variant)


def to_timezone(value: Any, *, field: str = None) -> Optional[tzinfo]:
    """
    Convert an IANA zone name ('Europe/Berlin', 'UTC') to a tzinfo.

    Raises:
        TypeConversionFailure: If the zone is unknown
    """
    if value is None or value == "":
        return None
    if isinstance(value, tzinfo):
        return value
    if not isinstance(value, str):
        raise _fail("TimeZone", value, field)
    try:
        return ZoneInfo(value.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # Directory names such as 'America' surface as OSError
        raise _fail("TimeZone", value, field)


def default_locale() -> Locale:
    """The configured system-default locale."""
    try:
        return to_locale(config.get_default_locale_name())
    except TypeConversionFailure:
        return Locale('en', 'US')


def default_timezone() -> tzinfo:
    """The configured system-default time zone (host zone when unset)."""
    name = config.get_default_timezone_name()
    if name:
        try:
            return to_timezone(name)
        except TypeConversionFailure:
            pass
    return dateutil_tz.tzlocal()


def number_separators(locale: Optional[Locale]) -> Tuple[str, str]:
    """(decimal separator, grouping separator) for a locale."""
    if locale is not None and locale.language in DECIMAL_COMMA_LANGUAGES:
        return ',', '.'
    return '.', ','


def _normalize_number(value: str, locale: Optional[Locale]) -> str:
    decimal_sep, group_sep = number_separators(locale)
    text = value.strip().replace('\u00a0', '').replace(' ', '')
    text = text.replace(group_sep, '')
    if decimal_sep != '.':
        text = text.replace(decimal_sep, '.')
    return text


# ============================================================================
# SCALARS
# ============================================================================

def to_int(value: Any, *, locale: Locale = None, field: str = None) -> Optional[int]:
    """
    Convert to int, honouring the locale's grouping separator.

    Integral floats/Decimals are accepted; fractional values are not.

    Raises:
        TypeConversionFailure: If value cannot be converted to int
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise _fail("int", value, field)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        # NaN and infinity have no integer value
        try:
            integral = int(value)
            exact = value == integral
        except (ValueError, OverflowError, ArithmeticError):
            raise _fail("int", value, field)
        if exact:
            return integral
        raise _fail("int", value, field)
    try:
        return int(_normalize_number(str(value), locale))
    except (ValueError, TypeError):
        raise _fail("int", value, field)


def to_float(value: Any, *, locale: Locale = None, field: str = None) -> Optional[float]:
    """
    Convert to float, honouring the locale's separators.

    Raises:
        TypeConversionFailure: If value cannot be converted to float
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise _fail("float", value, field)
    if isinstance(value, (int, float, Decimal)):
        try:
            return float(value)
        except (ValueError, OverflowError):
            raise _fail("float", value, field)
    try:
        return float(_normalize_number(str(value), locale))
    except (ValueError, TypeError):
        raise _fail("float", value, field)


def to_decimal(value: Any, *, locale: Locale = None, field: str = None) -> Optional[Decimal]:
    """
    Convert to Decimal, honouring the locale's separators.

    Raises:
        TypeConversionFailure: If value cannot be converted to Decimal
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise _fail("Decimal", value, field)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(_normalize_number(str(value), locale))
    except (InvalidOperation, ValueError, TypeError):
        raise _fail("Decimal", value, field)


def to_bool(value: Any, *, field: str = None) -> Optional[bool]:
    """
    Convert to bool.

    Accepts (case-insensitive):
        True: 'true', '1', 'yes', 'on', 'y'
        False: 'false', '0', 'no', 'off', 'n'

    Raises:
        TypeConversionFailure: If value is not a recognized boolean
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    lower = str(value).strip().lower()
    if lower in TRUE_STRINGS:
        return True
    if lower in FALSE_STRINGS:
        return False
    raise _fail("bool", value, field)


def to_date(value: Any, *, field: str = None) -> Optional[date]:
    """
    Convert to a date.

    Accepts formats:
        - YYYY-MM-DD (full date)
        - YYYY-MM (first of month)
        - ISO datetime strings (date part)
        - date / datetime objects

    Raises:
        TypeConversionFailure: If value cannot be parsed as date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise _fail("date (YYYY-MM-DD)", value, field, "Date")
    text = value.strip()
    try:
        if len(text) == 7:  # YYYY-MM
            return datetime.strptime(text, "%Y-%m").date()
        if len(text) == 10:
            return datetime.strptime(text, "%Y-%m-%d").date()
        return date_parser.isoparse(text).date()
    except (ValueError, OverflowError):
        raise _fail("date (YYYY-MM-DD)", value, field, "Date")


def to_datetime(value: Any, *, tz: tzinfo = None, field: str = None) -> Optional[datetime]:
    """
    Convert to a datetime; naive results are localized to tz.

    Accepts formats:
        - ISO 8601 (e.g. 2024-01-15T10:30:00Z)
        - free-form date strings dateutil understands
        - date objects (midnight) and epoch milliseconds

    Raises:
        TypeConversionFailure: If value cannot be parsed as datetime
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    zone = tz or timezone.utc
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=zone)
    if isinstance(value, bool):
        raise _fail("datetime", value, field, "Timestamp")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=zone)
        except (OverflowError, OSError, ValueError):
            raise _fail("datetime", value, field, "Timestamp")
    if not isinstance(value, str):
        raise _fail("datetime", value, field, "Timestamp")
    text = value.strip()
    try:
        parsed = date_parser.isoparse(text)
    except ValueError:
        try:
            parsed = date_parser.parse(text)
        except (ValueError, OverflowError):
            raise _fail("datetime", value, field, "Timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


def to_time(value: Any, *, field: str = None) -> Optional[time]:
    """Convert 'HH:MM[:SS]' strings or datetimes to a time."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    if not isinstance(value, str):
        raise _fail("time (HH:MM:SS)", value, field, "Time")
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        raise _fail("time (HH:MM:SS)", value, field, "Time")


def to_str(value: Any, *, locale: Locale = None, field: str = None) -> Optional[str]:
    """
    Convert a scalar to its string form.

    Dates are ISO formatted, bools are 'true'/'false', and fractional numbers
    use the locale's decimal separator.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, ZoneInfo):
        return value.key
    if isinstance(value, (float, Decimal)):
        decimal_sep, _ = number_separators(locale)
        return str(value).replace('.', decimal_sep)
    if isinstance(value, (int, Locale)):
        return str(value)
    raise _fail("string-convertible scalar", value, field, "String")


def to_list(value: Any, *, separator: str = ",", field: str = None) -> Optional[list]:
    """
    Convert to list.

    Accepts lists, tuples, sets, and strings like "a,b,c" or "[a, b, c]".
    """
    if value is None or value == "":
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    if not isinstance(value, str):
        raise _fail("list", value, field, "List")
    text = value.strip()
    if text.startswith('[') and text.endswith(']'):
        text = text[1:-1]
    return [item.strip() for item in text.split(separator) if item.strip()]


def to_map(value: Any, *, field: str = None) -> Optional[dict]:
    """Convert a JSON object string to a dict; mappings pass through."""
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            raise _fail("map (JSON object)", value, field, "Map")
        if isinstance(parsed, dict):
            return parsed
    raise _fail("map (JSON object)", value, field, "Map")


# ============================================================================
# DISPATCH BY SEMANTIC TYPE
# ============================================================================

def simple_type_convert(
    value: Any,
    type_name: str,
    *,
    locale: Locale = None,
    tz: tzinfo = None,
    field: str = None,
) -> Any:
    """
    Convert value to the semantic type type_name.

    Values already of the right type are returned unchanged. Empty strings
    become None for every type except String. Domain types (unknown tags)
    are returned unchanged.

    Raises:
        TypeConversionFailure: If value cannot be converted
    """
    canonical = canonical_type(type_name)
    if value is None or canonical is None or canonical in ("Object", "GenericValue", "GenericEntity"):
        return value
    if canonical != "String" and value == "":
        return None
    if canonical not in FLOATING_TYPES and canonical != "BigDecimal" and instance_of(value, canonical):
        return value

    try:
        if canonical == "String":
            return to_str(value, locale=locale, field=field)
        if canonical == "Boolean":
            return to_bool(value, field=field)
        if canonical in INTEGRAL_TYPES:
            return to_int(value, locale=locale, field=field)
        if canonical in FLOATING_TYPES:
            return value if isinstance(value, float) else to_float(value, locale=locale, field=field)
        if canonical == "BigDecimal":
            return to_decimal(value, locale=locale, field=field)
        if canonical == "Timestamp":
            return to_datetime(value, tz=tz, field=field)
        if canonical == "Date":
            return to_date(value, field=field)
        if canonical == "Time":
            return to_time(value, field=field)
        if canonical in ("List", "Collection"):
            return to_list(value, field=field)
        if canonical == "Set":
            converted = to_list(value, field=field)
            return set(converted) if converted is not None else None
        if canonical == "Map":
            return to_map(value, field=field)
        if canonical == "Locale":
            return to_locale(value, field=field)
        if canonical == "TimeZone":
            return to_timezone(value, field=field)
    except TypeConversionFailure as e:
        e.field = field
        e.type_name = type_name
        raise
    return value
