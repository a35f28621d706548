"""
Service contract configuration - environment-based settings.

Environment Variables:
    SERVICE_CONTRACTS_MAX_RESOLVE_DEPTH: int (default: 1000)
        Ceiling on nested interface resolution calls. Exceeding it raises
        RecursionLimitExceeded instead of overflowing the stack.

    SERVICE_CONTRACTS_DEFAULT_LOCALE: e.g. 'en_US' (default: 'en_US')
        Locale used for conversion when a context carries none.

    SERVICE_CONTRACTS_DEFAULT_TIMEZONE: IANA name (default: host local zone)
        Time zone used for conversion when a context carries none.

    SERVICE_CONTRACTS_LOG_DEFAULTS: 'true' or 'false' (default: 'false')
        Log every default value applied to a context at INFO.
"""

import os
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESOLVE_DEPTH = 1000
DEFAULT_LOCALE = "en_US"


def get_max_resolve_depth() -> int:
    """
    Get the interface resolution recursion ceiling.

    Environment:
        SERVICE_CONTRACTS_MAX_RESOLVE_DEPTH: default 1000
    """
    raw = os.environ.get('SERVICE_CONTRACTS_MAX_RESOLVE_DEPTH')
    if not raw:
        return DEFAULT_MAX_RESOLVE_DEPTH
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid SERVICE_CONTRACTS_MAX_RESOLVE_DEPTH '{raw}', defaulting to {DEFAULT_MAX_RESOLVE_DEPTH}")
        return DEFAULT_MAX_RESOLVE_DEPTH
    if value < 1:
        logger.warning(f"SERVICE_CONTRACTS_MAX_RESOLVE_DEPTH must be positive, got {value}")
        return DEFAULT_MAX_RESOLVE_DEPTH
    return value


def get_default_locale_name() -> str:
    """Get the system-default locale name (e.g. 'en_US')."""
    return os.environ.get('SERVICE_CONTRACTS_DEFAULT_LOCALE') or DEFAULT_LOCALE


def get_default_timezone_name():
    """Get the configured default time zone name, or None for the host zone."""
    return os.environ.get('SERVICE_CONTRACTS_DEFAULT_TIMEZONE') or None


def log_defaults_enabled() -> bool:
    """Check whether applied default values are logged at INFO."""
    return os.environ.get('SERVICE_CONTRACTS_LOG_DEFAULTS', 'false').lower() in ('true', '1', 'yes', 'on')
