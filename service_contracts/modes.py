"""
Parameter modes and reserved system parameters.

Every parameter has one of IN, OUT, INOUT. The *-SYS variants are only
meaningful as a make_valid() direction: they select the framework-reserved
system parameters and then behave like their base direction.
"""

from typing import Dict, List

IN = "IN"
OUT = "OUT"
INOUT = "INOUT"
IN_SYS = "IN-SYS"
OUT_SYS = "OUT-SYS"
INOUT_SYS = "INOUT-SYS"

PARAM_MODES_IO = [IN, OUT, INOUT]
PARAM_MODES_SYS = [IN_SYS, OUT_SYS, INOUT_SYS]
PARAM_MODES = PARAM_MODES_IO + PARAM_MODES_SYS

PARAM_MODE_IO_MAP: Dict[str, str] = {
    IN: IN,
    OUT: OUT,
    INOUT: INOUT,
    IN_SYS: IN,
    OUT_SYS: OUT,
    INOUT_SYS: INOUT,
}

# Reserved context keys
LOCALE = "locale"
TIMEZONE = "timeZone"
USER_LOGIN = "userLogin"
LOGIN_USERNAME = "login.username"
LOGIN_PASSWORD = "login.password"

RESPONSE_MESSAGE = "responseMessage"
RESPOND_SUCCESS = "success"
RESPOND_ERROR = "error"
RESPOND_FAIL = "fail"
ERROR_MESSAGE = "errorMessage"
ERROR_MESSAGE_LIST = "errorMessageList"
ERROR_MESSAGE_MAP = "errorMessageMap"
SUCCESS_MESSAGE = "successMessage"
SUCCESS_MESSAGE_LIST = "successMessageList"

IN_SYS_PARAMS: List[str] = [LOCALE, TIMEZONE, USER_LOGIN, LOGIN_USERNAME, LOGIN_PASSWORD]

OUT_SYS_PARAMS: List[str] = [
    RESPONSE_MESSAGE,
    ERROR_MESSAGE,
    ERROR_MESSAGE_LIST,
    ERROR_MESSAGE_MAP,
    SUCCESS_MESSAGE,
    SUCCESS_MESSAGE_LIST,
]

INOUT_SYS_PARAMS: List[str] = IN_SYS_PARAMS + OUT_SYS_PARAMS

PARAM_MODE_PARAMS_MAP: Dict[str, List[str]] = {
    IN_SYS: IN_SYS_PARAMS,
    OUT_SYS: OUT_SYS_PARAMS,
    INOUT_SYS: INOUT_SYS_PARAMS,
}


def mode_io(mode: str) -> str:
    """For 'IN-SYS' returns 'IN'; plain modes are returned unchanged."""
    sep = mode.find('-')
    return mode[:sep] if sep >= 0 else mode


def mode_scope(mode: str) -> str:
    """For 'IN-SYS' returns 'SYS'; plain modes return ''."""
    sep = mode.find('-')
    return mode[sep + 1:] if sep >= 0 else ""


def matches(param_mode: str, direction: str) -> bool:
    """True if a parameter declared with param_mode takes part in direction."""
    return param_mode == INOUT or param_mode == direction


def is_error_response(context) -> bool:
    """True if an OUT context reports a failed call."""
    if not context or RESPONSE_MESSAGE not in context:
        return False
    return context.get(RESPONSE_MESSAGE) in (RESPOND_ERROR, RESPOND_FAIL)
