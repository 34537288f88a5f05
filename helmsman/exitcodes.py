"""
Exit codes and their derivation.

Scope
- ExitCode: conventional process exit codes (0/1, small category codes 2-8,
  and the BSD sysexits range 64-78).
- ExitCodeMapping / exit_code(): exception type -> code, declared on actions,
  commands or the dispatcher; the first declared match wins.
- ReturnKind: how an action's return value becomes a code.
- resolve(): result or exception -> integer.
"""
import logging
from enum import Enum, IntEnum

from .utils import *

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """
    conventional exit codes.

    - 0/1: success and generic error.
    - 2-8: common categories.
    - 64-78: BSD sysexits.h taxonomy.
    """
    SUCCESS              = 0
    ERROR                = 1
    INVALID_ARGUMENTS    = 2
    FILE_NOT_FOUND       = 3
    PERMISSION_DENIED    = 4
    NETWORK_ERROR        = 5
    CANCELLED            = 6
    CONFIGURATION_ERROR  = 7
    RESOURCE_UNAVAILABLE = 8

    # --- sysexits.h ---
    USAGE                = 64
    DATA_ERROR           = 65
    NO_INPUT             = 66
    NO_USER              = 67
    NO_HOST              = 68
    UNAVAILABLE          = 69
    SOFTWARE             = 70
    OS_ERROR             = 71
    OS_FILE              = 72
    CANT_CREATE          = 73
    IO_ERROR             = 74
    TEMP_FAIL            = 75
    PROTOCOL             = 76
    NO_PERMISSION        = 77
    CONFIG               = 78


class ReturnKind(Enum):
    NONE = "none"
    EXIT_CODE_INT = "exit-code-int"
    EXIT_CODE_ENUM = "exit-code-enum"


class ExitCodeMapping:
    """
    Map an exception type (subclasses included) to an exit code.
    """
    __slots__ = ("kind", "code")

    def __init__(self, kind, code, /):
        if not isinstance(kind, type) or not issubclass(kind, BaseException):
            raise TypeError("exit-code mapping 'kind' must be an exception type")
        if isinstance(code, Enum):
            code = code.value
        if not isinstance(code, int) or isinstance(code, bool):
            raise TypeError("exit-code mapping 'code' must be an integer")
        self.kind = kind
        self.code = int(code)

    def matches(self, exception, /):
        return isinstance(exception, self.kind)

    def __repr__(self):
        return f"exit-code({self.kind.__name__}, {self.code})"


def exit_code(kind, code, /):
    return ExitCodeMapping(kind, code)


def returnkind(returns, /):
    """
    Normalize a declared return kind.

    Accepts a ReturnKind or its value, None (none), int (exit-code-int), or an
    Enum subclass (exit-code-enum). Unset means "infer from the returned value".
    """
    if returns is Unset or isinstance(returns, ReturnKind):
        return returns
    if returns is None:
        return ReturnKind.NONE
    if isinstance(returns, str):
        return ReturnKind(returns)
    if returns is int:
        return ReturnKind.EXIT_CODE_INT
    if isinstance(returns, type) and issubclass(returns, Enum):
        return ReturnKind.EXIT_CODE_ENUM
    raise TypeError("'returns' must be None, int, an enum type or a return kind")


def from_result(result, /, kind=Unset):
    """
    Derive the exit code of a completed action.

    - kind none, or a None result: 0
    - int results (bool excluded): verbatim
    - enum members: their underlying integer value
    - anything else: 0
    """
    if kind is ReturnKind.NONE or result is None:
        return ExitCode.SUCCESS.value
    if isinstance(result, Enum):
        result = result.value
    if isinstance(result, int) and not isinstance(result, bool):
        return int(result)
    if kind is not Unset:
        logger.warning("action declared %s but returned %r; using exit code 0", kind.value, result)
    return ExitCode.SUCCESS.value


def from_exception(exception, /, *mappings, default=ExitCode.ERROR):
    """
    Derive the exit code of an exception from mapping groups searched in order
    (first declared match wins), falling back to default.
    """
    for group in mappings:
        for mapping in group:
            if mapping.matches(exception):
                logger.debug("exception %s mapped to exit code %d", type(exception).__name__, mapping.code)
                return mapping.code
    return int(default)


def find(exception, /, *mappings):
    """
    Return the first matching mapping across groups, or None.
    """
    for group in mappings:
        for mapping in group:
            if mapping.matches(exception):
                return mapping
    return None


__all__ = (
    "ExitCode",
    "ReturnKind",
    "ExitCodeMapping",
    "exit_code",
    "returnkind",
    "from_result",
    "from_exception",
    "find",
)
