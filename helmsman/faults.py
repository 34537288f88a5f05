"""
Helmsman faults (user-facing errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every fault, grouped by domain so
  logs and docs stay searchable.
- CommandException: base type carrying a message plus options (title, code,
  hint and any context such as parameter, value, suggestion) and knowing how
  to render itself through rich.
- Fault families
  • UsageError: the command line does not match the declared tree
    (unknown command/action/option, missing value, stray positional).
  • BindingError: a value was found but cannot be bound (missing required,
    conversion, validation, mutual exclusivity).
  • ConfigurationError: the declared tree itself is defective; never handed
    to hooks.
- trigger(): surface a fault (raise when not in shell mode, render otherwise).
- getdoc(): optional description lookup for a code from the host application.

UX
- Short lowercase messages with the offending name and value.
- A single hint, usually “did you mean ...?” plus a pointer to --help.
"""
import copy
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the framework (stable identifiers).

    grouping
    - routing (1110x): UNKNOWN_COMMAND, UNKNOWN_SUBCOMMAND, UNKNOWN_ACTION,
      MISSING_COMMAND
    - tokens (1111x/1112x): UNKNOWN_OPTION, MISSING_VALUE, DUPLICATE_OPTION,
      UNEXPECTED_ARGUMENT
    - binding (112xx): MISSING_REQUIRED, CONVERSION_FAILED, VALIDATION_FAILED,
      MUTUALLY_EXCLUSIVE
    - configuration (113xx): INVALID_DECLARATION, INVALID_PROFILE
    - actions (114xx): ACTION_FAILED

    normalize() lets the host remap codes to labels through a __codes__
    mapping in __main__.
    """
    # --- routing errors ---
    UNKNOWN_COMMAND     = 11101
    UNKNOWN_SUBCOMMAND  = 11102
    UNKNOWN_ACTION      = 11103
    MISSING_COMMAND     = 11104

    # --- token errors ---
    UNKNOWN_OPTION      = 11111
    MISSING_VALUE       = 11112
    DUPLICATE_OPTION    = 11113
    UNEXPECTED_ARGUMENT = 11121

    # --- binding errors ---
    MISSING_REQUIRED    = 11201
    CONVERSION_FAILED   = 11202
    VALIDATION_FAILED   = 11203
    MUTUALLY_EXCLUSIVE  = 11204

    # --- configuration errors ---
    INVALID_DECLARATION = 11301
    INVALID_PROFILE     = 11302

    # --- action errors ---
    ACTION_FAILED       = 11401

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Base of every user-facing fault.

    The message is the one-sentence body; options hold presentation data
    (title, code, hint) and runtime flags (tool, shell, fancy, colorful) merged
    in by trigger(), plus free-form context (parameter, value, suggestion, ...).
    """
    __title__ = "error"
    __code__ = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message) if self.message is not Unset else ""

    @property
    def code(self):
        return self.options.get("code", self.__code__)

    @property
    def hint(self):
        return self.options.get("hint")

    @property
    def suggestion(self):
        return self.options.get("suggestion")

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        tool = self.options.get("tool")
        prog = text(getattr(main, "__prog__", getattr(tool, "name", None) or "helmsman"), styler("prog-name"))
        code = self.code.normalize() if isinstance(self.code, FaultCode) else "-"

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code, styler("code")),
            " | ",
            text(self.options.get("title", self.__title__).title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        renders = [message]
        if self.hint:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left", width=console.width - 4)

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replaced = type(self)(self.message, **{**self.options, **overrides})
        replaced.__cause__ = self.__cause__
        replaced.__traceback__ = self.__traceback__
        return replaced


class UsageError(CommandException):
    __title__ = "usage error"


class UnknownCommandError(UsageError):
    __code__ = FaultCode.UNKNOWN_COMMAND


class UnknownActionError(UsageError):
    __code__ = FaultCode.UNKNOWN_ACTION


class UnknownOptionError(UsageError):
    __code__ = FaultCode.UNKNOWN_OPTION


class UnexpectedArgumentError(UsageError):
    __code__ = FaultCode.UNEXPECTED_ARGUMENT


class MissingValueError(UsageError):
    __code__ = FaultCode.MISSING_VALUE


class DuplicateOptionError(UsageError):
    __code__ = FaultCode.DUPLICATE_OPTION


class MissingCommandError(UsageError):
    __code__ = FaultCode.MISSING_COMMAND


class BindingError(CommandException):
    __title__ = "binding error"


class MissingRequiredError(BindingError):
    __code__ = FaultCode.MISSING_REQUIRED


class ConversionError(BindingError):
    __code__ = FaultCode.CONVERSION_FAILED


class ValidationError(BindingError):
    __code__ = FaultCode.VALIDATION_FAILED


class MutualExclusivityError(BindingError):
    __code__ = FaultCode.MUTUALLY_EXCLUSIVE


class ConfigurationError(CommandException):
    __title__ = "configuration error"
    __code__ = FaultCode.INVALID_DECLARATION


class ActionError(CommandException):
    """
    Rendering wrapper for an exception escaping an action (the original is the __cause__).
    """
    __title__ = "action failed"
    __code__ = FaultCode.ACTION_FAILED


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode the fault is rendered to stderr; otherwise it is raised.

    typical options
    - tool, shell, fancy, colorful, title, code, hint, and any context the
      renderer may show (parameter, value, suggestion, choices).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ keyed by
    FaultCode; None is returned when no entry exists.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "CommandException",
    "UsageError",
    "UnknownCommandError",
    "UnknownActionError",
    "UnknownOptionError",
    "UnexpectedArgumentError",
    "MissingValueError",
    "DuplicateOptionError",
    "MissingCommandError",
    "BindingError",
    "MissingRequiredError",
    "ConversionError",
    "ValidationError",
    "MutualExclusivityError",
    "ConfigurationError",
    "ActionError",
    "trigger",
    "getdoc",
)
