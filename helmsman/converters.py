r"""
Helmsman type descriptors and conversion strategies.

Overview
- Descriptors (callables: descriptor(raw, scope=None) -> value)
  • Primitive(name): "string", "integer", "float", "decimal", "boolean", "char".
  • Enumeration(enum): case-insensitive member names; Flag enums accept
    comma-separated member lists combined with bitwise OR.
  • Structured(name): "uri", "datetime", "date", "time", "duration", "uuid",
    "path", "file", "directory", "ip-address", "input-stream", "output-stream".
  • Collection(element, container=list): comma-separated values, trimmed, empty
    entries skipped, each element converted by the element descriptor.
  • Custom(converter): any user callable str -> value.

- describe(type)
  • Normalize what users pass as `type=` on a spec into a descriptor:
    builtins (str/int/float/bool/Decimal), Enum subclasses, stdlib structured
    types (UUID, datetime, timedelta, Path, IP addresses), generic aliases such
    as list[int] or set[str], descriptor names ("uri", "duration", ...),
    descriptor instances, or any other callable (Custom).

Contract
- Converters raise ValueError (or TypeError) on bad input; the binder turns it
  into a ConversionError naming the parameter and the attempted value.
- Streams are opened on conversion and registered on the given scope (an
  contextlib.ExitStack) so they are closed when the invocation ends; "-" maps
  to stdin/stdout, which are never closed.

Quick examples
    >>> describe(int)("42")
    42
    >>> describe(list[int])("1, 2 ,3")
    [1, 2, 3]
    >>> parse_duration("2.14:30:00")
    datetime.timedelta(days=2, seconds=52200)
"""
import builtins
import datetime
import decimal
import ipaddress
import pathlib
import re
import sys
import types
import urllib.parse
import uuid
from enum import Enum, Flag

_TRUTHY = frozenset({"true", "yes", "on", "1", "y"})
_FALSY = frozenset({"false", "no", "off", "0", "n"})


def parse_boolean(raw, /):
    """
    Parse a boolean literal; anything unrecognized is False.

    Accepted (case-insensitive): true/false, yes/no, on/off, y/n, 1/0.
    """
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().casefold() in _TRUTHY


def is_boolean_literal(raw, /):
    return str(raw).strip().casefold() in _TRUTHY | _FALSY


_CLOCK = re.compile(
    r"(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2})"
    r"(?::(?P<seconds>\d{1,2})(?:\.(?P<fraction>\d{1,7}))?)?"
)
_COMPACT = re.compile(r"(?P<amount>\d+(?:\.\d+)?)(?P<unit>ms|[wdhms])")
_UNITS = {
    "w": "weeks",
    "d": "days",
    "h": "hours",
    "m": "minutes",
    "s": "seconds",
    "ms": "milliseconds",
}


def parse_duration(raw, /):
    """
    Parse a duration into a timedelta.

    Forms
    - clock: "[-][d.]hh:mm[:ss[.fffffff]]"   e.g. "01:30:00", "2.14:30:00"
    - compact: sequence of amount+unit       e.g. "90s", "1h30m", "2d", "500ms"
    - bare number: seconds                   e.g. "45", "1.5"
    """
    text = raw.strip()
    if not text:
        raise ValueError("empty duration")

    if match := _CLOCK.fullmatch(text):
        hours, minutes = int(match["hours"]), int(match["minutes"])
        seconds = int(match["seconds"] or 0)
        if hours > 23 or minutes > 59 or seconds > 59:
            raise ValueError(f"invalid duration {raw!r}")
        delta = datetime.timedelta(
            days=int(match["days"] or 0),
            hours=hours,
            minutes=minutes,
            seconds=seconds,
            microseconds=int((match["fraction"] or "0").ljust(7, "0")[:6]),
        )
        return -delta if match["sign"] else delta

    if re.fullmatch(r"(?:\d+(?:\.\d+)?(?:ms|[wdhms]))+", text):
        return sum(
            (datetime.timedelta(**{_UNITS[part["unit"]]: float(part["amount"])}) for part in _COMPACT.finditer(text)),
            datetime.timedelta(),
        )

    try:
        return datetime.timedelta(seconds=float(text))
    except ValueError:
        raise ValueError(f"invalid duration {raw!r}") from None


def _parse_uri(raw):
    parts = urllib.parse.urlsplit(raw.strip())
    if not parts.scheme or not (parts.netloc or parts.path) or any(char.isspace() for char in raw.strip()):
        raise ValueError(f"invalid uri {raw!r}")
    return parts


def _parse_boolean(raw):
    if not is_boolean_literal(raw):
        raise ValueError(f"invalid boolean {raw!r}")
    return parse_boolean(raw)


def _parse_char(raw):
    if len(raw) != 1:
        raise ValueError(f"expected a single character, got {raw!r}")
    return raw


def _parse_integer(raw):
    return int(raw.strip())


def _parse_decimal(raw):
    try:
        return decimal.Decimal(raw.strip())
    except decimal.InvalidOperation:
        raise ValueError(f"invalid decimal {raw!r}") from None


def _parse_path(raw):
    if not raw.strip():
        raise ValueError("empty path")
    return pathlib.Path(raw)


def _open(raw, mode, scope):
    if raw.strip() == "-":
        return sys.stdin.buffer if "r" in mode else sys.stdout.buffer
    try:
        stream = open(_parse_path(raw), mode)
    except OSError as error:
        raise ValueError(f"cannot open {raw!r}: {error.strerror or error}") from error
    if scope is not None:
        scope.enter_context(stream)
    return stream


class Descriptor:
    """
    Base of all type descriptors.

    kind is one of "primitive", "enum", "structured", "collection", "custom";
    name is the label used in messages and help.
    """
    kind = "custom"
    name = "value"
    choices = None

    def __call__(self, raw, /, scope=None):
        raise NotImplementedError

    def __repr__(self):
        return f"{self.kind}({self.name})"

    def __eq__(self, other):
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self):
        return hash((type(self), self.name))


class Primitive(Descriptor):
    kind = "primitive"

    _parsers = {
        "string": str,
        "integer": _parse_integer,
        "float": float,
        "decimal": _parse_decimal,
        "boolean": _parse_boolean,
        "char": _parse_char,
    }

    def __init__(self, name, /):
        if name not in self._parsers:
            raise ValueError(f"primitive must be one of {", ".join(map(repr, self._parsers))}")
        self.name = name

    def __call__(self, raw, /, scope=None):
        return self._parsers[self.name](raw)


class Enumeration(Descriptor):
    """
    Enum member lookup by name (case-insensitive); Flag enums combine
    comma-separated members with bitwise OR.
    """
    kind = "enum"

    def __init__(self, enum, /):
        if not isinstance(enum, type) or not issubclass(enum, Enum):
            raise TypeError("enumeration argument must be an enum type")
        if not enum.__members__:
            raise ValueError(f"enumeration {enum.__name__!r} has no members")
        self.enum = enum
        self.name = enum.__name__
        self.flags = issubclass(enum, Flag)

    @property
    def choices(self):
        return tuple(self.enum.__members__)

    def _member(self, raw):
        text = raw.strip()
        for name, member in self.enum.__members__.items():
            if name.casefold() == text.casefold():
                return member
        raise ValueError(f"{raw!r} is not a valid {self.name}")

    def __call__(self, raw, /, scope=None):
        if isinstance(raw, self.enum):
            return raw
        if not self.flags:
            return self._member(raw)
        members = [self._member(part) for part in raw.split(",") if part.strip()]
        if not members:
            raise ValueError(f"{raw!r} is not a valid {self.name}")
        value = members[0]
        for member in members[1:]:
            value |= member
        return value


class Structured(Descriptor):
    kind = "structured"

    _parsers = {
        "uri": lambda raw, scope: _parse_uri(raw),
        "datetime": lambda raw, scope: datetime.datetime.fromisoformat(raw.strip()),
        "date": lambda raw, scope: datetime.date.fromisoformat(raw.strip()),
        "time": lambda raw, scope: datetime.time.fromisoformat(raw.strip()),
        "duration": lambda raw, scope: parse_duration(raw),
        "uuid": lambda raw, scope: uuid.UUID(raw.strip()),
        "path": lambda raw, scope: _parse_path(raw),
        "file": lambda raw, scope: _parse_path(raw),
        "directory": lambda raw, scope: _parse_path(raw),
        "ip-address": lambda raw, scope: ipaddress.ip_address(raw.strip()),
        "input-stream": lambda raw, scope: _open(raw, "rb", scope),
        "output-stream": lambda raw, scope: _open(raw, "wb", scope),
    }

    def __init__(self, name, /):
        if name not in self._parsers:
            raise ValueError(f"structured type must be one of {", ".join(map(repr, self._parsers))}")
        self.name = name

    def __call__(self, raw, /, scope=None):
        return self._parsers[self.name](raw, scope)


class Collection(Descriptor):
    """
    Comma-separated values; repeated occurrences arrive as a list of raw strings
    and are flattened in order.
    """
    kind = "collection"

    def __init__(self, element, /, container=list):
        if container not in (list, tuple, set, frozenset):
            raise TypeError("collection 'container' must be list, tuple, set or frozenset")
        self.element = describe(element)
        if isinstance(self.element, Collection):
            raise TypeError("collection element cannot be a collection")
        self.container = container
        self.name = f"{self.element.name} list"

    @property
    def choices(self):
        return self.element.choices

    @staticmethod
    def split(raw, /):
        """
        Split raw text (or a list of raw texts) into trimmed, non-empty elements.
        """
        raws = [raw] if isinstance(raw, str) else list(raw)
        return [part.strip() for text in raws for part in text.split(",") if part.strip()]

    def __call__(self, raw, /, scope=None):
        return self.container(self.element(element, scope) for element in self.split(raw))


class Custom(Descriptor):
    """
    Wrap a user converter (any callable taking the raw string).
    """

    def __init__(self, converter, /, name=None):
        if not callable(converter):
            raise TypeError("custom converter must be callable")
        self.converter = converter
        self.name = name or getattr(converter, "__name__", "value")

    def __call__(self, raw, /, scope=None):
        return self.converter(raw)


_builtins = {
    str: lambda: Primitive("string"),
    int: lambda: Primitive("integer"),
    float: lambda: Primitive("float"),
    bool: lambda: Primitive("boolean"),
    decimal.Decimal: lambda: Primitive("decimal"),
    uuid.UUID: lambda: Structured("uuid"),
    datetime.datetime: lambda: Structured("datetime"),
    datetime.date: lambda: Structured("date"),
    datetime.time: lambda: Structured("time"),
    datetime.timedelta: lambda: Structured("duration"),
    pathlib.Path: lambda: Structured("path"),
    pathlib.PurePath: lambda: Structured("path"),
    ipaddress.IPv4Address: lambda: Structured("ip-address"),
    ipaddress.IPv6Address: lambda: Structured("ip-address"),
    urllib.parse.SplitResult: lambda: Structured("uri"),
}


def describe(type, /):
    """
    Normalize a `type=` value into a Descriptor.

    Raises
    - TypeError: when the value cannot be interpreted as a type descriptor.
    - ValueError: when a descriptor name is unknown.
    """
    if isinstance(type, Descriptor):
        return type
    if isinstance(type, str):
        if type in Primitive._parsers:
            return Primitive(type)
        return Structured(type)
    if isinstance(type, types.GenericAlias):
        if type.__origin__ in (list, tuple, set, frozenset) and len(args := type.__args__) >= 1:
            return Collection(args[0], container=type.__origin__)
        raise TypeError(f"unsupported generic type {type!r}")
    if type in _builtins:
        return _builtins[type]()
    if isinstance(type, builtins.type) and issubclass(type, Enum):
        return Enumeration(type)
    if callable(type):
        return Custom(type)
    raise TypeError(f"cannot describe {type!r} as a parameter type")


__all__ = (
    "Descriptor",
    "Primitive",
    "Enumeration",
    "Structured",
    "Collection",
    "Custom",
    "describe",
    "parse_boolean",
    "parse_duration",
)
