"""
Helmsman utilities (small building blocks shared by every layer).

Overview
- UnsetType / Unset
  • Singleton sentinel for “not provided”, distinct from None (None is a valid default).
  • Falsey, printable as "Unset" and sealed against subclassing.

- coalesce(value, default=None)
  • Materialize Unset into a concrete default; None/0/""/[] are preserved.

- rename(callable, name) / @rename("name")
  • Give generated callables a readable __name__/__qualname__.

- mirror("attr")
  • Read-only property over a private backing field (self._attr); containers are
    handed out as fresh copies so the public surface cannot mutate the graph.

- ordinal(number)
  • "first", "second", ... "11th" for position-first messages.

Usage
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> ordinal(3)
    'third'
"""
import builtins
import functools
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Sentinel type for a value that was not provided.

    Used as the default of API parameters where None is a legitimate user value.
    UnsetType() always yields the same instance, exposed as Unset.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in isinstance checks (e.g., str | Unset).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Falsey values (None, 0, "", []) are returned unchanged; only the sentinel
    is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable (renamed in place)
    - rename(name) -> decorator

    Raises
    - TypeError: wrong arity, non-callable target, non-string name, or a
      callable whose names cannot be updated (built-ins).
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _immortalize(object):
    """
    Recursively copy container values (lists, dicts, sets); leaves are returned as-is.

    Mapping keys are preserved; only values are processed.
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    else:
        return object


def mirror(name, /):
    """
    Define a read-only property reading self._{name}.

    Containers are returned as fresh copies (see _immortalize), so callers may
    freely mutate what they receive without touching the backing field.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal for a 1-based position.

    1..10 are spelled out ("first".."tenth"); other numbers use numeric suffixes.
    """
    if not isinstance(number, int) or isinstance(number, bool):
        raise TypeError("ordinal() argument must be an integer")
    if number < 1:
        raise ValueError("ordinal() argument must be a positive integer")

    try:
        return (
            "first", "second", "third", "fourth", "fifth",
            "sixth", "seventh", "eighth", "ninth", "tenth",
        )[number - 1]
    except IndexError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, ...)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


Unset = UnsetType()
"""
Sentinel for “not provided”; distinct from None and falsey.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ordinal",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
