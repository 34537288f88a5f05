"""
Validation rules applied to converted parameter values.

A rule is a (predicate, message) pair. Rules run after conversion, in
declaration order; the first predicate returning False raises a
ValidationError with the rule's message. Messages are str.format templates
and may reference {name} (the parameter's display name) and {value}.

Helpers
- rule(predicate, message): generic rule.
- within(minimum, maximum): inclusive numeric range.
- matches(pattern): full regular-expression match on the string form.
- file_exists() / directory_exists(): filesystem checks on path-like values.

Collections are checked element by element by the built-in helpers.
"""
import os
import re
from collections.abc import Iterable


class Rule:
    """
    A single validation rule.

    >>> positive = Rule(lambda value: value > 0, "'{name}' must be positive")
    >>> positive.check(-1, "--count")
    "'--count' must be positive"
    """
    __slots__ = ("predicate", "message")

    def __init__(self, predicate, message, /):
        if not callable(predicate):
            raise TypeError("rule 'predicate' must be callable")
        if not isinstance(message, str):
            raise TypeError("rule 'message' must be a string")
        elif not (message := message.strip()):
            raise ValueError("rule 'message' cannot be empty")
        self.predicate = predicate
        self.message = message

    def check(self, value, name, /):
        """
        Return None when the value passes, otherwise the formatted message.
        """
        if self.predicate(value):
            return None
        return self.message.format(name=name, value=value)

    def __repr__(self):
        return f"rule({self.message!r})"


def _each(value):
    if isinstance(value, Iterable) and not isinstance(value, str | bytes):
        return list(value)
    return [value]


def rule(predicate, message, /):
    return Rule(predicate, message)


def within(minimum, maximum, /, message=None):
    """
    Inclusive range check; None on either side leaves it open.
    """
    if minimum is not None and maximum is not None and minimum > maximum:
        raise ValueError(f"minimum value ({minimum}) cannot be greater than maximum value ({maximum})")

    def predicate(value):
        return all(
            (minimum is None or item >= minimum) and (maximum is None or item <= maximum)
            for item in _each(value)
        )

    return Rule(predicate, message or "value {value} for '{name}' is outside the allowed range [%s, %s]" % (
        "-inf" if minimum is None else minimum,
        "inf" if maximum is None else maximum,
    ))


def matches(pattern, /, message=None):
    compiled = re.compile(pattern)

    def predicate(value):
        return all(compiled.fullmatch(str(item)) for item in _each(value))

    # braces in the pattern must survive str.format
    literal = compiled.pattern.replace("{", "{{").replace("}", "}}")
    return Rule(predicate, message or "value '{value}' for '{name}' does not match the required pattern '%s'" % literal)


def file_exists(message=None):
    return Rule(
        lambda value: all(os.path.isfile(item) for item in _each(value)),
        message or "file '{value}' specified for '{name}' does not exist",
    )


def directory_exists(message=None):
    return Rule(
        lambda value: all(os.path.isdir(item) for item in _each(value)),
        message or "directory '{value}' specified for '{name}' does not exist",
    )


__all__ = (
    "Rule",
    "rule",
    "within",
    "matches",
    "file_exists",
    "directory_exists",
)
