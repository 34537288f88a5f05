"""
Token classification for the part of argv following the command path.

Grammar
- --name value | --name=value       option (value-bearing)
- -n value | -n=value               option by short name
- --name | -n | --name=literal      switch (literal parsed as a boolean later)
- --                                ends option processing
- anything else                     positional token (including "-" and
                                    negative numbers such as -5 or -1.5)

Rules
- option values never start with "-" unless they are numbers or "-" itself;
- repeated scalar options raise DuplicateOptionError, repeated collection
  options accumulate;
- unknown names raise UnknownOptionError with a suggestion among the declared
  long names;
- --help/-h and --version are reported as requests when nothing declared
  claims those names.
"""
import logging
import re

from .faults import *
from .similarity import find_most_similar
from .utils import *

logger = logging.getLogger(__name__)

_number = re.compile(r"-\d+(\.\d*)?([eE][-+]?\d+)?|-\.\d+")

_requests = {
    "--help": "help",
    "-h": "help",
    "--version": "version",
}


def positional(token, /):
    """
    True when token is a positional token rather than an option name.
    """
    return token == "-" or not token.startswith("-") or bool(_number.fullmatch(token))


class Classification:
    """
    Outcome of classify().

    - options: key -> list of raw occurrences (strings, or True for a bare switch).
    - globals: same, for names claimed by the fallback (global) specs.
    - positionals: positional tokens in order.
    - requests: set of "help"/"version" requests seen before "--".
    """
    __slots__ = ("options", "globals", "positionals", "requests")

    def __init__(self):
        self.options = {}
        self.globals = {}
        self.positionals = []
        self.requests = set()

    def __repr__(self):
        return f"classification(options={self.options!r}, globals={self.globals!r}, positionals={self.positionals!r})"


def _index(specs, scope):
    longs, shorts = {}, {}
    for key, spec in specs:
        if spec.kind not in ("option", "switch"):
            continue
        longs[spec.name.casefold()] = (key, spec, scope)
        if spec.short:
            shorts[spec.short] = (key, spec, scope)
    return longs, shorts


def classify(tokens, specs, /, fallback=(), offset=0, reserved=True, stop=False):
    """
    Classify tokens against leaf specs.

    Parameters
    - tokens: tokens to classify.
    - specs: iterable of (key, spec) pairs (see arguments.flatten) of the action.
    - fallback: (key, spec) pairs consulted for names the action does not
      declare (global options).
    - offset: number of argv tokens preceding these (for positions in messages).
    - reserved: recognize --help/-h/--version requests.
    - stop: stop at the first positional token instead of collecting it
      (used to read global options before the command path); the number of
      consumed tokens is then returned alongside the classification.

    Raises
    - UnknownOptionError, MissingValueError, DuplicateOptionError.
    """
    longs, shorts = _index(specs, "options")
    fallback_longs, fallback_shorts = _index(fallback, "globals")
    declared = [spec.name for _, spec in specs if spec.kind in ("option", "switch")]
    declared += [spec.name for _, spec in fallback if spec.kind in ("option", "switch") and spec.name not in declared]

    result = Classification()
    ended = False
    index = 0
    while index < len(tokens):
        token = tokens[index]
        position = offset + index + 1

        if ended or positional(token):
            if stop:
                break
            result.positionals.append(token)
            index += 1
            continue

        if token == "--":
            if stop:
                break
            ended = True
            index += 1
            continue

        if token.startswith("--"):
            name, separator, inline = token[2:].partition("=")
            entry = longs.get(name.casefold()) or fallback_longs.get(name.casefold())
        else:
            name, separator, inline = token[1:].partition("=")
            entry = (shorts.get(name) or fallback_shorts.get(name)) if len(name) == 1 else None

        if entry is None:
            if reserved and token in _requests:
                result.requests.add(_requests[token])
                index += 1
                continue
            suggestion = find_most_similar(name, declared) if token.startswith("--") else None
            raise UnknownOptionError(
                "unknown option %r at %s position" % (token, ordinal(position)),
                title="unknown option",
                hint=("did you mean '--%s'?" % suggestion) if suggestion else "use '--help' to list the available options",
                token=token,
                suggestion=suggestion and "--" + suggestion,
            )

        key, spec, scope = entry
        if spec.kind == "switch":
            value = inline if separator else True
        elif separator:
            value = inline
        elif index + 1 < len(tokens) and positional(tokens[index + 1]):
            index += 1
            value = tokens[index]
        else:
            raise MissingValueError(
                "option %r at %s position requires a value" % (spec.display, ordinal(position)),
                title="missing value",
                hint="pass it as '%s <%s>' or '%s=<%s>'" % (spec.display, spec.metavar or spec.name, spec.display, spec.metavar or spec.name),
                name=spec.display,
            )

        target = getattr(result, scope)
        if key in target and not getattr(spec, "collection", False):
            raise DuplicateOptionError(
                "option %r was given more than once" % spec.display,
                title="duplicate option",
                hint="repeat only collection options, or separate values with commas",
                name=spec.display,
            )
        target.setdefault(key, []).append(value)
        logger.debug("classified %r as %s %r", token, spec.kind, key)
        index += 1

    if stop:
        return result, index
    return result


__all__ = (
    "Classification",
    "classify",
    "positional",
)
