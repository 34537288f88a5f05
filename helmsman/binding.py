"""
Parameter binding: classified tokens and value layers -> typed values.

Pipeline per leaf spec (declaration order, fail-fast)
1. pick the raw value: command line > environment > configuration > default;
2. convert it with the spec's type descriptor (switches parse boolean
   literals, unparseable literals being False);
3. check choices, then the validation rules in declaration order.

A configuration value failing steps 2 or 3 is logged and ignored, and the
spec continues as if configuration never supplied it. Command-line and
environment values that fail are errors.

After every spec is bound, mutual-exclusivity groups are checked against the
values that came from the command line.

Resources acquired while converting (streams, opened files) are registered on
the BoundArguments scope and released by BoundArguments.close().
"""
import contextlib
import logging
from collections.abc import Mapping

from .arguments import flatten
from .configuration import Source
from .converters import parse_boolean
from .faults import *
from .utils import *

logger = logging.getLogger(__name__)


class BoundArguments(Mapping):
    """
    Ordered mapping of leaf keys ("port", "connection.host") to converted
    values, each tagged with the Source that supplied it.

    Use as a context manager (or call close()) to release resources opened
    during binding.
    """

    def __init__(self):
        self._values = {}
        self._sources = {}
        self._objects = {}
        self._scope = contextlib.ExitStack()

    @property
    def scope(self):
        return self._scope

    def source(self, key, /):
        """
        Return the Source of a bound key.
        """
        return self._sources[key]

    @property
    def sources(self):
        return dict(self._sources)

    def put(self, key, value, source, /):
        self._values[key] = value
        self._sources[key] = source

    def attach(self, key, object, /):
        """
        Store a built object (container) under a top-level parameter key.
        """
        self._objects[key] = object

    def keywords(self, specs, /):
        """
        Build the keyword arguments of the callback declared by specs.
        """
        keywords = {}
        for key, spec in specs.items():
            if key in self._objects:
                keywords[key] = self._objects[key]
            else:
                keywords[key] = self._values[key]
        return keywords

    def close(self):
        self._scope.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __getitem__(self, key):
        if key in self._objects:
            return self._objects[key]
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"bound-arguments({", ".join("%s=%r (%s)" % (key, value, self._sources[key].value) for key, value in self._values.items())})"


def _convert(spec, raw, scope):
    if spec.kind == "switch":
        return True if raw is True else parse_boolean(raw)
    try:
        return spec.type(raw, scope)
    except Exception as error:
        shown = ",".join(raw) if isinstance(raw, list) else raw
        hint = None
        if spec.type.choices:
            hint = "valid values are: %s" % ", ".join(spec.type.choices)
        raise ConversionError(
            "cannot convert %r to %s for %r" % (shown, spec.type.name, spec.display),
            title="invalid value",
            hint=hint,
            name=spec.display,
            value=shown,
        ) from error


def _check(spec, value):
    if spec.choices:
        items = value if getattr(spec, "collection", False) else [value]
        for item in items:
            if item not in spec.choices:
                raise ConversionError(
                    "value %r is not a valid choice for %r" % (item, spec.display),
                    title="invalid choice",
                    hint="valid choices are: %s" % ", ".join(map(str, spec.choices)),
                    name=spec.display,
                    value=item,
                )
    for rule in spec.rules:
        if (message := rule.check(value, spec.display)) is not None:
            raise ValidationError(message, title="invalid value", name=spec.display, value=value)


def _assign(arguments, positionals):
    """
    Map positional tokens onto argument specs by ascending position.
    """
    assigned = {}
    remaining = list(positionals)
    for key, spec in arguments:
        if not remaining:
            break
        if spec.collection:
            assigned[key], remaining = remaining, []
        else:
            assigned[key] = remaining.pop(0)
    if remaining:
        raise UnexpectedArgumentError(
            "unexpected argument %r" % remaining[0],
            title="unexpected argument",
            hint="quote values containing spaces, or use '--' before values starting with '-'"
            if arguments else "this action takes no positional arguments",
            token=remaining[0],
        )
    return assigned


def bind_one(spec, key, supplied, layers, bound, /):
    """
    Resolve, convert and validate a single leaf spec into bound.

    supplied is the command-line occurrence list (or a positional token, or
    Unset when the command line does not mention the spec).
    """
    if supplied is not Unset:
        if spec.kind == "switch":
            raw = supplied[-1]
        elif spec.kind == "option":
            raw = supplied if spec.collection else supplied[0]
        else:
            raw = supplied
        source = Source.CLI
    else:
        raw, source = layers.resolve(spec)

    # unusable configuration values fall back to the default
    if source is Source.CONFIG:
        try:
            value = _convert(spec, raw, bound.scope)
            _check(spec, value)
        except (ConversionError, ValidationError) as error:
            logger.warning("ignoring configuration value for %s: %s", spec.display, error)
            raw, source = (spec.default, Source.DEFAULT) if spec.default is not Unset else (Unset, None)

    if source is None:
        if spec.required and spec.kind != "switch":
            raise MissingRequiredError(
                "%s %r is required" % (spec.kind, spec.display),
                title="missing required %s" % spec.kind,
                hint="pass it on the command line%s" % (" or set %s" % layers.variable(spec) if layers.variable(spec) else ""),
                name=spec.display,
            )
        value, source = (False if spec.kind == "switch" else None), Source.DEFAULT
    elif source is Source.DEFAULT:
        value = raw
    elif source is not Source.CONFIG:
        value = _convert(spec, raw, bound.scope)
        _check(spec, value)

    logger.debug("bound %s=%r from %s", key, value, source.value)
    bound.put(key, value, source)
    return value


def bind(specs, classification, layers, /, shared=None):
    """
    Bind an action's parameter specs.

    Parameters
    - specs: ordered key -> declared spec (Action.parameters).
    - classification: tokens.Classification of the remainder.
    - layers: configuration.Layers for the action's command section.
    - shared: optional (container, object) pair; a parameter whose spec
      originates from that container receives the object as is.

    Raises
    - UnexpectedArgumentError, MissingRequiredError, ConversionError,
      ValidationError, MutualExclusivityError.
    """
    bound = BoundArguments()
    try:
        arguments = sorted(
            ((key, spec) for key, spec in flatten(specs) if spec.kind == "argument"),
            key=lambda pair: pair[1].position,
        )
        positionals = _assign(arguments, classification.positionals)

        for key, spec in specs.items():
            if spec.kind == "container":
                if shared is not None and getattr(spec, "_origin", None) is shared[0]:
                    bound.attach(key, shared[1])
                    continue
                values = {}
                for name, member in spec.members.items():
                    leaf = f"{key}.{name}"
                    supplied = classification.options.get(leaf, positionals.get(leaf, Unset))
                    values[name] = bind_one(member, leaf, supplied, layers, bound)
                bound.attach(key, spec.factory(**values))
                continue
            supplied = classification.options.get(key, positionals.get(key, Unset))
            bind_one(spec, key, supplied, layers, bound)

        exclusive(flatten(specs), bound)
    except BaseException:
        bound.close()
        raise
    return bound


def exclusive(specs, bound, /):
    """
    Raise MutualExclusivityError when two or more members of a group were
    supplied on the command line. Members are named in declaration order.
    """
    groups = {}
    for key, spec in specs:
        if spec.exclusive:
            groups.setdefault(spec.exclusive, []).append((key, spec))

    for group, members in groups.items():
        supplied = [spec for key, spec in members if key in bound and bound.source(key) is Source.CLI]
        if len(supplied) > 1:
            names = ", ".join(spec.display for spec in supplied)
            raise MutualExclusivityError(
                "options (%s) are mutually exclusive" % names,
                title="conflicting options",
                hint="pass only one of: %s" % ", ".join(spec.display for _, spec in members),
                group=group,
                names=tuple(spec.display for spec in supplied),
            )


__all__ = (
    "BoundArguments",
    "bind",
    "bind_one",
    "exclusive",
)
