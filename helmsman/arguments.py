r"""
Helmsman parameter specifications.

Overview
- Specs
  • Option: named, value-bearing parameter (--name value, --name=value, -n value).
  • Switch: named, presence-only boolean parameter (--verbose, -v).
  • Argument: positional, value-bearing parameter consumed in declaration order.
  • Container: groups nested specs and builds one object from them through a
    factory (a dataclass or any callable whose parameter defaults are specs).

- Declaration
  Specs are used as defaults of an action callback's parameters. The parameter
  name becomes the spec's key; when no long name is given it is also derived
  from it (max_retries -> --max-retries). Arguments receive their position
  from declaration order.

      def deploy(
              target=Argument(),
              port=Option("-p", type=int, default=8080, env="PORT"),
              verbose=Switch("-v"),
      ): ...

- Introspection & representation
  • ArgumentType metaclass derives __typename__ from the class name, exposes the
    fields listed in __introspectable__ as read-only properties (mirror()), and
    provides __repr__/__rich_repr__ for diagnostics.

Metadata (sanitized on construction)
- names: at most one long ("--name") and one short ("-n") form.
- type: anything converters.describe() accepts (str, int, Enum subclasses,
  list[int], "duration", a descriptor, a callable).
- default: any value; Unset means "no default".
- required: Option defaults to False; Argument defaults to True unless a
  default is given. A required parameter cannot declare a default.
- env: environment variable name ([A-Za-z_][A-Za-z0-9_]*).
- rules: iterable of validation.Rule (or (predicate, message) pairs).
- choices: allowed converted values for non-enum types.
- exclusive: mutual-exclusivity group id (non-empty string).
- descr / metavar / hidden: help metadata.
"""
import copy
import inspect
import re
from collections.abc import Iterable
from inspect import Parameter

from rich.text import Text

from .converters import Collection, describe
from .utils import *
from .validation import Rule


class ArgumentType(type):
    """
    Metaclass shared by every parameter spec.

    Responsibilities
    - __typename__ derived from the class name (camel-case split with hyphens),
      used in messages and help.
    - Read-only properties for every name in __introspectable__.
    - Stable __repr__/__rich_repr__ over __displayable__ (or __introspectable__).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        introspectable = namespace.get("__introspectable__", ())
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in introspectable
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join("%s=%r" % pair for pair in self.__rich_repr__())
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _derive(identifier):
    """
    Turn a Python parameter name into a CLI name (max_retries -> max-retries).
    """
    return identifier.strip("_").replace("_", "-").lower()


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate descr/hidden shared by every spec.

    - descr: Unset | non-empty str | Text (trimmed); Unset becomes None.
    - hidden: coerced to bool.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)
    metadata["hidden"] = bool(metadata.get("hidden", False))


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: split names into a long name and a short character.

    - long names match r"--[^\W\d_](-?[^\W_]+)*" and are stored without dashes;
    - short names match r"-[^\W\d_]" and are stored as the bare character;
    - at most one of each; none at all is accepted (derived at declaration).
    """
    long = short = Unset
    for name in metadata.pop("names"):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif re.fullmatch(r"--[^\W\d_](-?[^\W_]+)*", name):
            if long is not Unset:
                raise ValueError(f"{cls.__typename__} accepts a single long name")
            long = name[2:]
        elif re.fullmatch(r"-[^\W\d_]", name):
            if short is not Unset:
                raise ValueError(f"{cls.__typename__} accepts a single short name")
            short = name[1:]
        else:
            raise ValueError(f"{cls.__typename__} name {name!r} must be '--long-name' or '-x'")
    metadata["name"] = long
    metadata["short"] = coalesce(short)


def _sanitize_sourced_metadata(cls, metadata, /):
    """
    Internal: environment variable and exclusivity group.
    """
    if not isinstance(env := metadata["env"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'env' must be a string")
    elif isinstance(env, str) and not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", env := env.strip()):
        raise ValueError(f"{cls.__typename__} 'env' must be a valid environment variable name")
    metadata["env"] = coalesce(env)

    if not isinstance(exclusive := metadata["exclusive"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'exclusive' must be a string")
    elif isinstance(exclusive, str) and not (exclusive := exclusive.strip()):
        raise ValueError(f"{cls.__typename__} 'exclusive' cannot be empty")
    metadata["exclusive"] = coalesce(exclusive)


def _sanitize_valued_metadata(cls, metadata, /):
    """
    Internal: type, default, required, rules, choices, metavar for value-bearing specs.

    Side effects
    - type is replaced by its descriptor.
    - rules are normalized into a tuple of Rule.
    - choices are normalized into a duplicate-free tuple.
    """
    try:
        metadata["type"] = describe(metadata["type"])
    except (TypeError, ValueError) as error:
        raise type(error)(f"{cls.__typename__} 'type' is invalid: {error}") from None

    if metadata["required"] is Unset:
        metadata["required"] = metadata["default"] is Unset and issubclass(cls, Argument)
    elif not isinstance(metadata["required"], bool):
        raise TypeError(f"{cls.__typename__} 'required' must be a boolean")
    if metadata["required"] and metadata["default"] is not Unset:
        raise ValueError(f"{cls.__typename__} cannot be required and declare a default")

    if not isinstance(rules := metadata["rules"], Iterable) or isinstance(rules, str):
        raise TypeError(f"{cls.__typename__} 'rules' must be an iterable of rules")
    sanitized = []
    for rule in rules:
        if isinstance(rule, tuple) and len(rule) == 2:
            rule = Rule(*rule)
        if not isinstance(rule, Rule):
            raise TypeError(f"{cls.__typename__} 'rules' must contain rules or (predicate, message) pairs")
        sanitized.append(rule)
    metadata["rules"] = tuple(sanitized)

    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be iterable")
    sanitized = []
    for choice in choices:
        if choice in sanitized:
            raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
        sanitized.append(choice)
    if sanitized and metadata["type"].kind == "enum":
        raise TypeError(f"{cls.__typename__} 'choices' cannot be combined with an enum type")
    metadata["choices"] = tuple(sanitized)

    if not isinstance(metavar := metadata["metavar"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif isinstance(metavar, str) and not (metavar := metavar.strip()):
        raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
    metadata["metavar"] = coalesce(metavar)


class Spec(metaclass=ArgumentType):
    """
    Base of every parameter spec.

    Instances are created with a metadata dict (see the subclasses) and later
    declared on an action through __declare__(key, position), which returns a
    copy carrying the parameter key, the derived name and the position.
    """
    kind = Unset

    _key = Unset
    _name = Unset
    _position = None

    @property
    def key(self):
        """
        Parameter identifier (the callback parameter name); None until declared.
        """
        return coalesce(self._key)

    @property
    def declared(self):
        return self._key is not Unset

    @property
    def display(self):
        """
        The form used in messages (--name for named specs, the name for arguments).
        """
        return "--" + coalesce(self._name, "?")

    def __declare__(self, key, position=None, /):
        if self._key is not Unset:
            raise TypeError(f"{type(self).__typename__} is already declared as {self._key!r}")
        clone = copy.copy(self)
        clone._key = key
        clone._name = coalesce(self._name, _derive(key))
        clone._position = position
        clone._origin = self
        return clone

    def __init__(self, metadata, /):
        for name, object in metadata.items():
            setattr(self, "_" + name, object)


class Option(Spec):
    """
    Named, value-bearing parameter.

    Tokens: --name value, --name=value, -n value, -n=value. Collection-typed
    options accumulate repeated occurrences.
    """
    kind = "option"

    __introspectable__ = (
        "name",
        "short",
        "type",
        "default",
        "required",
        "env",
        "rules",
        "choices",
        "exclusive",
        "descr",
        "metavar",
        "hidden",
    )
    __displayable__ = (
        "name",
        "short",
        "type",
        "default",
        "required",
        "env",
        "exclusive",
    )

    def __init__(
            self,
            *names,
            type=str,
            default=Unset,
            required=Unset,
            env=Unset,
            rules=(),
            choices=(),
            exclusive=Unset,
            descr=Unset,
            metavar=Unset,
            hidden=False,
    ):
        metadata = {
            "names": names,
            "type": type,
            "default": default,
            "required": required,
            "env": env,
            "rules": rules,
            "choices": choices,
            "exclusive": exclusive,
            "descr": descr,
            "metavar": metavar,
            "hidden": hidden,
        }
        _sanitize_metadata(Option, metadata)
        _sanitize_named_metadata(Option, metadata)
        _sanitize_sourced_metadata(Option, metadata)
        _sanitize_valued_metadata(Option, metadata)
        super().__init__(metadata)

    @property
    def names(self):
        """
        Display forms, short first (e.g., ("-p", "--port")).
        """
        return tuple(filter(None, ("-" + self.short if self.short else None, self.display)))

    @property
    def collection(self):
        return isinstance(self._type, Collection)


class Switch(Spec):
    """
    Named, presence-only boolean parameter.

    Presence means True, absence False. An inline literal (--verbose=false) and
    environment/configuration strings are parsed as boolean literals; anything
    unrecognized is False.
    """
    kind = "switch"

    __introspectable__ = (
        "name",
        "short",
        "env",
        "exclusive",
        "descr",
        "hidden",
    )

    def __init__(
            self,
            *names,
            env=Unset,
            exclusive=Unset,
            descr=Unset,
            hidden=False,
    ):
        metadata = {
            "names": names,
            "env": env,
            "exclusive": exclusive,
            "descr": descr,
            "hidden": hidden,
        }
        _sanitize_metadata(Switch, metadata)
        _sanitize_named_metadata(Switch, metadata)
        _sanitize_sourced_metadata(Switch, metadata)
        super().__init__(metadata)

    # Switches behave like optional boolean options for the binder.
    default = property(lambda self: False)
    required = property(lambda self: False)
    rules = property(lambda self: ())
    choices = property(lambda self: ())
    names = Option.names


class Argument(Spec):
    """
    Positional, value-bearing parameter.

    Arguments consume positional tokens left to right in declaration order.
    A collection-typed argument consumes every remaining positional token and
    must therefore be the last argument of its action.
    """
    kind = "argument"

    __introspectable__ = (
        "name",
        "position",
        "type",
        "default",
        "required",
        "env",
        "rules",
        "choices",
        "descr",
        "metavar",
        "hidden",
    )
    __displayable__ = (
        "name",
        "position",
        "type",
        "default",
        "required",
    )

    def __init__(
            self,
            name=Unset,
            /,
            type=str,
            default=Unset,
            required=Unset,
            env=Unset,
            rules=(),
            choices=(),
            descr=Unset,
            metavar=Unset,
            hidden=False,
    ):
        if not isinstance(name, str | Unset):
            raise TypeError("argument 'name' must be a string")
        elif isinstance(name, str) and not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", name := name.strip()):
            raise ValueError("argument 'name' must be a valid name (letters, digits and hyphens)")
        metadata = {
            "name": name,
            "type": type,
            "default": default,
            "required": required,
            "env": env,
            "exclusive": Unset,
            "rules": rules,
            "choices": choices,
            "descr": descr,
            "metavar": metavar,
            "hidden": hidden,
        }
        _sanitize_metadata(Argument, metadata)
        _sanitize_sourced_metadata(Argument, metadata)
        _sanitize_valued_metadata(Argument, metadata)
        super().__init__(metadata)

    short = property(lambda self: None)
    exclusive = property(lambda self: None)

    @property
    def display(self):
        return coalesce(self._name, "?")

    @property
    def collection(self):
        return isinstance(self._type, Collection)


class Container(Spec):
    """
    Group of nested specs bound into a single object.

    The factory's signature is inspected once: each parameter default must be
    an Option, Switch or Argument (never another Container), exactly like an
    action callback. The bound object is factory(**values).

        @dataclass
        class Connection:
            host: str = Option(default="localhost")
            port: int = Option("-p", type=int, default=5432)

        def connect(connection=Container(Connection)): ...
    """
    kind = "container"

    __introspectable__ = (
        "factory",
        "members",
        "descr",
        "hidden",
    )
    __displayable__ = (
        "factory",
        "members",
    )

    def __init__(self, factory, /, descr=Unset, hidden=False):
        if not callable(factory):
            raise TypeError("container 'factory' must be callable")
        metadata = {
            "factory": factory,
            "members": declare(factory, kind=Container),
            "descr": descr,
            "hidden": hidden,
        }
        _sanitize_metadata(Container, metadata)
        super().__init__(metadata)

    short = property(lambda self: None)
    env = property(lambda self: None)
    exclusive = property(lambda self: None)
    required = property(lambda self: False)
    default = property(lambda self: Unset)

    @property
    def display(self):
        return coalesce(self._name, "?")

    def __declare__(self, key, position=None, /):
        clone = super().__declare__(key, position)
        # Positions of nested arguments continue from the container's own slot.
        clone._members = {
            name: copy.copy(member) for name, member in self._members.items()
        }
        if position is not None:
            for offset, member in enumerate(m for m in clone._members.values() if m.kind == "argument"):
                member._position = position + offset
        return clone


def declare(callback, /, kind=Unset):
    """
    Read a callable's signature into an ordered mapping key -> declared spec.

    Rules
    - Every parameter must have a spec (or, for actions, a Container) default.
    - *args/**kwargs are rejected.
    - Arguments are numbered in declaration order starting at 0.
    - Containers cannot nest (kind=Container forbids them).

    Raises
    - TypeError: non-inspectable callable, bad parameter kinds or defaults.
    - ValueError: duplicate long/short names or misplaced collection arguments.
    """
    typename = getattr(kind, "__typename__", "action")
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        raise TypeError(f"{typename} callback must be an inspectable callable") from None

    specs = {}
    position = 0
    for name, parameter in signature.parameters.items():
        if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            raise TypeError(f"{typename} callback parameter {name!r} cannot be variadic")
        if not isinstance(spec := parameter.default, Spec):
            raise TypeError(f"{typename} callback parameter {name!r} must default to a parameter spec")
        if isinstance(spec, Container) and kind is Container:
            raise TypeError(f"{typename} callback parameter {name!r} cannot be a nested container")
        if spec.declared:
            raise TypeError(f"{typename} callback parameter {name!r} reuses a spec already declared as {spec.key!r}")

        if spec.kind == "argument":
            specs[name] = spec.__declare__(name, position)
            position += 1
        elif spec.kind == "container":
            specs[name] = spec.__declare__(name, position)
            position += sum(member.kind == "argument" for member in spec._members.values())
        else:
            specs[name] = spec.__declare__(name)

    _check_names(typename, specs)
    return specs


def flatten(specs, /):
    """
    Yield (key, spec) for every leaf spec, expanding containers into
    "container.member" keys.
    """
    for key, spec in specs.items():
        if spec.kind == "container":
            for name, member in spec._members.items():
                yield f"{key}.{name}", member
        else:
            yield key, spec


def _check_names(typename, specs):
    longs, shorts = {}, {}
    arguments = []
    for key, spec in flatten(specs):
        if spec.kind == "argument":
            arguments.append(spec)
            continue
        if longs.setdefault(spec.name.casefold(), key) != key:
            raise ValueError(f"{typename} option name '--{spec.name}' is already in use")
        if spec.short and shorts.setdefault(spec.short, key) != key:
            raise ValueError(f"{typename} option name '-{spec.short}' is already in use")
    for argument in arguments[:-1]:
        if argument.collection:
            raise ValueError(f"{typename} collection argument {argument.name!r} must be the last argument")


__all__ = (
    "Spec",
    "Option",
    "Switch",
    "Argument",
    "Container",
    "declare",
    "flatten",
)
