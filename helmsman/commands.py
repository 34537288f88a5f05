"""
Helmsman command tree: commands, actions and path resolution.

Overview
- Action: the leaf unit of dispatch, wrapping a callback whose parameter
  defaults are parameter specs (see helmsman.arguments).
- Command: a named node holding subcommands and actions, plus command-level
  hooks and exit-code mappings.
- CommandTree: sealed arena over one or more root commands. Nodes do not
  point to their parents; the tree records an explicit parent index per node.
- Resolution: outcome of walking the command-path tokens.

Declaration

    deploy = Command("deploy", aliases=("d",), descr="deploy services")

    @deploy.action(primary=True)
    def run(target=Argument(), port=Option("-p", type=int, default=8080)):
        ...

    remote = deploy.command("remote")

Rules (enforced at declaration time with TypeError/ValueError)
- names and aliases are unique among siblings, ignoring case; subcommands and
  actions share the namespace;
- at most one primary action per command;
- a command attaches to a single parent;
- once a CommandTree seals a node, it can no longer be modified.

Resolution (CommandTree.resolve)
- tokens are matched exactly (case-insensitive) against names and aliases;
- an unknown first token raises UnknownCommandError with a suggestion;
- after the path, an action token is matched against the command's actions;
  unknown ones raise UnknownActionError with a suggestion, unless the primary
  action takes positional arguments (the token is then one of them);
- with no action token the primary action runs; a command with no actions and
  no subcommands is a ConfigurationError.
"""
import inspect
import logging
import re
from collections.abc import Iterable

from rich.text import Text

from .arguments import declare, flatten
from .exitcodes import ExitCodeMapping, returnkind
from .faults import *
from .hooks import Hook, Stage, registrar
from .similarity import find_most_similar
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(type):
    """
    Metaclass for tree nodes (Command, Action).

    Responsibilities
    - __typename__ derived from the class name for messages.
    - Read-only properties (mirror()) for every name in __introspectable__.
    - Stable __repr__/__rich_repr__ over __displayable__ (or __introspectable__).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
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


def _sanitize_identity(cls, metadata, /):
    """
    Internal: validate name, aliases and descr of a node.

    - name: non-empty, letters/digits separated by single hyphens.
    - aliases: iterable of names; duplicates (ignoring case) are rejected.
    - descr: Unset | non-empty str | Text; Unset becomes None.
    """
    pattern = r"[^\W_]+(-[^\W_]+)*"
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not re.fullmatch(pattern, name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' {name!r} must be letters and digits separated by hyphens")
    metadata["name"] = name

    if not isinstance(aliases := metadata["aliases"], Iterable) or isinstance(aliases, str):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
    seen = {name.casefold()}
    sanitized = []
    for alias in aliases:
        if not isinstance(alias, str):
            raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
        elif not re.fullmatch(pattern, alias := alias.strip()):
            raise ValueError(f"{cls.__typename__} alias {alias!r} must be letters and digits separated by hyphens")
        elif alias.casefold() in seen:
            raise ValueError(f"{cls.__typename__} alias {alias!r} duplicates another name")
        seen.add(alias.casefold())
        sanitized.append(alias)
    metadata["aliases"] = tuple(sanitized)

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_behavior(cls, metadata, /):
    """
    Internal: normalize hooks and exit-code mappings into tuples.

    Exit-code mappings may be given as ExitCodeMapping or (exception type, code).
    """
    if not isinstance(hooks := metadata["hooks"], Iterable):
        raise TypeError(f"{cls.__typename__} 'hooks' must be an iterable of hooks")
    hooks = tuple(hooks)
    if not all(isinstance(hook, Hook) for hook in hooks):
        raise TypeError(f"{cls.__typename__} 'hooks' must contain hooks (see before/after/error)")
    metadata["hooks"] = hooks

    if not isinstance(exits := metadata["exits"], Iterable):
        raise TypeError(f"{cls.__typename__} 'exits' must be an iterable of exit-code mappings")
    sanitized = []
    for mapping in exits:
        if isinstance(mapping, tuple) and len(mapping) == 2:
            mapping = ExitCodeMapping(*mapping)
        if not isinstance(mapping, ExitCodeMapping):
            raise TypeError(f"{cls.__typename__} 'exits' must contain exit-code mappings")
        sanitized.append(mapping)
    metadata["exits"] = tuple(sanitized)


def _guard(self):
    if self._sealed:
        raise TypeError(f"{type(self).__typename__} {self.name!r} is sealed and cannot be modified")


def _claim(self, node, typeof):
    """
    Reserve node's name and aliases among self's children and actions.
    """
    taken = {}
    for sibling in (*self._children, *self._actions):
        for label in sibling.labels:
            taken[label.casefold()] = sibling
    for label in node.labels:
        if label.casefold() in taken:
            raise ValueError(f"{type(self).__typename__} {self.name!r} {typeof} name {label!r} is already in use")


class Action(metaclass=CommandType):
    """
    Leaf unit of dispatch.

    Parameters
    - callback: callable whose parameter defaults are specs; coroutine
      functions are awaited (asynchronous=True).
    - name: defaults to the callback name with underscores as hyphens.
    - aliases: alternative names.
    - descr: defaults to the callback's docstring first line.
    - primary: invoked when no action token follows the command path.
    - hooks: before/after/error hooks scoped to this action.
    - exits: exit-code mappings checked first on unhandled exceptions.
    - returns: None, int, an Enum subclass or a ReturnKind; Unset infers the
      kind from the returned value.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "descr",
        "primary",
        "parameters",
        "hooks",
        "exits",
        "returns",
        "asynchronous",
        "hidden",
    )
    __displayable__ = (
        "name",
        "aliases",
        "primary",
        "parameters",
        "returns",
        "asynchronous",
    )

    def __init__(
            self,
            callback,
            /,
            name=Unset,
            aliases=(),
            descr=Unset,
            primary=False,
            hooks=(),
            exits=(),
            returns=Unset,
            hidden=False,
    ):
        if not callable(callback):
            raise TypeError(f"{type(self).__typename__} 'callback' must be callable")
        docstring = inspect.getdoc(callback)
        metadata = {
            "name": coalesce(name, getattr(callback, "__name__", "").strip("_").replace("_", "-")),
            "aliases": aliases,
            "descr": coalesce(descr, docstring.splitlines()[0] if docstring else Unset),
            "primary": bool(primary),
            "parameters": declare(callback),
            "hooks": hooks,
            "exits": exits,
            "returns": returnkind(returns),
            "asynchronous": inspect.iscoroutinefunction(callback),
            "hidden": bool(hidden),
        }
        _sanitize_identity(Action, metadata)
        _sanitize_behavior(Action, metadata)

        self._callback = callback
        self._sealed = False
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def callback(self):
        return self._callback

    @property
    def labels(self):
        return (self._name, *self._aliases)

    @property
    def arguments(self):
        """
        Positional leaf specs ordered by position.
        """
        return sorted(
            (spec for _, spec in flatten(self._parameters) if spec.kind == "argument"),
            key=lambda spec: spec.position,
        )

    def spec(self, key, /):
        """
        Return the declared spec for a parameter key (containers included).
        """
        return self._parameters[key]

    before = registrar(Stage.BEFORE)
    after = registrar(Stage.AFTER)
    error = registrar(Stage.ERROR)

    def __call__(self, *args, **kwargs):
        return self._callback(*args, **kwargs)


class Command(metaclass=CommandType):
    """
    Named node of the command tree.

    Parameters
    - name: command name (case-insensitive at resolution).
    - aliases: alternative names.
    - descr: short description for help.
    - children: subcommands to attach (or attach later with command()/attach()).
    - actions: Action objects to register (or register later with action()).
    - hooks: before/after/error hooks applying to every action below.
    - exits: exit-code mappings applying to every action below.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "descr",
        "children",
        "actions",
        "hooks",
        "exits",
        "hidden",
    )
    __displayable__ = (
        "name",
        "aliases",
        "children",
        "actions",
    )

    def __init__(
            self,
            name,
            /,
            aliases=(),
            descr=Unset,
            children=(),
            actions=(),
            hooks=(),
            exits=(),
            hidden=False,
    ):
        metadata = {
            "name": name,
            "aliases": aliases,
            "descr": descr,
            "hooks": hooks,
            "exits": exits,
            "hidden": bool(hidden),
        }
        _sanitize_identity(Command, metadata)
        _sanitize_behavior(Command, metadata)

        self._children = ()
        self._actions = ()
        self._attached = False
        self._sealed = False
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        for child in children:
            self.attach(child)
        for action in actions:
            self.register(action)

    @property
    def labels(self):
        return (self._name, *self._aliases)

    @property
    def primary(self):
        """
        The primary action, or None.
        """
        return next((action for action in self._actions if action.primary), None)

    def attach(self, child, /):
        """
        Attach an existing Command as a subcommand and return it.
        """
        _guard(self)
        if not isinstance(child, Command):
            raise TypeError(f"{type(self).__typename__} children must be commands")
        if child._attached:
            raise ValueError(f"{type(self).__typename__} {child.name!r} is already attached to another command")
        _claim(self, child, "subcommand")
        child._attached = True
        self._children = self._children + (child,)
        return child

    def register(self, action, /):
        """
        Register an existing Action and return it.
        """
        _guard(self)
        if not isinstance(action, Action):
            raise TypeError(f"{type(self).__typename__} actions must be actions")
        if action.primary and self.primary is not None:
            raise ValueError(f"{type(self).__typename__} {self.name!r} already has a primary action {self.primary.name!r}")
        _claim(self, action, "action")
        self._actions = self._actions + (action,)
        return action

    def command(self, name, /, **kwargs):
        """
        Create, attach and return a subcommand (keyword arguments as in Command).
        """
        return self.attach(Command(name, **kwargs))

    def action(self, callback=Unset, /, **kwargs):
        """
        Register an action; usable as @command.action or @command.action(...).

        The decorated callback is returned unchanged so it stays directly callable.
        """
        @rename("action")
        def wrapper(callback, /):
            self.register(Action(callback, **kwargs))
            return callback

        return wrapper(callback) if callback is not Unset else wrapper

    before = registrar(Stage.BEFORE)
    after = registrar(Stage.AFTER)
    error = registrar(Stage.ERROR)


class Resolution:
    """
    Outcome of resolving command-path tokens.

    - path: tuple of Command from root to the resolved command.
    - command: the resolved Command (path[-1]).
    - action: the resolved Action.
    - consumed: number of tokens used by the path and the action token.
    """
    __slots__ = ("path", "action", "consumed")

    def __init__(self, path, action, consumed, /):
        self.path = tuple(path)
        self.action = action
        self.consumed = consumed

    @property
    def command(self):
        return self.path[-1]

    @property
    def names(self):
        return tuple(command.name for command in self.path)

    def __repr__(self):
        return f"resolution({" ".join(self.names)!r}, action={getattr(self.action, "name", None)!r}, consumed={self.consumed})"


def _match(nodes, token):
    folded = token.casefold()
    for node in nodes:
        if any(label.casefold() == folded for label in node.labels):
            return node
    return None


def _hint(prog, route, suggestion, what):
    hint = "you can run '%s --help' to see available %s" % (" ".join(filter(None, (prog, *route))), what)
    if suggestion:
        return "did you mean %r? %s" % (suggestion, hint.replace("you can run", "you can also run"))
    return hint


class CommandTree:
    """
    Sealed arena over the declared commands.

    Nodes are stored in declaration order (depth-first); parents are recorded
    as indexes into the same arena. Constructing a tree seals every node and
    action it contains.
    """

    def __init__(self, roots, /, prog=None):
        roots = tuple(roots)
        if not roots:
            raise ValueError("command tree requires at least one command")

        self._prog = prog
        self._nodes = []
        self._parents = []
        self._positions = {}

        seen = set()
        for root in roots:
            if not isinstance(root, Command):
                raise TypeError("command tree roots must be commands")
            for label in root.labels:
                if label.casefold() in seen:
                    raise ValueError(f"command name {label!r} is already in use")
                seen.add(label.casefold())
            self._collect(root, None)
        self._roots = roots

    def _collect(self, node, parent):
        if id(node) in self._positions:
            raise ValueError(f"command {node.name!r} appears twice in the tree")
        self._positions[id(node)] = len(self._nodes)
        self._nodes.append(node)
        self._parents.append(parent)
        node._sealed = True
        for action in node._actions:
            action._sealed = True
        index = self._positions[id(node)]
        for child in node._children:
            self._collect(child, index)

    @property
    def roots(self):
        return self._roots

    @property
    def nodes(self):
        return tuple(self._nodes)

    def index(self, node, /):
        try:
            return self._positions[id(node)]
        except KeyError:
            raise ValueError(f"command {getattr(node, "name", node)!r} is not part of this tree") from None

    def parent(self, node, /):
        """
        Return the parent Command of node, or None for a root.
        """
        parent = self._parents[self.index(node)]
        return None if parent is None else self._nodes[parent]

    def path(self, node, /):
        """
        Return the tuple of Commands from the root to node.
        """
        path = [node]
        while (parent := self.parent(path[-1])) is not None:
            path.append(parent)
        return tuple(reversed(path))

    def hooks(self, resolution, /):
        """
        Hooks applying to a resolution: commands root to leaf, then the action.
        """
        hooks = []
        for command in resolution.path:
            hooks.extend(command._hooks)
        hooks.extend(resolution.action._hooks)
        return hooks

    def exits(self, resolution, /):
        """
        Exit-code mapping groups in lookup order: the action, then commands leaf to root.
        """
        return (resolution.action._exits, *(command._exits for command in reversed(resolution.path)))

    def locate(self, tokens, /):
        """
        Best-effort walk used for help: returns (path, action) without raising.
        path is empty when the first token does not name a command.
        """
        path, action = [], None
        nodes = self._roots
        for token in tokens:
            if token.startswith("-"):
                break
            if (node := _match(nodes, token)) is not None:
                path.append(node)
                nodes = node._children
                continue
            if path and (action := _match(path[-1]._actions, token)) is not None:
                break
            break
        return tuple(path), action

    def resolve(self, tokens, /, offset=0):
        """
        Resolve the leading command-path tokens (and an optional action token).

        Parameters
        - tokens: tokens after the global options.
        - offset: number of tokens preceding them (for positions in messages).

        Raises
        - UnknownCommandError / UnknownActionError with suggestions.
        - MissingCommandError when the path stops at a command that only has
          subcommands.
        - ConfigurationError when the resolved command has no primary action to
          run without an action token (including commands with nothing declared).
        """
        tokens = list(tokens)

        if not tokens or tokens[0].startswith("-"):
            names = ", ".join(root.name for root in self._roots if not root.hidden)
            raise MissingCommandError(
                "a command is required (available: %s)" % names,
                title="missing command",
                hint=_hint(self._prog, (), None, "commands"),
                available=tuple(root.name for root in self._roots),
            )

        if (node := _match(self._roots, tokens[0])) is None:
            suggestion = find_most_similar(tokens[0], [root.name for root in self._roots])
            raise UnknownCommandError(
                "unknown command %r at %s position" % (tokens[0], ordinal(offset + 1)),
                title="unknown command",
                hint=_hint(self._prog, (), suggestion, "commands"),
                token=tokens[0],
                suggestion=suggestion,
            )

        path = [node]
        index = 1
        while True:
            command = path[-1]
            primary = command.primary

            if index >= len(tokens) or tokens[index].startswith("-"):
                if primary is not None:
                    logger.debug("resolved %s to primary action %r", [c.name for c in path], primary.name)
                    return Resolution(path, primary, index)
                self._stop(path, index + offset)

            token = tokens[index]
            if (child := _match(command._children, token)) is not None:
                path.append(child)
                index += 1
                continue

            if (action := _match(command._actions, token)) is not None:
                logger.debug("resolved %s to action %r", [c.name for c in path], action.name)
                return Resolution(path, action, index + 1)

            if primary is not None and primary.arguments:
                logger.debug("token %r left to the primary action %r", token, primary.name)
                return Resolution(path, primary, index)

            route = tuple(c.name for c in path)
            if command._actions:
                suggestion = find_most_similar(token, [action.name for action in command._actions])
                raise UnknownActionError(
                    "unknown action %r for command %r at %s position" % (token, " ".join(route), ordinal(offset + index + 1)),
                    title="unknown action",
                    hint=_hint(self._prog, route, suggestion, "actions"),
                    token=token,
                    suggestion=suggestion,
                )
            if command._children:
                suggestion = find_most_similar(token, [child.name for child in command._children])
                raise UnknownCommandError(
                    "unknown subcommand %r for command %r at %s position" % (token, " ".join(route), ordinal(offset + index + 1)),
                    title="unknown subcommand",
                    code=FaultCode.UNKNOWN_SUBCOMMAND,
                    hint=_hint(self._prog, route, suggestion, "subcommands"),
                    token=token,
                    suggestion=suggestion,
                )
            self._stop(path, index + offset)

    def _stop(self, path, position):
        command = path[-1]
        route = tuple(c.name for c in path)
        if not command._actions and not command._children:
            raise ConfigurationError(
                "command %r declares no actions and no subcommands" % " ".join(route),
                title="invalid declaration",
            )
        if command._actions:
            names = ", ".join(action.name for action in command._actions if not action.hidden)
            raise ConfigurationError(
                "command %r has no primary action to run without an action token (declared: %s)" % (" ".join(route), names),
                title="invalid declaration",
                hint="mark one of its actions primary=True",
            )
        names = ", ".join(child.name for child in command._children if not child.hidden)
        raise MissingCommandError(
            "command %r requires a subcommand (available: %s)" % (" ".join(route), names),
            title="missing subcommand",
            hint=_hint(self._prog, route, None, "subcommands"),
            available=tuple(child.name for child in command._children),
        )


__all__ = (
    "Action",
    "Command",
    "CommandTree",
    "Resolution",
)

del CommandType
