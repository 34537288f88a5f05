"""
Helmsman dispatcher: argv in, exit code out.

Flow of one dispatch
1. global options preceding the command path are read (and --help/--version
   requests are served);
2. the command tree resolves the path to an action;
3. the remainder is classified against the action's specs (global options are
   still accepted for names the action does not declare);
4. global options and action parameters are bound (CLI > env > config > default)
   and mutual exclusivity is checked;
5. the hook pipeline runs the action;
6. the result, exception or cancellation becomes an exit code.

Failures
- ConfigurationError always propagates (declaration defects).
- Usage/binding faults are offered to the dispatcher's error hooks, then mapped
  through exit-code mappings; unmapped ones are rendered to stderr (shell=True)
  and exit with 1, or raised (shell=False).
- Action exceptions are offered to the error hooks in scope, then mapped; an
  unmapped exception is rendered (shell=True) or re-raised (shell=False).
"""
import asyncio
import contextlib
import inspect
import logging
import os
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .arguments import Container, flatten
from .binding import bind
from .commands import Command, CommandTree
from .configuration import ConfigurationSource, Environment, Layers
from .exitcodes import ExitCode, ExitCodeMapping, find, from_result
from .faults import *
from .hooks import CancellationOutcome, Hook, HookContext, HookPipeline, Stage, registrar, signalled
from .tokens import Classification, classify
from .utils import *

logger = logging.getLogger(__name__)


def _tokens(argv):
    if argv is Unset:
        return sys.argv[1:]
    if isinstance(argv, str):
        return shlex.split(argv)
    if isinstance(argv, Iterable):
        tokens = list(argv)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("dispatch() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("dispatch() argument must be a string or an iterable of strings")


class Dispatcher:
    """
    Entry point of a helmsman application.

    Parameters
    - *commands: root Command objects.
    - name: program name (help, version, fault headers); defaults to argv[0].
    - version: version string printed by --version.
    - descr: program description for the top-level help.
    - globals: optional Container of cross-cutting options.
    - config: parsed configuration mapping or ConfigurationSource.
    - profile: configuration profile to activate (mapping config only).
    - environ: environment mapping (defaults to os.environ at dispatch time).
    - env_prefix: prefix deriving environment names for specs without env=.
    - hooks: dispatcher-level hooks (run before command and action hooks).
    - exits: dispatcher-level exit-code mappings (searched last).
    - shell: render faults and return codes (True) or raise them (False).
    - fancy / colorful: rendering options for help, version and faults.

        app = Dispatcher(deploy, name="tool", version="1.2.0")
        raise SystemExit(app.dispatch())
    """

    def __init__(
            self,
            *commands,
            name=Unset,
            version=Unset,
            descr=Unset,
            globals=Unset,
            config=Unset,
            profile=Unset,
            environ=Unset,
            env_prefix=Unset,
            hooks=(),
            exits=(),
            shell=True,
            fancy=False,
            colorful=True,
    ):
        if not all(isinstance(command, Command) for command in commands):
            raise TypeError("dispatcher commands must be Command objects")
        self._name = coalesce(name, os.path.basename(sys.argv[0]) or "helmsman")
        self._tree = CommandTree(commands, prog=self._name)
        self._version = coalesce(version)
        self._descr = coalesce(descr)

        if globals is not Unset and not isinstance(globals, Container):
            raise TypeError("dispatcher 'globals' must be a Container")
        self._shared = coalesce(globals)
        self._globals = {} if globals is Unset else {"globals": globals.__declare__("globals")}
        if globals is not Unset and any(member.kind == "argument" for member in globals.members.values()):
            raise TypeError("dispatcher 'globals' cannot declare positional arguments")

        if isinstance(config, ConfigurationSource):
            if profile is not Unset:
                raise ValueError("dispatcher 'profile' applies to mapping configurations only")
            self._config = config
        else:
            self._config = ConfigurationSource(coalesce(config, None), profile=profile)
        self._environ = environ
        if not isinstance(env_prefix, str | Unset):
            raise TypeError("dispatcher 'env_prefix' must be a string")
        self._prefix = coalesce(env_prefix)

        self._hooks = tuple(hooks)
        if not all(isinstance(hook, Hook) for hook in self._hooks):
            raise TypeError("dispatcher 'hooks' must contain hooks (see before/after/error)")
        self._exits = tuple(
            ExitCodeMapping(*mapping) if isinstance(mapping, tuple) else mapping for mapping in exits
        )
        if not all(isinstance(mapping, ExitCodeMapping) for mapping in self._exits):
            raise TypeError("dispatcher 'exits' must contain exit-code mappings")

        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)

    name = property(lambda self: self._name)
    version = property(lambda self: self._version)
    tree = property(lambda self: self._tree)
    shell = property(lambda self: self._shell)

    before = registrar(Stage.BEFORE)
    after = registrar(Stage.AFTER)
    error = registrar(Stage.ERROR)

    def dispatch(self, argv=Unset, /, cancel=None):
        """
        Dispatch a command line and return the exit code.

        argv is Unset (sys.argv[1:]), a shell-like string, or an iterable of
        tokens. cancel is an optional signal (anything with is_set()). Must not
        be called from a running event loop (use dispatch_async there).
        """
        return asyncio.run(self.dispatch_async(argv, cancel=cancel))

    async def dispatch_async(self, argv=Unset, /, cancel=None):
        """
        Awaitable variant of dispatch().
        """
        tokens = _tokens(argv)
        logger.debug("dispatching %r", tokens)
        return await self._dispatch(tokens, cancel)

    def run(self, argv=Unset, /):
        """
        Dispatch and exit the process with the resulting code.
        """
        sys.exit(self.dispatch(argv))

    async def _dispatch(self, tokens, signal):
        context = HookContext()
        resolution = None
        with contextlib.ExitStack() as stack:
            try:
                global_specs = list(flatten(self._globals))
                prefix, consumed = classify(tokens, [], fallback=global_specs, stop=True)
                rest = tokens[consumed:]

                if (code := self._requested(prefix, rest)) is not None:
                    return code

                resolution = self._tree.resolve(rest, offset=consumed)
                action = resolution.action
                context.command, context.action, context.path = resolution.command, action, resolution.names

                specs = self._own(action)
                classification = classify(
                    rest[resolution.consumed:],
                    list(flatten(specs)),
                    fallback=global_specs,
                    offset=consumed + resolution.consumed,
                )

                if signalled(signal):
                    return self._cancelled(CancellationOutcome("cancellation requested", source="signal"))

                environment = Environment(self._environ)
                shared = None
                if self._globals:
                    gathered = Classification()
                    gathered.options = self._gather(prefix.globals, classification.globals)
                    globals = stack.enter_context(bind(
                        self._globals,
                        gathered,
                        Layers(environment, self._config, self._config.globals(), prefix=self._prefix),
                    ))
                    shared = (self._shared, globals["globals"])
                    context.globals = context["globals"] = globals["globals"]

                arguments = stack.enter_context(bind(
                    action.parameters,
                    classification,
                    Layers(environment, self._config, self._config.section(resolution.names), prefix=self._prefix),
                    shared=shared,
                ))
                context.arguments = arguments
            except ConfigurationError:
                raise
            except CommandException as fault:
                return await self._fail(context, fault, resolution)

            async def invoke():
                result = action.callback(**arguments.keywords(action.parameters))
                if inspect.isawaitable(result):
                    result = await result
                return result

            pipeline = HookPipeline((*self._hooks, *self._tree.hooks(resolution)))
            try:
                outcome = await pipeline.run(context, invoke, signal=signal)
            except Exception as exception:
                return self._unhandled(exception, resolution)

        if isinstance(outcome, CancellationOutcome):
            return self._cancelled(outcome)
        if context.exception is not None:
            code = coalesce(context.exit_code, None)
            if code is None:
                code = self._mapped(context.exception, resolution)
            if code is None:
                code = ExitCode.ERROR.value
            logger.debug("exception %s handled by an error-hook; exit code %d", type(context.exception).__name__, code)
            return int(code)
        if context.exit_code is not Unset:
            return int(context.exit_code)
        code = from_result(outcome, action.returns)
        logger.debug("action %r completed with exit code %d", action.name, code)
        return code

    def _own(self, action):
        """
        Action parameters minus the one receiving the shared global object.
        """
        return {
            key: spec for key, spec in action.parameters.items()
            if self._shared is None or getattr(spec, "_origin", None) is not self._shared
        }

    @staticmethod
    def _gather(*occurrences):
        gathered = {}
        for source in occurrences:
            for key, values in source.items():
                gathered.setdefault(key, []).extend(values)
        return gathered

    def _requested(self, prefix, rest):
        """
        Serve --help/--version when asked for and not claimed by the action.
        """
        requests = set(prefix.requests)
        scan = rest[:rest.index("--")] if "--" in rest else rest
        path, action = self._tree.locate(scan)
        if action is None and path:
            action = path[-1].primary
        claimed = set()
        if action is not None:
            for _, spec in flatten(action.parameters):
                if spec.kind in ("option", "switch"):
                    claimed.update(("--" + spec.name, "-" + spec.short if spec.short else None))
        for token, request in (("--help", "help"), ("-h", "help"), ("--version", "version")):
            if token in scan and token not in claimed:
                requests.add(request)

        if "version" in requests:
            self._versioner()
            return ExitCode.SUCCESS.value
        if "help" in requests:
            self._helper(path, action)
            return ExitCode.SUCCESS.value
        return None

    def _mapped(self, exception, resolution):
        groups = (*self._tree.exits(resolution), self._exits) if resolution is not None else (self._exits,)
        mapping = find(exception, *groups)
        return mapping.code if mapping is not None else None

    def _options(self):
        return {"tool": self, "shell": True, "fancy": self._fancy, "colorful": self._colorful}

    async def _fail(self, context, fault, resolution):
        """
        Usage or binding fault: dispatcher error-hooks, then mappings, then rendering.
        """
        context.exception = fault
        if await HookPipeline(self._hooks).handle(context, fault):
            if context.exit_code is not Unset:
                return int(context.exit_code)
            code = self._mapped(fault, resolution)
            return code if code is not None else ExitCode.ERROR.value
        code = self._mapped(fault, resolution)
        if not self._shell:
            raise fault
        trigger(fault, **self._options())
        logger.debug("%s rendered; exit code %d", type(fault).__name__, code or ExitCode.ERROR.value)
        return code if code is not None else ExitCode.ERROR.value

    def _unhandled(self, exception, resolution):
        """
        Action exception no error-hook handled.
        """
        if (code := self._mapped(exception, resolution)) is not None:
            return code
        if not self._shell:
            raise exception
        fault = ActionError(
            str(exception) or type(exception).__name__,
            title="%s failed" % resolution.action.name,
            hint="unexpected %s raised by the action" % type(exception).__name__,
        )
        fault.__cause__ = exception
        trigger(fault, **self._options())
        logger.debug("unhandled %s in action %r", type(exception).__name__, resolution.action.name, exc_info=exception)
        return ExitCode.ERROR.value

    def _cancelled(self, outcome):
        if self._shell and outcome.message:
            Console(stderr=True).print(Text.assemble(
                Text("cancelled", "bold #FFD600" if self._colorful else ""),
                ": ",
                str(outcome.message),
            ))
        return ExitCode.CANCELLED.value

    def _styles(self):
        return defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "program-version": "bold #36C5F0",
            "usage-section": "bold #36C5F0",
            "description-section": "italic #A3A3A3",
            "group-label": "bold #FFFFFF",
            "argument-description": "#9CA3AF",
            "option-name": "bold #00E6FF",
            "flag-name": "bold #22C55E",
            "metavar": "bold #FFD600",
            "choice": "bold #FF4D94",
            "default": "#737373",
            "children-title": "bold #FFFFFF",
            "children-table": "#4B5563",
            "children": "bold #36C5F0",
            "children-description": "#9CA3AF",
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

    def _helper(self, path=(), action=None, /):
        """
        Render help for the deepest resolved node to stdout.

        - no path: the program and its commands;
        - a command: its subcommands and actions;
        - an action: its usage line, arguments and options.
        Global options are listed at every level.
        """
        console = Console()
        styles = self._styles()

        def styler(style):
            return styles[style] if self._colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self._colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        def metavar(spec):
            if spec.type.choices or spec.choices:
                choices = spec.choices or spec.type.choices
                shown = Text.assemble("{", Text(",").join(text(choice, styler("choice")) for choice in map(str, choices)), "}")
            else:
                shown = text(spec.metavar or "<%s>" % spec.name, styler("metavar"))
            if getattr(spec, "collection", False):
                shown = Text.assemble(shown, "...")
            return shown

        def describe(spec):
            descr = text(spec.descr, styler("argument-description"))
            extras = []
            if spec.kind != "switch" and spec.default not in (Unset, None):
                extras.append("default: %s" % spec.default)
            if spec.env:
                extras.append("env: %s" % spec.env)
            if spec.required:
                extras.append("required")
            if extras:
                descr = Text.assemble(descr, " " if descr else "", text("(%s)" % ", ".join(extras), styler("default")))
            return descr

        def section(title, specs):
            rows = Table.grid(padding=(0, 2))
            rows.add_column(no_wrap=True)
            rows.add_column()
            for spec in specs:
                if spec.hidden:
                    continue
                if spec.kind == "argument":
                    names = metavar(spec)
                else:
                    style = styler("flag-name" if spec.kind == "switch" else "option-name")
                    names = Text(", ").join(text(name, style) for name in spec.names)
                    if spec.kind == "option":
                        names = Text.assemble(names, " ", metavar(spec))
                rows.add_row(Text.assemble("  ", names), describe(spec))
            return [Text.assemble(text(title, styler("group-label")), ":"), rows]

        renders = []
        route = [self._name, *(command.name for command in path)]

        usage = Text()
        usage.append("usage", styler("usage-label")).append(": ")
        usage.append(text(" ".join(route), styler("program-name")))
        if action is not None:
            if not action.primary:
                usage.append(" ").append(text(action.name, styler("program-name")))
            usage.append(" [options]")
            for spec in action.arguments:
                if not spec.hidden:
                    shown = metavar(spec)
                    usage.append(" ").append(shown if spec.required else Text.assemble("[", shown, "]"))
        elif path:
            usage.append(" <action|subcommand> [options]")
        else:
            usage.append(" [options] <command> ...")
        renders.append(usage)

        descr = action.descr if action is not None else path[-1].descr if path else self._descr
        if descr:
            renders.append(text(descr, styler("description-section")))

        if action is None:
            nodes = path[-1].children + path[-1].actions if path else list(self._tree.roots)
            if nodes := [node for node in nodes if not node.hidden]:
                table = Table(
                    "name", "help",
                    title=text("commands" if not path else "subcommands and actions", styler("children-title")),
                    box=ROUNDED,
                    style=styler("children-table"),
                    header_style=styler("children-title"),
                )
                for node in nodes:
                    label = node.name + (" (%s)" % ", ".join(node.aliases) if node.aliases else "")
                    if getattr(node, "primary", False) is True:
                        label += " *"
                    help = node.descr or "run '%s %s --help' for details" % (" ".join(route), node.name)
                    table.add_row(text(label, styler("children")), text(help, styler("children-description")))
                renders.append(table)
        else:
            specs = [spec for _, spec in flatten(self._own(action))]
            if arguments := [spec for spec in specs if spec.kind == "argument"]:
                renders.extend(section("arguments", sorted(arguments, key=lambda spec: spec.position)))
            if options := [spec for spec in specs if spec.kind != "argument"]:
                renders.extend(section("options", options))

        if self._globals:
            renders.extend(section("global options", self._globals["globals"].members.values()))

        renderable = Group(*renders)
        if self._fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{self._name} HELP".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
            )
        console.print(renderable)

    def _versioner(self):
        """
        Render "name — version" to stdout.
        """
        console = Console()
        styles = self._styles()

        def styler(style):
            return styles[style] if self._colorful else ""

        renderable = Text(" — ").join((
            Text(self._name, styler("program-name")),
            Text(self._version or "0.0.0", styler("program-version")),
        ))
        if self._fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{self._name} VERSION".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
            )
        console.print(renderable)

    def __repr__(self):
        return f"dispatcher({self._name!r}, commands={[root.name for root in self._tree.roots]!r})"


__all__ = (
    "Dispatcher",
)
