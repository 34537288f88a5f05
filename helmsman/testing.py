"""
Helpers for testing helmsman applications.

- ArgumentBuilder: fluent construction of argument vectors.
- parse(): split a command line with shell quoting rules.
- run(): dispatch a command line and capture exit code, stdout and stderr.

    result = run(app, ArgumentBuilder("deploy").option("port", 1234).switch("verbose"))
    assert result.success, result.error
"""
import contextlib
import io
import shlex
import time

from .utils import *


def _render(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | tuple | set | frozenset):
        return ",".join(map(_render, value))
    return str(value)


class ArgumentBuilder:
    """
    Fluent builder of argument vectors.

    Names may be given with or without dashes: option("port", 1) and
    option("--port", 1) both produce ["--port", "1"].
    """

    def __init__(self, command=None, /):
        self._arguments = []
        if command is not None:
            self.command(command)

    def command(self, name, /):
        self._arguments.append(name)
        return self

    def action(self, name, /):
        self._arguments.append(name)
        return self

    def argument(self, value, /):
        self._arguments.append(_render(value))
        return self

    def arguments(self, *values):
        self._arguments.extend(map(_render, values))
        return self

    def option(self, name, value, /):
        self._arguments.extend(("--" + name.lstrip("-"), _render(value)))
        return self

    def short(self, name, value, /):
        if len(name := name.lstrip("-")) != 1:
            raise ValueError("short option names are a single character")
        self._arguments.extend(("-" + name, _render(value)))
        return self

    def switch(self, name, /):
        if len(name.lstrip("-")) == 1 and not name.startswith("--"):
            self._arguments.append("-" + name.lstrip("-"))
        else:
            self._arguments.append("--" + name.lstrip("-"))
        return self

    def option_if(self, condition, name, value, /):
        return self.option(name, value) if condition else self

    def switch_if(self, condition, name, /):
        return self.switch(name) if condition else self

    def help(self):
        return self.switch("help")

    def version(self):
        return self.switch("version")

    def raw(self, *tokens):
        self._arguments.extend(tokens)
        return self

    def build(self):
        return list(self._arguments)

    def __iter__(self):
        return iter(self.build())

    def __str__(self):
        return shlex.join(self._arguments)

    def __repr__(self):
        return f"argument-builder({self._arguments!r})"


def parse(commandline, /):
    """
    Split a command line into tokens (POSIX shell quoting rules).
    """
    if not isinstance(commandline, str):
        raise TypeError("parse() argument must be a string")
    return shlex.split(commandline)


class CommandResult:
    """
    Captured outcome of run().
    """
    __slots__ = ("exit_code", "output", "error", "exception", "elapsed")

    def __init__(self, exit_code, /, output="", error="", exception=None, elapsed=0.0):
        self.exit_code = exit_code
        self.output = output
        self.error = error
        self.exception = exception
        self.elapsed = elapsed

    @property
    def success(self):
        return self.exit_code == 0 and self.exception is None

    @property
    def failure(self):
        return not self.success

    def __repr__(self):
        return f"command-result(exit_code={self.exit_code}, exception={self.exception!r})"


def run(dispatcher, commandline=Unset, /, cancel=None):
    """
    Dispatch commandline (a string, an ArgumentBuilder or a token list) and
    capture its exit code and output. An exception escaping the dispatcher
    (shell=False) is captured with exit code 1.
    """
    if isinstance(commandline, str):
        tokens = parse(commandline)
    elif commandline is Unset:
        tokens = []
    else:
        tokens = list(commandline)

    stdout, stderr = io.StringIO(), io.StringIO()
    started = time.perf_counter()
    exception = None
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        try:
            code = dispatcher.dispatch(tokens, cancel=cancel)
        except Exception as error:
            code, exception = 1, error
    return CommandResult(
        code,
        output=stdout.getvalue(),
        error=stderr.getvalue(),
        exception=exception,
        elapsed=time.perf_counter() - started,
    )


__all__ = (
    "ArgumentBuilder",
    "CommandResult",
    "parse",
    "run",
)
