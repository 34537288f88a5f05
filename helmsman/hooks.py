"""
Helmsman lifecycle hooks.

Scope
- Hook: a callable registered for one stage (before, after, error) with an
  order (lower runs first; ties keep scope then declaration order).
- HookContext: per-dispatch shared state handed to every hook. It behaves as
  a mutable mapping for free-form data and exposes the resolved command,
  action, path, bound arguments and the cancellation/exit-code controls.
- HookPipeline: the state machine running before-hooks, the action, and
  after-hooks or error-hooks.

Hook signatures (plain functions or coroutine functions)
- before(context)                      -> None; may call context.cancel(message)
- after(context, result)               -> None
- error(context, exception)            -> truthy when the exception is handled

States
    NOT_STARTED -> BEFORE_RUNNING -> (CANCELLED | ACTION_RUNNING)
    ACTION_RUNNING -> AFTER_RUNNING -> COMPLETED
    ACTION_RUNNING -> ERROR_HANDLING -> (COMPLETED | exception propagates)
"""
import inspect
import logging
from collections.abc import MutableMapping
from enum import Enum

from .utils import *

logger = logging.getLogger(__name__)


class Stage(Enum):
    BEFORE = "before"
    AFTER = "after"
    ERROR = "error"


class PipelineState(Enum):
    NOT_STARTED = "not-started"
    BEFORE_RUNNING = "before-running"
    CANCELLED = "cancelled"
    ACTION_RUNNING = "action-running"
    AFTER_RUNNING = "after-running"
    ERROR_HANDLING = "error-handling"
    COMPLETED = "completed"


class Hook:
    """
    Descriptor of a registered hook.
    """
    __slots__ = ("callback", "stage", "order")

    def __init__(self, callback, stage, /, order=0):
        if not callable(callback):
            raise TypeError("hook 'callback' must be callable")
        try:
            stage = Stage(stage)
        except ValueError:
            raise ValueError("hook 'stage' must be one of 'before', 'after' or 'error'") from None
        if not isinstance(order, int) or isinstance(order, bool):
            raise TypeError("hook 'order' must be an integer")
        self.callback = callback
        self.stage = stage
        self.order = order

    def __repr__(self):
        return f"hook({self.stage.value}, {getattr(self.callback, "__qualname__", self.callback)!r}, order={self.order})"

    async def __call__(self, *args):
        result = self.callback(*args)
        if inspect.isawaitable(result):
            result = await result
        return result


def _hook(stage):
    def factory(callback=Unset, /, order=0):
        if callback is Unset:
            return lambda callback: Hook(callback, stage, order)
        return Hook(callback, stage, order)
    return rename(factory, stage.value)


before = _hook(Stage.BEFORE)
before.__doc__ = "Build a before-hook (usable as @before or @before(order=...))."
after = _hook(Stage.AFTER)
after.__doc__ = "Build an after-hook (usable as @after or @after(order=...))."
error = _hook(Stage.ERROR)
error.__doc__ = "Build an error-hook (usable as @error or @error(order=...))."


class HookContext(MutableMapping):
    """
    Shared, per-dispatch context threaded through every hook.

    Mapping interface
    - free-form data shared between hooks (context["user"] = ...).

    Attributes
    - command / action: resolved nodes (None while unresolved).
    - path: tuple of resolved command names.
    - arguments: BoundArguments (None before binding).
    - globals: bound global options object (None when not declared).
    - result: the action's return value once it completed.
    - exception: the exception being handled by error-hooks.
    - state: current PipelineState.
    - cancelled / message: set through cancel().
    - exit_code: Unset, or an integer any hook may set to override the exit code.
    """

    def __init__(self, command=None, action=None, /, path=(), arguments=None):
        self._data = {}
        self.command = command
        self.action = action
        self.path = tuple(path)
        self.arguments = arguments
        self.globals = None
        self.result = None
        self.exception = None
        self.state = PipelineState.NOT_STARTED
        self.cancelled = False
        self.message = None
        self.exit_code = Unset

    def cancel(self, message=None, /):
        """
        Request cancellation; remaining before-hooks and the action are skipped.
        """
        self.cancelled = True
        self.message = message

    def __getitem__(self, key):
        return self._data[key]

    def __setitem__(self, key, value):
        self._data[key] = value

    def __delitem__(self, key):
        del self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)

    def __repr__(self):
        return f"hook-context(path={self.path!r}, state={self.state.value!r}, data={self._data!r})"


class CancellationOutcome:
    """
    Terminal result of a cancelled dispatch (not an error).

    source is "hook" when a before-hook cancelled, "signal" when the caller's
    cancellation signal was observed.
    """
    __slots__ = ("message", "source")

    def __init__(self, message=None, /, source="hook"):
        self.message = message
        self.source = source

    def __bool__(self):
        return False

    def __repr__(self):
        return f"cancellation-outcome({self.message!r}, source={self.source!r})"


def registrar(stage, /):
    """
    Build a decorator method registering hooks of one stage on an object
    holding a _hooks tuple (Command, Action, Dispatcher).

        @command.before
        def authenticate(context): ...

        @command.error(order=-1)
        def report(context, exception): ...
    """
    stage = Stage(stage)

    @rename(stage.value)
    def register(self, callback=Unset, /, order=0):
        def wrapper(callback):
            if getattr(self, "_sealed", False):
                raise TypeError(f"{getattr(type(self), "__typename__", type(self).__name__.lower())} {getattr(self, 'name', '')!r} is sealed and cannot be modified")
            self._hooks = self._hooks + (Hook(callback, stage, order),)
            return callback
        return wrapper(callback) if callback is not Unset else wrapper

    register.__doc__ = f"Register a {stage.value}-hook (usable as a decorator, with or without order=...)."
    return register


def arrange(hooks, /):
    """
    Return hooks grouped by stage, each sorted by order.

    The sort is stable: equal orders keep the order hooks were given in, which
    the dispatcher passes as dispatcher, commands root to leaf, then action.
    """
    staged = {stage: [] for stage in Stage}
    for hook in hooks:
        if not isinstance(hook, Hook):
            raise TypeError("hooks must be Hook instances (see before/after/error)")
        staged[hook.stage].append(hook)
    for stage in staged:
        staged[stage].sort(key=lambda hook: hook.order)
    return staged


def signalled(signal, /):
    """
    True when a cooperative cancellation signal (anything with is_set()) is set.
    """
    return signal is not None and signal.is_set()


class HookPipeline:
    """
    Run one action invocation between its hooks.

    The pipeline never runs two stages concurrently: before-hooks, the action,
    and after-hooks/error-hooks are awaited one at a time.
    """

    def __init__(self, hooks=(), /):
        self._hooks = arrange(hooks)

    @property
    def hooks(self):
        return {stage.value: list(hooks) for stage, hooks in self._hooks.items()}

    async def run(self, context, invoke, /, signal=None):
        """
        Drive the pipeline.

        Parameters
        - context: HookContext for this dispatch.
        - invoke: zero-argument coroutine function running the action.
        - signal: optional cancellation signal.

        Returns
        - CancellationOutcome when cancelled, otherwise the action result (or
          None when an error-hook handled the exception, see context.exception).

        Raises
        - the action's exception when no error-hook handles it.
        """
        context.state = PipelineState.BEFORE_RUNNING
        for hook in self._hooks[Stage.BEFORE]:
            if signalled(signal):
                return self._cancel(context, CancellationOutcome("cancellation requested", source="signal"))
            logger.debug("running before-hook %r", hook)
            await hook(context)
            if context.cancelled:
                return self._cancel(context, CancellationOutcome(context.message, source="hook"))

        if signalled(signal):
            return self._cancel(context, CancellationOutcome("cancellation requested", source="signal"))

        context.state = PipelineState.ACTION_RUNNING
        try:
            result = await invoke()
        except Exception as exception:
            context.state = PipelineState.ERROR_HANDLING
            context.exception = exception
            if not await self.handle(context, exception):
                raise
            context.state = PipelineState.COMPLETED
            return None

        context.result = result
        context.state = PipelineState.AFTER_RUNNING
        for hook in self._hooks[Stage.AFTER]:
            if signalled(signal):
                return self._cancel(context, CancellationOutcome("cancellation requested", source="signal"))
            logger.debug("running after-hook %r", hook)
            await hook(context, result)

        context.state = PipelineState.COMPLETED
        return result

    async def handle(self, context, exception, /):
        """
        Offer an exception to the error-hooks in order; True once one handles it.
        """
        for hook in self._hooks[Stage.ERROR]:
            logger.debug("running error-hook %r for %s", hook, type(exception).__name__)
            if await hook(context, exception):
                logger.debug("exception %s handled by %r", type(exception).__name__, hook)
                return True
        return False

    @staticmethod
    def _cancel(context, outcome):
        context.state = PipelineState.CANCELLED
        context.cancelled = True
        context.message = outcome.message
        logger.debug("dispatch cancelled (%s): %s", outcome.source, outcome.message)
        return outcome


__all__ = (
    "Stage",
    "PipelineState",
    "Hook",
    "HookContext",
    "HookPipeline",
    "CancellationOutcome",
    "before",
    "after",
    "error",
    "arrange",
    "registrar",
)
