"""Handler registration and the per-event matching algorithm."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from .context import Context
from .errors import DispatchError, MissingParametersError
from .extract import Extractor, extract_all, resolve_parameters
from .filters import Filter, Pattern, PatternMutator, as_filter
from .types import Message, SpaceEvent, User, event_name

if TYPE_CHECKING:
    from .client import Client
    from .data import UserData

logger = logging.getLogger(__name__)

EventFallback = Callable[["Client", SpaceEvent], Awaitable[Any]]
ErrorHandler = Callable[[DispatchError, "Client", SpaceEvent], Awaitable[Any]]
Interceptor = Callable[[Context], Union[Awaitable[Union[Context, None]], Context, None]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class Handler:
    """A callback plus the filters that must all match before it runs.

    Parameters of the callback are injected by type when it is registered;
    see :mod:`chatto_dispatch.extract`.
    """

    callback: Callable[..., Any]
    filters: list[Filter] = field(default_factory=list)
    _extractors: list[Extractor] | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @property
    def name(self) -> str:
        return getattr(self.callback, "__name__", repr(self.callback))

    @property
    def patterns(self) -> list[Pattern]:
        return [f for f in self.filters if isinstance(f, Pattern)]

    def resolve(self) -> None:
        """Resolve parameter extractors; raises TypeError for unknown types."""
        if self._extractors is None:
            self._extractors = resolve_parameters(self.callback)

    def matches(self, ctx: Context, mutator: PatternMutator | None = None) -> bool:
        return all(f.matches(ctx.message, ctx, mutator) for f in self.filters)

    def bind(self, ctx: Context) -> list[Any] | None:
        """Extract every parameter, or None if any of them is absent."""
        self.resolve()
        return extract_all(self._extractors, ctx)

    async def invoke(self, args: list[Any]) -> Any:
        return await _maybe_await(self.callback(*args))

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return await _maybe_await(self.callback(*args, **kwargs))


def handler(*filters: Any) -> Callable[[Callable[..., Any]], Handler]:
    """Decorator pairing a function with its filters.

    Strings are regex patterns, callables are ``(message, ctx) -> bool``
    predicates; all of them must match::

        @handler(r"^/repeat\\b", lambda m, ctx: not ctx.is_dm)
        async def repeat(message: Message, args: Args[Repeat]) -> None:
            ...

    The result is registered with ``Bot.add_handler``.
    """
    converted = [as_filter(f) for f in filters]

    def decorator(func: Callable[..., Any]) -> Handler:
        return Handler(callback=func, filters=list(converted))

    return decorator


# --- Defaults: log and carry on ---


async def log_unhandled_message(message: Message) -> None:
    logger.info("Unhandled message: %s", message.text)


async def log_unhandled_event(client: Client, event: SpaceEvent) -> None:
    logger.debug("Unhandled %s event %s", event_name(event.event), event.id)


async def log_error(error: DispatchError, client: Client, event: SpaceEvent) -> None:
    logger.error("Error while handling event %s: %s", event.id, error, exc_info=error)


class HandlerTable:
    """Ordered handlers plus the single-slot hooks around them.

    Registration order is match priority: the first handler whose filters all
    match and whose parameters can all be extracted wins.
    """

    def __init__(self) -> None:
        self._handlers: list[Handler] = []
        self._fallback = Handler(log_unhandled_message)
        self._fallback.resolve()
        self._event_fallback: EventFallback = log_unhandled_event
        self._error_handler: ErrorHandler = log_error
        self._interceptor: Interceptor | None = None
        self._mutator: PatternMutator | None = None

    @property
    def handlers(self) -> list[Handler]:
        return list(self._handlers)

    def add(self, entry: Handler) -> None:
        for pattern in entry.patterns:
            pattern.validate(self._mutator)
        entry.resolve()
        self._handlers.append(entry)

    def set_fallback(self, func: Callable[..., Any] | Handler) -> None:
        fallback = func if isinstance(func, Handler) else Handler(func)
        fallback.resolve()
        self._fallback = fallback

    def set_event_fallback(self, func: EventFallback) -> None:
        self._event_fallback = func

    def set_error_handler(self, func: ErrorHandler) -> None:
        self._error_handler = func

    def set_interceptor(self, func: Interceptor | None) -> None:
        self._interceptor = func

    def set_pattern_mutator(self, func: PatternMutator | None) -> None:
        """Install the mutator after checking every registered pattern with it."""
        for entry in self._handlers:
            for pattern in entry.patterns:
                pattern.validate(func)
        self._mutator = func

    async def dispatch(
        self, event: SpaceEvent, client: Client, me: User, data: UserData
    ) -> Any:
        """Route one event; exceptions propagate to the caller."""
        if not event.is_message:
            return await _maybe_await(self._event_fallback(client, event))

        ctx = Context.build(client, event, me, data)

        if self._interceptor is not None:
            intercepted = await _maybe_await(self._interceptor(ctx))
            if intercepted is not None:
                if not isinstance(intercepted, Context):
                    raise TypeError(
                        f"Interceptor returned {type(intercepted).__name__}, expected Context"
                    )
                ctx = intercepted

        for entry in self._handlers:
            if not entry.matches(ctx, self._mutator):
                continue
            args = entry.bind(ctx)
            if args is None:
                logger.debug("Handler %s matched but its parameters are unavailable", entry.name)
                continue
            logger.debug("Message %s handled by %s", ctx.message.id, entry.name)
            return await entry.invoke(args)

        args = self._fallback.bind(ctx)
        if args is None:
            raise MissingParametersError("fallback handler parameters")
        return await self._fallback.invoke(args)

    async def report(self, error: DispatchError, client: Client, event: SpaceEvent) -> None:
        """Hand ``error`` to the error handler; a failing error handler is logged."""
        try:
            await _maybe_await(self._error_handler(error, client, event))
        except Exception:
            logger.exception("Error handler failed while reporting %r", error)
