"""Bot class: registration API and the event loop."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Callable

from .client import Client
from .config import BotConfig
from .data import UserData
from .errors import AuthorizationError, wrap_error
from .filters import PatternMutator
from .handler import ErrorHandler, EventFallback, Handler, HandlerTable, Interceptor, handler
from .subscription import EventSource, EventStream
from .types import SpaceEvent, User

logger = logging.getLogger(__name__)


class Bot:
    """Pulls events from a source and dispatches each one in its own task.

    All registration must happen before :meth:`start_event_loop`; the handler
    table and user data are read concurrently by the dispatch tasks.
    """

    def __init__(
        self,
        client: Client,
        events: EventSource,
        me: User | None = None,
        *,
        config: BotConfig | None = None,
    ) -> None:
        self.client = client
        self.me = me
        self.config = config
        self._events = events
        self._table = HandlerTable()
        self._data = UserData()
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config_path: str | Path | None = None, **overrides: Any) -> Bot:
        """Build a bot talking to a Chatto server described by ``BotConfig``."""
        config = BotConfig.load(config_path, **overrides)
        return cls(Client(config), EventStream(config), config=config)

    # --- Registration ---

    def add_handler(self, entry: Handler) -> Bot:
        self._table.add(entry)
        return self

    def handler(self, *filters: Any) -> Callable[[Callable[..., Any]], Handler]:
        """Decorator registering a handler on this bot directly."""

        def decorator(func: Callable[..., Any]) -> Handler:
            entry = handler(*filters)(func)
            self.add_handler(entry)
            return entry

        return decorator

    def fallback_handler(self, func: Callable[..., Any]) -> Bot:
        """Handler for messages no registered handler accepted."""
        self._table.set_fallback(func)
        return self

    def event_fallback(self, func: EventFallback) -> Bot:
        """``async (client, event)`` called for every non-message event."""
        self._table.set_event_fallback(func)
        return self

    def error_handler(self, func: ErrorHandler) -> Bot:
        """``async (error, client, event)`` called once per failed event."""
        self._table.set_error_handler(func)
        return self

    def interceptor(self, func: Interceptor) -> Bot:
        """``async (ctx) -> Context | None`` run before matching; raise to reject."""
        self._table.set_interceptor(func)
        return self

    def pattern_mutator(self, func: PatternMutator) -> Bot:
        self._table.set_pattern_mutator(func)
        return self

    def add_data(self, value: Any, key: type | None = None) -> Bot:
        """Make ``value`` available to handlers as ``Data[key]``."""
        self._data.add(value, key)
        return self

    @property
    def handlers(self) -> list[Handler]:
        return self._table.handlers

    @property
    def in_flight(self) -> int:
        """Number of events currently being dispatched."""
        return len(self._tasks)

    # --- Event loop ---

    async def _fetch_me(self) -> User:
        me = await self.client.me()
        if me is None:
            raise AuthorizationError("Authentication failed. Set CHATTO_SESSION.")
        logger.info("Authenticated as %s (%s)", me.display_name, me.login)
        return me

    async def start_event_loop(self) -> None:
        """Fetch events one at a time and dispatch each concurrently.

        Returns when the event source reports end of stream; an exception from
        the source ends the loop and propagates. Dispatch tasks are never
        awaited or cancelled here, and there is no limit on how many run at
        once.
        """
        if self.me is None:
            self.me = await self._fetch_me()

        logger.info("Starting event loop")
        while True:
            event = await self._events.next_event()
            if event is None:
                logger.info("Event stream closed, leaving event loop")
                return
            self._spawn(event)

    def _spawn(self, event: SpaceEvent) -> None:
        task = asyncio.create_task(
            self._handle(event, self._data.snapshot()), name=f"dispatch-{event.id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle(self, event: SpaceEvent, data: UserData) -> None:
        try:
            await self._table.dispatch(event, self.client, self.me, data)
        except Exception as e:
            await self._table.report(wrap_error(e), self.client, event)

    # --- Lifecycle ---

    async def _runner(self) -> None:
        events = self._events
        if isinstance(events, EventStream):
            events.start()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, lambda s=sig: self._shutdown(s, events))
        try:
            await self.start_event_loop()
        finally:
            if isinstance(events, EventStream):
                await events.close()
            await self.client.close()

    def _shutdown(self, sig: signal.Signals, events: EventStream) -> None:
        logger.info("Received %s, shutting down...", sig.name)
        asyncio.create_task(events.close())

    def run(self) -> None:
        """Blocking entry point. Runs until the event stream is closed."""
        level = self.config.log_level if self.config else "INFO"
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        asyncio.run(self._runner())
