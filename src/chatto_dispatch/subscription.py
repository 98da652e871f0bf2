"""WebSocket event stream using the graphql-transport-ws protocol.

One subscription task per space feeds a shared queue; the dispatcher pulls from
it one event at a time through ``EventStream.next_event``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Protocol

import websockets
from websockets.exceptions import InvalidStatus

from .errors import AuthorizationError, DispatchError, SignInError, UnimplementedError
from .types import SpaceEvent, parse_space_event

if TYPE_CHECKING:
    from .config import BotConfig

logger = logging.getLogger(__name__)

SPACE_EVENTS_QUERY = """\
subscription SpaceEvents($spaceId: ID!) {
    mySpaceEvents(spaceId: $spaceId) {
        id
        createdAt
        actorId
        actor { id login displayName avatarUrl presenceStatus }
        sequenceId
        event {
            __typename
            ... on MessagePostedEvent {
                spaceId roomId body messageBodyId
                attachments { id filename contentType size width height url }
                inReplyTo inThread
            }
            ... on MessageUpdatedEvent {
                spaceId roomId body messageBodyId
                attachments { id filename contentType size width height url }
            }
            ... on MessageDeletedEvent { spaceId roomId messageBodyId }
            ... on UserJoinedRoomEvent { spaceId roomId }
            ... on UserLeftRoomEvent { spaceId roomId }
            ... on ReactionAddedEvent { spaceId roomId messageEventId emoji }
            ... on ReactionRemovedEvent { spaceId roomId messageEventId emoji }
            ... on UserTypingEvent { spaceId roomId threadRootEventId }
            ... on PresenceChangedEvent { status }
        }
    }
}"""

MAX_BACKOFF = 60.0


class EventSource(Protocol):
    """Anything the dispatcher can pull events from."""

    async def next_event(self) -> SpaceEvent | None:
        """Return the next event, or None once the stream is closed."""
        ...


_CLOSED = object()


class EventStream:
    """Merges the subscriptions of several spaces into one ordered stream."""

    def __init__(self, config: BotConfig) -> None:
        self.config = config
        self._channels = frozenset(config.channels)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._tasks: dict[str, asyncio.Task] = {}
        self._running = False

    def start(self) -> None:
        """Start a subscription task for every configured space."""
        spaces = self.config.all_spaces
        if not spaces:
            logger.warning("No spaces configured, the stream will stay empty")
        self._running = True
        for space_id in spaces:
            self._tasks[space_id] = asyncio.create_task(
                self._subscribe(space_id), name=f"sub-{space_id}"
            )

    async def next_event(self) -> SpaceEvent | None:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the stream closed for any later caller
            self._queue.put_nowait(_CLOSED)
            return None
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        """Stop all subscriptions and signal end of stream."""
        self._running = False
        for task in self._tasks.values():
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()
        self._queue.put_nowait(_CLOSED)

    async def _subscribe(self, space_id: str) -> None:
        """Subscribe to a space's events with auto-reconnect."""
        backoff = 1.0

        while self._running:
            try:
                await self._run_subscription(space_id)
                backoff = 1.0
            except asyncio.CancelledError:
                logger.info("Subscription cancelled for space %s", space_id)
                raise
            except DispatchError as e:
                # Credentials problems won't fix themselves; end the stream
                logger.error("Subscription for space %s failed: %s", space_id, e)
                self._queue.put_nowait(e)
                return
            except Exception:
                if not self._running:
                    break
                logger.exception(
                    "Subscription error for space %s, reconnecting in %.1fs",
                    space_id,
                    backoff,
                )
            else:
                if self._running:
                    logger.warning(
                        "Subscription ended for space %s, reconnecting in %.1fs",
                        space_id,
                        backoff,
                    )
            if self._running:
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF)

    async def _run_subscription(self, space_id: str) -> None:
        headers = {
            "Cookie": self.config.cookie_header,
            "Origin": self.config.instance,
        }

        logger.info("Connecting subscription for space %s", space_id)

        try:
            async with websockets.connect(
                self.config.ws_url,
                subprotocols=["graphql-transport-ws"],
                additional_headers=headers,
            ) as ws:
                await self._consume(ws, space_id)
        except InvalidStatus as e:
            if e.response.status_code in (401, 403):
                raise AuthorizationError(
                    f"Subscription rejected with HTTP {e.response.status_code}"
                ) from e
            raise

    async def _consume(self, ws, space_id: str) -> None:
        await ws.send(json.dumps({"type": "connection_init"}))
        ack = json.loads(await ws.recv())
        if ack.get("type") != "connection_ack":
            raise SignInError(f"Expected connection_ack, got: {ack}")

        await ws.send(json.dumps({
            "id": "1",
            "type": "subscribe",
            "payload": {
                "query": SPACE_EVENTS_QUERY,
                "variables": {"spaceId": space_id},
            },
        }))
        logger.info("Subscribed to space %s", space_id)

        async for raw in ws:
            if not self._running:
                break

            msg = json.loads(raw)
            msg_type = msg.get("type")

            if msg_type == "next":
                self._enqueue(msg)
            elif msg_type == "error":
                logger.error("Subscription error: %s", msg.get("payload"))
            elif msg_type == "complete":
                logger.info("Subscription completed by server")
                break
            elif msg_type == "ping":
                await ws.send(json.dumps({"type": "pong"}))

    def _enqueue(self, msg: dict) -> None:
        try:
            event_data = msg["payload"]["data"]["mySpaceEvents"]
            event = parse_space_event(event_data, self._channels)
        except UnimplementedError as e:
            logger.debug("Skipping event: %s", e)
            return
        except (KeyError, TypeError, ValueError):
            logger.exception("Malformed subscription payload")
            return
        self._queue.put_nowait(event)
