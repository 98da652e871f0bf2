import asyncio
import itertools

from chatto_dispatch.types import (
    Attachment,
    ChatKind,
    MessagePostedEvent,
    ReactionAddedEvent,
    SpaceEvent,
    User,
)

_ids = itertools.count(1)

ME = User(id="bot", login="bot", display_name="Bot")
ALICE = User(id="u-alice", login="alice", display_name="Alice")


class FakeClient:
    """Records what handlers send instead of talking to a server."""

    def __init__(self, me=ME):
        self._me = me
        self.sent = []
        self.closed = False

    async def me(self):
        return self._me

    async def post_message(self, space_id, room_id, body, *, in_reply_to=None):
        self.sent.append((room_id, body))
        return {"id": f"posted-{len(self.sent)}"}

    async def send_message(self, message, body):
        return await self.post_message(message.space_id, message.room_id, body)

    async def reply(self, message, body):
        return await self.post_message(
            message.space_id, message.room_id, body, in_reply_to=message.id
        )

    async def add_reaction(self, message, emoji):
        self.sent.append((message.room_id, emoji))
        return True

    async def close(self):
        self.closed = True


class FakeEventSource:
    """Hands out queued events; ``None`` (or running dry) ends the stream."""

    def __init__(self, events=()):
        self._queue = asyncio.Queue()
        for event in events:
            self._queue.put_nowait(event)
        self.fetched = 0

    def push(self, event):
        self._queue.put_nowait(event)

    def close(self):
        self._queue.put_nowait(None)

    async def next_event(self):
        item = await self._queue.get()
        if isinstance(item, BaseException):
            raise item
        if item is not None:
            self.fetched += 1
        return item


def make_message(
    text,
    *,
    attachments=None,
    space_id="space-1",
    room_id="room-1",
    chat_kind=ChatKind.GROUP,
    actor=ALICE,
    in_reply_to=None,
    in_thread=None,
    forwarded_from=None,
):
    n = next(_ids)
    return SpaceEvent(
        id=f"ev-{n}",
        created_at="2024-01-01T00:00:00Z",
        actor_id=actor.id if actor else "",
        sequence_id=str(n),
        event=MessagePostedEvent(
            space_id=space_id,
            room_id=room_id,
            message_body_id=f"mb-{n}",
            body=text,
            attachments=list(attachments or []),
            in_reply_to=in_reply_to,
            in_thread=in_thread,
            forwarded_from=forwarded_from,
            chat_kind=chat_kind,
        ),
        actor=actor,
    )


def make_reaction(emoji="👍"):
    n = next(_ids)
    return SpaceEvent(
        id=f"ev-{n}",
        created_at="2024-01-01T00:00:00Z",
        actor_id=ALICE.id,
        sequence_id=str(n),
        event=ReactionAddedEvent(
            space_id="space-1",
            room_id="room-1",
            message_event_id="ev-0",
            emoji=emoji,
        ),
        actor=ALICE,
    )


def attachment(content_type, filename="file"):
    return Attachment(
        id=f"att-{next(_ids)}",
        filename=filename,
        content_type=content_type,
        size=1024,
    )
