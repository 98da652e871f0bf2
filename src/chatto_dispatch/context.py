"""Per-event context handed to filters, extractors and the interceptor."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .data import UserData
from .types import DM_SPACE, Message, SpaceEvent, User

if TYPE_CHECKING:
    from .client import Client


@dataclass(frozen=True)
class Context:
    """Everything a handler may ask for while one event is being dispatched.

    Frozen: an interceptor that wants to change something returns a copy made
    with :meth:`replace`.
    """

    client: Client
    event: SpaceEvent
    message: Message
    me: User
    data: UserData

    @classmethod
    def build(
        cls, client: Client, event: SpaceEvent, me: User, data: UserData
    ) -> Context:
        return cls(
            client=client,
            event=event,
            message=Message.from_event(event),
            me=me,
            data=data,
        )

    @property
    def text(self) -> str:
        return self.message.text

    @property
    def sender(self) -> User | None:
        return self.message.sender

    @property
    def is_dm(self) -> bool:
        return self.message.space_id == DM_SPACE

    def replace(self, **changes: Any) -> Context:
        return dataclasses.replace(self, **changes)

    async def reply(self, body: str) -> dict:
        """Reply to the message being handled."""
        return await self.client.reply(self.message, body)

    async def send(self, body: str) -> dict:
        """Post a top-level message in the same room."""
        return await self.client.send_message(self.message, body)

    async def react(self, emoji: str) -> bool:
        return await self.client.add_reaction(self.message, emoji)
