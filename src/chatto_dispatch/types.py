"""Dataclasses mirroring the Chatto GraphQL schema, plus the routed message view."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import NewType

from .errors import UnimplementedError

DM_SPACE = "DM"


@dataclass
class User:
    id: str
    login: str
    display_name: str
    avatar_url: str | None = None
    presence_status: str = "OFFLINE"


# Distinguishes the author of a message from the bot's own ``User``.
Sender = NewType("Sender", User)


@dataclass
class Attachment:
    id: str
    filename: str
    content_type: str
    size: int
    width: int = 0
    height: int = 0
    url: str = ""


# --- Media kinds ---


@dataclass
class Media:
    """An attachment classified by what it carries."""

    attachment: Attachment

    @property
    def filename(self) -> str:
        return self.attachment.filename

    @property
    def url(self) -> str:
        return self.attachment.url


@dataclass
class Photo(Media):
    @property
    def width(self) -> int:
        return self.attachment.width

    @property
    def height(self) -> int:
        return self.attachment.height


@dataclass
class Sticker(Media):
    pass


@dataclass
class Document(Media):
    @property
    def content_type(self) -> str:
        return self.attachment.content_type

    @property
    def size(self) -> int:
        return self.attachment.size


STICKER_CONTENT_TYPES = frozenset({"image/webp"})


def classify_attachment(attachment: Attachment) -> Media:
    """Stickers are webp images, other images are photos, the rest documents."""
    content_type = attachment.content_type.lower()
    if content_type in STICKER_CONTENT_TYPES:
        return Sticker(attachment)
    if content_type.startswith("image/"):
        return Photo(attachment)
    return Document(attachment)


# --- Chat kinds ---


class ChatKind(enum.Enum):
    USER = "user"
    GROUP = "group"
    CHANNEL = "channel"


@dataclass
class Chat:
    space_id: str
    room_id: str

    @property
    def kind(self) -> ChatKind:
        raise NotImplementedError


@dataclass
class UserChat(Chat):
    """A direct-message room."""

    @property
    def kind(self) -> ChatKind:
        return ChatKind.USER


@dataclass
class GroupChat(Chat):
    @property
    def kind(self) -> ChatKind:
        return ChatKind.GROUP


@dataclass
class ChannelChat(Chat):
    """A room configured as a broadcast channel."""

    @property
    def kind(self) -> ChatKind:
        return ChatKind.CHANNEL


_CHAT_CLASSES: dict[ChatKind, type[Chat]] = {
    ChatKind.USER: UserChat,
    ChatKind.GROUP: GroupChat,
    ChatKind.CHANNEL: ChannelChat,
}


# --- Headers ---


@dataclass
class ReplyHeader:
    reply_to: str
    thread_root: str | None = None


@dataclass
class ForwardHeader:
    from_id: str


# --- Event types (inner union) ---


@dataclass
class MessagePostedEvent:
    space_id: str
    room_id: str
    message_body_id: str
    body: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    in_reply_to: str | None = None
    in_thread: str | None = None
    # Chatto has no message forwarding; only set for events built by hand
    forwarded_from: str | None = None
    chat_kind: ChatKind = ChatKind.GROUP


@dataclass
class MessageUpdatedEvent:
    space_id: str
    room_id: str
    message_body_id: str
    body: str | None = None
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class MessageDeletedEvent:
    space_id: str
    room_id: str
    message_body_id: str


@dataclass
class UserJoinedRoomEvent:
    space_id: str
    room_id: str


@dataclass
class UserLeftRoomEvent:
    space_id: str
    room_id: str


@dataclass
class ReactionAddedEvent:
    space_id: str
    room_id: str
    message_event_id: str
    emoji: str


@dataclass
class ReactionRemovedEvent:
    space_id: str
    room_id: str
    message_event_id: str
    emoji: str


@dataclass
class UserTypingEvent:
    space_id: str
    room_id: str
    thread_root_event_id: str | None = None


@dataclass
class PresenceChangedEvent:
    status: str


EventType = (
    MessagePostedEvent
    | MessageUpdatedEvent
    | MessageDeletedEvent
    | UserJoinedRoomEvent
    | UserLeftRoomEvent
    | ReactionAddedEvent
    | ReactionRemovedEvent
    | UserTypingEvent
    | PresenceChangedEvent
)


@dataclass
class SpaceEvent:
    id: str
    created_at: str
    actor_id: str
    sequence_id: str
    event: EventType
    actor: User | None = None

    @property
    def is_message(self) -> bool:
        return isinstance(self.event, MessagePostedEvent)


@dataclass
class Message:
    """A posted message, as handlers see it."""

    id: str
    space_id: str
    room_id: str
    message_body_id: str
    text: str
    created_at: str
    chat: Chat
    sender: User | None = None
    attachments: list[Attachment] = field(default_factory=list)
    reply_header: ReplyHeader | None = None
    forward_header: ForwardHeader | None = None

    @property
    def media(self) -> Media | None:
        if not self.attachments:
            return None
        return classify_attachment(self.attachments[0])

    @classmethod
    def from_event(cls, event: SpaceEvent) -> Message:
        inner = event.event
        if not isinstance(inner, MessagePostedEvent):
            raise TypeError(f"{event_name(inner)} events do not carry a message")

        reply_header = None
        if inner.in_reply_to or inner.in_thread:
            reply_header = ReplyHeader(
                reply_to=inner.in_reply_to or inner.in_thread or "",
                thread_root=inner.in_thread,
            )
        forward_header = None
        if inner.forwarded_from:
            forward_header = ForwardHeader(from_id=inner.forwarded_from)

        return cls(
            id=event.id,
            space_id=inner.space_id,
            room_id=inner.room_id,
            message_body_id=inner.message_body_id,
            text=inner.body or "",
            created_at=event.created_at,
            chat=_CHAT_CLASSES[inner.chat_kind](inner.space_id, inner.room_id),
            sender=event.actor,
            attachments=list(inner.attachments),
            reply_header=reply_header,
            forward_header=forward_header,
        )


# Map GraphQL __typename to dataclass
_GRAPHQL_TO_EVENT: dict[str, type] = {
    "MessagePostedEvent": MessagePostedEvent,
    "MessageUpdatedEvent": MessageUpdatedEvent,
    "MessageDeletedEvent": MessageDeletedEvent,
    "UserJoinedRoomEvent": UserJoinedRoomEvent,
    "UserLeftRoomEvent": UserLeftRoomEvent,
    "ReactionAddedEvent": ReactionAddedEvent,
    "ReactionRemovedEvent": ReactionRemovedEvent,
    "UserTypingEvent": UserTypingEvent,
    "PresenceChangedEvent": PresenceChangedEvent,
}

_TYPE_TO_EVENT_NAME: dict[type, str] = {
    MessagePostedEvent: "message_posted",
    MessageUpdatedEvent: "message_updated",
    MessageDeletedEvent: "message_deleted",
    UserJoinedRoomEvent: "user_joined_room",
    UserLeftRoomEvent: "user_left_room",
    ReactionAddedEvent: "reaction_added",
    ReactionRemovedEvent: "reaction_removed",
    UserTypingEvent: "user_typing",
    PresenceChangedEvent: "presence_changed",
}

# Keys the subscription may send that we don't model
_IGNORED_KEYS = frozenset({"reactions", "updated_at", "reply_count", "last_reply_at"})


def _camel_to_snake(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


def parse_user(data: dict) -> User:
    return User(
        id=data["id"],
        login=data["login"],
        display_name=data["displayName"],
        avatar_url=data.get("avatarUrl"),
        presence_status=data.get("presenceStatus", "OFFLINE"),
    )


def _parse_attachment(data: dict) -> Attachment:
    return Attachment(
        id=data["id"],
        filename=data["filename"],
        content_type=data["contentType"],
        size=data["size"],
        width=data.get("width") or 0,
        height=data.get("height") or 0,
        url=data.get("url", ""),
    )


def _parse_inner_event(data: dict, channels: frozenset[str]) -> EventType:
    typename = data.get("__typename")
    if not typename:
        raise ValueError("Event data missing __typename")

    cls = _GRAPHQL_TO_EVENT.get(typename)
    if not cls:
        raise UnimplementedError(f"Unknown event type: {typename}")

    kwargs: dict = {}
    for key, value in data.items():
        if key == "__typename":
            continue
        snake_key = _camel_to_snake(key)
        if snake_key in _IGNORED_KEYS:
            continue
        if snake_key == "attachments" and isinstance(value, list):
            value = [_parse_attachment(a) for a in value]
        kwargs[snake_key] = value

    if cls is MessagePostedEvent:
        if kwargs.get("space_id") == DM_SPACE:
            kwargs["chat_kind"] = ChatKind.USER
        elif kwargs.get("room_id") in channels:
            kwargs["chat_kind"] = ChatKind.CHANNEL
        else:
            kwargs["chat_kind"] = ChatKind.GROUP

    return cls(**kwargs)


def parse_space_event(data: dict, channels: frozenset[str] = frozenset()) -> SpaceEvent:
    """Parse a full SpaceEvent from GraphQL subscription JSON.

    ``channels`` lists room ids whose messages are classified as channel posts.
    """
    actor_data = data.get("actor")

    return SpaceEvent(
        id=data["id"],
        created_at=data["createdAt"],
        actor_id=data["actorId"],
        sequence_id=data["sequenceId"],
        event=_parse_inner_event(data.get("event", {}), channels),
        actor=parse_user(actor_data) if actor_data else None,
    )


def event_name(event: EventType) -> str:
    """Get the snake_case event name for an event instance."""
    return _TYPE_TO_EVENT_NAME.get(type(event), "unknown")
