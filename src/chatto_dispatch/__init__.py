"""chatto-dispatch: declarative handler dispatch for Chatto bots."""

from .args import Args, RawArgs, ignore_case, parse_arg, rest, split_n
from .bot import Bot
from .client import Client
from .config import BotConfig
from .context import Context
from .data import Data, UserData
from .errors import (
    AuthorizationError,
    ConnectionFailure,
    DispatchError,
    GraphQLError,
    HandlerError,
    InvocationError,
    MissingParametersError,
    ParseError,
    SignInError,
    UnimplementedError,
)
from .extract import extractor
from .filters import Filter, Pattern, Predicate
from .handler import Handler, HandlerTable, handler
from .subscription import EventSource, EventStream
from .types import (
    Attachment,
    ChannelChat,
    Chat,
    ChatKind,
    Document,
    ForwardHeader,
    GroupChat,
    Media,
    Message,
    Photo,
    ReplyHeader,
    Sender,
    SpaceEvent,
    Sticker,
    User,
    UserChat,
)

__all__ = [
    "Bot",
    "Client",
    "BotConfig",
    "Context",
    "EventSource",
    "EventStream",
    # Registration
    "Handler",
    "HandlerTable",
    "handler",
    "extractor",
    "Filter",
    "Pattern",
    "Predicate",
    # Injected parameters
    "Args",
    "RawArgs",
    "Data",
    "UserData",
    "ignore_case",
    "parse_arg",
    "rest",
    "split_n",
    # Errors
    "AuthorizationError",
    "ConnectionFailure",
    "DispatchError",
    "GraphQLError",
    "HandlerError",
    "InvocationError",
    "MissingParametersError",
    "ParseError",
    "SignInError",
    "UnimplementedError",
    # Types
    "Attachment",
    "ChannelChat",
    "Chat",
    "ChatKind",
    "Document",
    "ForwardHeader",
    "GroupChat",
    "Media",
    "Message",
    "Photo",
    "ReplyHeader",
    "Sender",
    "SpaceEvent",
    "Sticker",
    "User",
    "UserChat",
]
