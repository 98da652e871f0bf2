"""Handler parameter injection.

Each parameter annotation maps to an extractor: a pure function of the
``Context`` that returns the value, or ``None`` when this event cannot supply
it. A handler runs only when every one of its parameters can be extracted.

Applications add their own types with the :func:`extractor` decorator::

    @extractor(Locale)
    def locale_of(ctx: Context) -> Locale | None:
        return LOCALES.get(ctx.message.space_id)
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional, TypeVar, get_args, get_origin, get_type_hints

from .args import Args, RawArgs, argument_text, check_target, parse_arg
from .client import Client
from .context import Context
from .data import Data
from .errors import ParseError
from .types import (
    Chat,
    ChatKind,
    ChannelChat,
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

logger = logging.getLogger(__name__)

T = TypeVar("T")
Extractor = Callable[[Context], Optional[Any]]

_EXTRACTORS: dict[Any, Extractor] = {}


def extractor(tp: Any) -> Callable[[Callable[[Context], T | None]], Callable[[Context], T | None]]:
    """Register ``func`` as the extractor for parameters annotated ``tp``.

    A later registration for the same type replaces the earlier one.
    """

    def decorator(func: Callable[[Context], T | None]) -> Callable[[Context], T | None]:
        _EXTRACTORS[tp] = func
        return func

    return decorator


def resolve(annotation: Any) -> Extractor:
    """Find the extractor for one parameter annotation."""
    found = _EXTRACTORS.get(annotation)
    if found is not None:
        return found

    origin = get_origin(annotation)
    if origin is Data:
        (key,) = get_args(annotation)

        def extract_data(ctx: Context) -> Data | None:
            value = ctx.data.get(key)
            return None if value is None else Data(value)

        return extract_data

    if origin is Args:
        (target,) = get_args(annotation)
        check_target(target)

        def extract_args(ctx: Context) -> Args | None:
            try:
                return Args(parse_arg(target, argument_text(ctx.text)))
            except ParseError as e:
                logger.debug("Arguments of message %s don't fit: %s", ctx.message.id, e)
                return None

        return extract_args

    raise TypeError(f"No extractor registered for {annotation!r}")


def resolve_parameters(func: Callable[..., Any]) -> list[Extractor]:
    """Resolve one extractor per parameter of ``func``, in order.

    String annotations (``from __future__ import annotations``) are resolved
    against the module globals of ``func`` only. Types defined inside a
    function body can't be found that way, so handlers and ``Args[...]``
    targets using them must live at module level.
    """
    name = getattr(func, "__qualname__", repr(func))
    target = func if inspect.isfunction(func) or inspect.ismethod(func) else type(func).__call__
    try:
        hints = get_type_hints(target)
    except NameError as e:
        raise TypeError(f"Cannot resolve annotations of {name}: {e}") from e

    extractors: list[Extractor] = []
    for param in inspect.signature(func).parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise TypeError(f"{name}: *args/**kwargs can't be injected")
        if param.name not in hints:
            raise TypeError(f"{name}: parameter {param.name!r} needs a type annotation")
        extractors.append(resolve(hints[param.name]))
    return extractors


def extract_all(extractors: list[Extractor], ctx: Context) -> list[Any] | None:
    """All values, or None as soon as one of them is absent."""
    values: list[Any] = []
    for extract in extractors:
        value = extract(ctx)
        if value is None:
            return None
        values.append(value)
    return values


# --- Built-in extractors ---


def _media_of_kind(kind: type[Media]) -> Extractor:
    def extract(ctx: Context) -> Media | None:
        media = ctx.message.media
        return media if type(media) is kind else None

    return extract


def _chat_of_kind(kind: type[Chat]) -> Extractor:
    def extract(ctx: Context) -> Chat | None:
        chat = ctx.message.chat
        return chat if isinstance(chat, kind) else None

    return extract


_EXTRACTORS.update({
    Context: lambda ctx: ctx,
    Client: lambda ctx: ctx.client,
    SpaceEvent: lambda ctx: ctx.event,
    Message: lambda ctx: ctx.message,
    str: lambda ctx: ctx.text,
    User: lambda ctx: ctx.me,
    Sender: lambda ctx: ctx.message.sender,
    Media: lambda ctx: ctx.message.media,
    Photo: _media_of_kind(Photo),
    Document: _media_of_kind(Document),
    Sticker: _media_of_kind(Sticker),
    Chat: lambda ctx: ctx.message.chat,
    ChatKind: lambda ctx: ctx.message.chat.kind,
    UserChat: _chat_of_kind(UserChat),
    GroupChat: _chat_of_kind(GroupChat),
    ChannelChat: _chat_of_kind(ChannelChat),
    ReplyHeader: lambda ctx: ctx.message.reply_header,
    ForwardHeader: lambda ctx: ctx.message.forward_header,
    RawArgs: lambda ctx: RawArgs(argument_text(ctx.text).split()),
})
