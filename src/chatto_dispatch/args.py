"""Argument parsing from the text that follows a command.

Targets are plain types, ``list[T]``, ``Enum`` subclasses and dataclasses.
Dataclass fields map 1:1 to whitespace-delimited tokens in declaration order;
a last field declared with :func:`rest` receives the remaining raw text.
"""

from __future__ import annotations

import dataclasses
import enum
import ipaddress
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar, get_args, get_origin, get_type_hints

from .errors import ParseError

T = TypeVar("T")
E = TypeVar("E", bound=enum.Enum)

_TOKEN = re.compile(r"\S+")
_WHITESPACE = re.compile(r"\s")

REST = "chatto_dispatch.rest"


def split_n(text: str, n: int) -> tuple[list[str], str]:
    """Split off at most ``n`` whitespace-delimited tokens.

    Returns the tokens and the untouched remainder starting right after the
    whitespace character that ended the n-th token, so extra spacing in the
    remainder is preserved::

        >>> split_n("aaa  bbb c", 1)
        (['aaa'], ' bbb c')

    With fewer than ``n`` tokens available all of them are returned and the
    remainder is empty.
    """
    if n <= 0:
        return [], text

    tokens: list[str] = []
    for match in _TOKEN.finditer(text):
        tokens.append(match.group())
        if len(tokens) == n:
            return tokens, text[match.end() + 1:]
    return tokens, ""


def rest(**kwargs: Any) -> Any:
    """Mark the last dataclass field as consuming all remaining text."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[REST] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def ignore_case(cls: type[E]) -> type[E]:
    """Class decorator: match enum member names case-insensitively."""
    cls.__ignore_case__ = True  # type: ignore[attr-defined]
    return cls


class RawArgs(list):
    """All whitespace-delimited tokens after the command, unparsed."""


class Args(Generic[T]):
    """Handler parameter wrapper: ``args: Args[Repeat]`` parses the message
    arguments into ``Repeat``. The parsed object is ``args.value``."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Args({self.value!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Args) and other.value == self.value


def argument_text(text: str) -> str:
    """The part of a message after its first whitespace character."""
    match = _WHITESPACE.search(text)
    if match is None:
        return ""
    return text[match.end():]


def _parse_bool(text: str) -> bool:
    value = text.strip().lower()
    if value in ("true", "yes", "y"):
        return True
    if value in ("false", "no", "n"):
        return False
    raise ParseError(text, "expected yes or no")


def _scalar(convert: Callable[[str], Any]) -> Callable[[str], Any]:
    def parse(text: str) -> Any:
        try:
            return convert(text.strip())
        except (ValueError, InvalidOperation) as e:
            raise ParseError(text, e) from e

    return parse


_PARSERS: dict[Any, Callable[[str], Any]] = {
    str: lambda text: text,
    bool: _parse_bool,
    int: _scalar(int),
    float: _scalar(float),
    Decimal: _scalar(Decimal),
    Path: _scalar(Path),
    ipaddress.IPv4Address: _scalar(ipaddress.IPv4Address),
    ipaddress.IPv6Address: _scalar(ipaddress.IPv6Address),
}


def _parse_enum(cls: type[enum.Enum], text: str) -> enum.Enum:
    value = text.strip()
    if getattr(cls, "__ignore_case__", False):
        value = value.lower()
        for name, member in cls.__members__.items():
            if name.lower() == value:
                return member
    elif value in cls.__members__:
        return cls.__members__[value]

    options = ", ".join(cls.__members__)
    raise ParseError(text, f"no such option (expected one of: {options})")


def _parse_dataclass(cls: type, text: str) -> Any:
    fields = dataclasses.fields(cls)
    hints = get_type_hints(cls)

    count = len(fields)
    has_rest = bool(fields) and fields[-1].metadata.get(REST, False)
    if has_rest:
        count -= 1

    tokens, remainder = split_n(text, count)
    if len(tokens) < count:
        raise ParseError(text, f"expected {count} arguments, got {len(tokens)}")

    kwargs = {
        f.name: parse_arg(hints[f.name], token)
        for f, token in zip(fields[:count], tokens)
    }
    if has_rest:
        last = fields[-1]
        kwargs[last.name] = parse_arg(hints[last.name], remainder)
    try:
        return cls(**kwargs)
    except (ValueError, TypeError) as e:
        raise ParseError(text, e) from e


def check_target(tp: Any) -> None:
    """Raise ``TypeError`` unless ``parse_arg`` knows how to build ``tp``."""
    if tp in _PARSERS or tp is RawArgs:
        return
    if get_origin(tp) is list:
        for item_type in get_args(tp):
            check_target(item_type)
        return
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        fields = dataclasses.fields(tp)
        hints = get_type_hints(tp)
        for f in fields[:-1]:
            if f.metadata.get(REST, False):
                raise TypeError(f"{tp.__name__}.{f.name}: only the last field can take the rest")
        for f in fields:
            check_target(hints[f.name])
        return
    raise TypeError(f"Don't know how to parse arguments into {tp!r}")


def parse_arg(tp: Any, text: str) -> Any:
    """Convert ``text`` into an instance of ``tp``.

    Raises ``ParseError`` when the text does not fit.
    """
    if tp in _PARSERS:
        return _PARSERS[tp](text)

    if tp is RawArgs:
        return RawArgs(text.split())

    origin = get_origin(tp)
    if origin is list:
        (item_type,) = get_args(tp) or (str,)
        return [parse_arg(item_type, part) for part in text.split()]

    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return _parse_enum(tp, text)

    if dataclasses.is_dataclass(tp) and isinstance(tp, type):
        return _parse_dataclass(tp, text)

    raise TypeError(f"Don't know how to parse arguments into {tp!r}")
