"""Message filters: regex patterns and predicate functions."""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:
    from .context import Context
    from .types import Message

PatternMutator = Callable[[str], Union[str, "re.Pattern[str]"]]


class Filter:
    """Decides whether a handler is eligible for a message."""

    def matches(self, message: Message, ctx: Context, mutator: PatternMutator | None = None) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Pattern(Filter):
    """Regex searched anywhere in the message text.

    The optional pattern mutator rewrites the source before compilation, e.g.
    to prepend a command prefix. ``re`` keeps its own cache of compiled
    patterns.
    """

    pattern: str
    flags: int = 0

    def compile(self, mutator: PatternMutator | None = None) -> re.Pattern[str]:
        source = mutator(self.pattern) if mutator else self.pattern
        if isinstance(source, re.Pattern):
            return source
        return re.compile(source, self.flags)

    def validate(self, mutator: PatternMutator | None = None) -> None:
        """Raise ``ValueError`` if the pattern (as mutated) does not compile."""
        try:
            self.compile()
            if mutator is not None:
                self.compile(mutator)
        except re.error as e:
            raise ValueError(f"Invalid filter pattern {self.pattern!r}: {e}") from e

    def matches(self, message: Message, ctx: Context, mutator: PatternMutator | None = None) -> bool:
        return self.compile(mutator).search(message.text) is not None


@dataclass(frozen=True)
class Predicate(Filter):
    """Arbitrary ``(message, ctx) -> bool`` check, evaluated on every event."""

    func: Callable[[Message, Context], bool]

    def __post_init__(self) -> None:
        if inspect.iscoroutinefunction(self.func):
            raise TypeError(f"Predicate {self.func!r} must be a plain function, not async")

    def matches(self, message: Message, ctx: Context, mutator: PatternMutator | None = None) -> bool:
        return bool(self.func(message, ctx))


def as_filter(value: Any) -> Filter:
    """Strings become patterns, callables become predicates."""
    if isinstance(value, Filter):
        return value
    if isinstance(value, str):
        return Pattern(value)
    if isinstance(value, re.Pattern):
        return Pattern(value.pattern, value.flags)
    if callable(value):
        return Predicate(value)
    raise TypeError(f"Can't use {value!r} as a filter")
