"""Type-indexed store for application data shared with handlers."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Data(Generic[T]):
    """Handler parameter wrapper for data registered with ``Bot.add_data``.

    ``config: Data[MyConfig]`` receives the ``MyConfig`` instance; the handler
    is skipped when none was registered.
    """

    __slots__ = ("_value",)

    def __init__(self, value: T) -> None:
        self._value = value

    def inner(self) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Data({self._value!r})"


class UserData:
    """At most one value per type key; the last registration wins."""

    def __init__(self, values: dict[type, Any] | None = None) -> None:
        self._values: dict[type, Any] = dict(values or {})

    def add(self, value: Any, key: type | None = None) -> None:
        self._values[key or type(value)] = value

    def get(self, key: type[T]) -> T | None:
        return self._values.get(key)

    def __contains__(self, key: type) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def snapshot(self) -> UserData:
        """Shallow copy handed to one dispatch task."""
        return UserData(self._values)
