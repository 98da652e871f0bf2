"""Error taxonomy shared by the dispatcher, the client and the argument parser."""

from __future__ import annotations

from typing import Any

import httpx


class DispatchError(Exception):
    """Base class for every error the dispatcher hands to the error handler."""


class ConnectionFailure(DispatchError):
    """I/O failure talking to the server."""


class AuthorizationError(DispatchError):
    """The server rejected our credentials."""


class SignInError(DispatchError):
    """The session was not accepted while opening a connection."""


class InvocationError(DispatchError):
    """A protocol call (query, mutation) failed."""


class GraphQLError(InvocationError):
    """Raised when the GraphQL response contains errors."""

    def __init__(self, errors: list[dict], data: Any = None):
        self.errors = errors
        self.data = data
        messages = [e.get("message", str(e)) for e in errors]
        super().__init__(f"GraphQL errors: {'; '.join(messages)}")


class MissingParametersError(DispatchError):
    """A required parameter or configuration value could not be provided."""

    def __init__(self, what: str) -> None:
        self.what = what
        super().__init__(f"Missing parameters: {what}")


class UnimplementedError(DispatchError):
    """An event kind this package does not know how to route."""


class HandlerError(DispatchError):
    """Wraps an arbitrary exception raised inside a handler."""

    def __init__(self, original: BaseException) -> None:
        self.original = original
        super().__init__(f"{type(original).__name__}: {original}")


class ParseError(DispatchError):
    """Argument text could not be converted to the requested type."""

    def __init__(self, value: str, cause: BaseException | str | None = None) -> None:
        self.value = value
        self.cause = cause
        if cause is None:
            super().__init__(f"Error parsing {value!r}")
        else:
            super().__init__(f"Error parsing {value!r}: {cause}")


def wrap_error(exc: BaseException) -> DispatchError:
    """Map any exception onto the taxonomy above."""
    if isinstance(exc, DispatchError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in (401, 403):
            wrapped: DispatchError = AuthorizationError(f"HTTP {status} from {exc.request.url}")
        else:
            wrapped = InvocationError(f"HTTP {status} from {exc.request.url}")
    elif isinstance(exc, (httpx.TransportError, OSError)):
        wrapped = ConnectionFailure(str(exc) or type(exc).__name__)
    else:
        wrapped = HandlerError(exc)

    wrapped.__cause__ = exc
    return wrapped
