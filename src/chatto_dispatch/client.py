"""Async GraphQL HTTP client for the Chatto API.

One ``Client`` is shared by every dispatch task; httpx connection pooling makes
concurrent calls safe without extra locking.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from .errors import GraphQLError
from .types import Message, User, parse_user

if TYPE_CHECKING:
    from .config import BotConfig

logger = logging.getLogger(__name__)


class Client:
    """Async GraphQL HTTP client with cookie auth."""

    def __init__(self, config: BotConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._url = config.graphql_url
        self._http = httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "Cookie": config.cookie_header,
                "Origin": config.instance,
                "Accept": "application/graphql-response+json, application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def execute(
        self, query: str, variables: dict | None = None
    ) -> dict[str, Any]:
        """Execute a GraphQL query/mutation and return the data dict."""
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        resp = await self._http.post(self._url, json=payload)
        resp.raise_for_status()
        result = resp.json()

        if errors := result.get("errors"):
            raise GraphQLError(errors, result.get("data"))

        return result.get("data") or {}

    async def query(
        self, query: str, variables: dict | None = None
    ) -> dict[str, Any]:
        return await self.execute(query, variables)

    async def mutate(
        self, query: str, variables: dict | None = None
    ) -> dict[str, Any]:
        return await self.execute(query, variables)

    # --- Convenience methods ---

    async def me(self) -> User | None:
        """Get the current authenticated user."""
        data = await self.query(
            "{ me { id login displayName avatarUrl presenceStatus } }"
        )
        me = data.get("me")
        return parse_user(me) if me else None

    async def post_message(
        self,
        space_id: str,
        room_id: str,
        body: str,
        *,
        in_reply_to: str | None = None,
    ) -> dict:
        """Post a message and return the resulting SpaceEvent payload."""
        variables: dict[str, Any] = {
            "input": {
                "spaceId": space_id,
                "roomId": room_id,
                "body": body,
            }
        }
        if in_reply_to:
            variables["input"]["inReplyTo"] = in_reply_to

        data = await self.mutate(
            """
            mutation PostMessage($input: PostMessageInput!) {
                postMessage(input: $input) {
                    id sequenceId createdAt actorId
                    event {
                        ... on MessagePostedEvent {
                            spaceId roomId body messageBodyId
                            inReplyTo inThread
                        }
                    }
                }
            }
            """,
            variables,
        )
        return data["postMessage"]

    async def send_message(self, message: Message, body: str) -> dict:
        """Post ``body`` in the room ``message`` came from."""
        return await self.post_message(message.space_id, message.room_id, body)

    async def reply(self, message: Message, body: str) -> dict:
        """Post ``body`` as a reply to ``message``."""
        return await self.post_message(
            message.space_id, message.room_id, body, in_reply_to=message.id
        )

    async def add_reaction(self, message: Message, emoji: str) -> bool:
        data = await self.mutate(
            """
            mutation AddReaction($spaceId: ID!, $roomId: ID!, $messageEventId: ID!, $emoji: String!) {
                addReaction(spaceId: $spaceId, roomId: $roomId, messageEventId: $messageEventId, emoji: $emoji)
            }
            """,
            {
                "spaceId": message.space_id,
                "roomId": message.room_id,
                "messageEventId": message.id,
                "emoji": emoji,
            },
        )
        return data["addReaction"]
