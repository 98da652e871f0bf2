import json

import httpx
import pytest

from chatto_dispatch.client import Client
from chatto_dispatch.config import BotConfig
from chatto_dispatch.errors import (
    AuthorizationError,
    ConnectionFailure,
    GraphQLError,
    HandlerError,
    InvocationError,
    ParseError,
    wrap_error,
)
from chatto_dispatch.types import Message

from tests.helpers import make_message

CONFIG = BotConfig(instance="https://chat.example.test", session="s3cret")


def make_client(handler):
    return Client(CONFIG, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_reply_posts_in_same_room():
    requests = []

    def respond(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"data": {"postMessage": {"id": "ev-9"}}})

    client = make_client(respond)
    message = Message.from_event(make_message("/ping", room_id="room-3"))
    try:
        result = await client.reply(message, "pong")
    finally:
        await client.close()

    assert result == {"id": "ev-9"}
    (request,) = requests
    assert request.url == "https://chat.example.test/api/graphql"
    assert request.headers["Cookie"] == "chatto_session=s3cret"
    body = json.loads(request.content)
    assert body["variables"]["input"] == {
        "spaceId": "space-1",
        "roomId": "room-3",
        "body": "pong",
        "inReplyTo": message.id,
    }


@pytest.mark.asyncio
async def test_me_parses_user():
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"me": {
            "id": "bot", "login": "bot", "displayName": "Bot", "presenceStatus": "ONLINE",
        }}})

    client = make_client(respond)
    try:
        me = await client.me()
    finally:
        await client.close()

    assert me.login == "bot"
    assert me.presence_status == "ONLINE"


@pytest.mark.asyncio
async def test_graphql_errors_raise_invocation_error():
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "room not found"}]})

    client = make_client(respond)
    try:
        with pytest.raises(GraphQLError, match="room not found") as info:
            await client.me()
    finally:
        await client.close()

    assert isinstance(info.value, InvocationError)


@pytest.mark.asyncio
async def test_http_errors_map_onto_taxonomy():
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    client = make_client(respond)
    try:
        with pytest.raises(httpx.HTTPStatusError) as info:
            await client.me()
    finally:
        await client.close()

    assert isinstance(wrap_error(info.value), AuthorizationError)


def test_wrap_error():
    parse = ParseError("x")
    assert wrap_error(parse) is parse
    assert isinstance(wrap_error(httpx.ConnectError("down")), ConnectionFailure)
    wrapped = wrap_error(KeyError("k"))
    assert isinstance(wrapped, HandlerError)
    assert isinstance(wrapped.original, KeyError)


@pytest.mark.asyncio
async def test_add_reaction_targets_message_event():
    requests = []

    def respond(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"addReaction": True}})

    client = make_client(respond)
    message = Message.from_event(make_message("nice", room_id="room-7"))
    try:
        assert await client.add_reaction(message, "🎉") is True
    finally:
        await client.close()

    assert requests[0]["variables"] == {
        "spaceId": "space-1",
        "roomId": "room-7",
        "messageEventId": message.id,
        "emoji": "🎉",
    }
