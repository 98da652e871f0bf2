from __future__ import annotations

import asyncio

import pytest

from chatto_dispatch import (
    AuthorizationError,
    Bot,
    ConnectionFailure,
    Data,
    DispatchError,
    HandlerError,
    Message,
    SpaceEvent,
)
from chatto_dispatch.client import Client

from tests.helpers import ME, FakeClient, FakeEventSource, make_message


class Counter:
    def __init__(self, value: int) -> None:
        self.value = value


async def settle(bot: Bot, timeout: float = 1.0) -> None:
    """Wait until every dispatch task has finished."""

    async def drained() -> None:
        while bot.in_flight:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(drained(), timeout)


@pytest.mark.asyncio
async def test_loop_dispatches_until_stream_closes(client):
    seen = []
    source = FakeEventSource([make_message("/a"), make_message("/b"), None])
    bot = Bot(client, source, ME)

    @bot.handler("^/")
    async def record(message: Message) -> None:
        seen.append(message.text)

    await bot.start_event_loop()
    await settle(bot)

    assert sorted(seen) == ["/a", "/b"]
    assert source.fetched == 2


@pytest.mark.asyncio
async def test_hung_handler_does_not_block_later_events(client):
    release = asyncio.Event()
    second_done = asyncio.Event()
    order = []

    source = FakeEventSource([make_message("/slow"), make_message("/fast"), None])
    bot = Bot(client, source, ME)

    @bot.handler("^/slow")
    async def slow() -> None:
        await release.wait()
        order.append("slow")

    @bot.handler("^/fast")
    async def fast() -> None:
        order.append("fast")
        second_done.set()

    await bot.start_event_loop()
    await asyncio.wait_for(second_done.wait(), timeout=1.0)
    await asyncio.sleep(0.01)

    assert order == ["fast"]
    assert bot.in_flight == 1

    release.set()
    await settle(bot)
    assert order == ["fast", "slow"]


@pytest.mark.asyncio
async def test_handler_error_reaches_error_handler_once(client):
    errors = []
    seen = []

    async def on_error(error: DispatchError, client: Client, event: SpaceEvent) -> None:
        errors.append((error, event.id))

    first = make_message("/boom")
    source = FakeEventSource([first])
    bot = Bot(client, source, ME).error_handler(on_error)

    @bot.handler("^/boom")
    async def boom() -> None:
        raise ValueError("kaboom")

    @bot.handler("^/ok")
    async def ok() -> None:
        seen.append("ok")

    loop_task = asyncio.create_task(bot.start_event_loop())
    await asyncio.sleep(0.05)
    assert not loop_task.done()

    source.push(make_message("/ok"))
    source.close()
    await asyncio.wait_for(loop_task, timeout=1.0)
    await settle(bot)

    assert len(errors) == 1
    error, event_id = errors[0]
    assert isinstance(error, HandlerError)
    assert isinstance(error.original, ValueError)
    assert event_id == first.id
    assert seen == ["ok"]


@pytest.mark.asyncio
async def test_fetch_failure_ends_the_loop(client):
    source = FakeEventSource([make_message("/a"), ConnectionResetError("gone")])
    bot = Bot(client, source, ME)

    with pytest.raises(ConnectionResetError):
        await bot.start_event_loop()
    await settle(bot)


@pytest.mark.asyncio
async def test_me_is_fetched_when_unknown(source):
    source.close()
    bot = Bot(FakeClient(), source)
    await bot.start_event_loop()
    assert bot.me == ME


@pytest.mark.asyncio
async def test_missing_identity_is_an_authorization_error(source):
    bot = Bot(FakeClient(me=None), source)
    with pytest.raises(AuthorizationError):
        await bot.start_event_loop()


@pytest.mark.asyncio
async def test_data_is_snapshotted_per_event(client):
    values = []
    source = FakeEventSource([make_message("/count")])
    bot = Bot(client, source, ME).add_data(Counter(1))

    @bot.handler("^/count")
    async def count(counter: Data[Counter]) -> None:
        values.append(counter.inner().value)

    loop_task = asyncio.create_task(bot.start_event_loop())
    await asyncio.sleep(0.05)

    # Replaces the stored value; only events fetched afterwards see it
    bot.add_data(Counter(2))
    source.push(make_message("/count"))
    source.close()
    await asyncio.wait_for(loop_task, timeout=1.0)
    await settle(bot)

    assert values == [1, 2]


@pytest.mark.asyncio
async def test_wrapped_io_errors_keep_their_kind(client):
    errors = []

    async def on_error(error, client, event) -> None:
        errors.append(error)

    source = FakeEventSource([make_message("/net"), None])
    bot = Bot(client, source, ME).error_handler(on_error)

    @bot.handler("^/net")
    async def net() -> None:
        raise ConnectionRefusedError("refused")

    await bot.start_event_loop()
    await settle(bot)

    assert len(errors) == 1
    assert isinstance(errors[0], ConnectionFailure)
    assert isinstance(errors[0].__cause__, ConnectionRefusedError)


def test_registration_is_fluent(client, source):
    async def fallback(message: Message) -> None:
        pass

    async def on_event(client, event) -> None:
        pass

    bot = (
        Bot(client, source, ME)
        .fallback_handler(fallback)
        .event_fallback(on_event)
        .interceptor(lambda ctx: None)
        .pattern_mutator(lambda p: "^!" + p)
        .add_data(Counter(0))
    )
    assert isinstance(bot, Bot)
    assert bot.handlers == []
