import re

import pytest

from chatto_dispatch.context import Context
from chatto_dispatch.data import UserData
from chatto_dispatch.filters import Pattern, Predicate, as_filter
from chatto_dispatch.handler import Handler, HandlerTable, handler

from tests.helpers import ME, FakeClient, make_message


def ctx_for(text):
    return Context.build(FakeClient(), make_message(text), ME, UserData())


def test_pattern_searches_anywhere():
    ctx = ctx_for("well /hi there")
    assert Pattern("/hi").matches(ctx.message, ctx)
    assert not Pattern("^/hi").matches(ctx.message, ctx)


def test_pattern_mutator_rewrites_before_matching():
    ctx = ctx_for("!ping")
    assert not Pattern("^ping").matches(ctx.message, ctx)
    assert Pattern("ping").matches(ctx.message, ctx, lambda p: "^!" + p)


def test_mutator_may_return_compiled_pattern():
    ctx = ctx_for("PING")
    mutator = lambda p: re.compile(p, re.IGNORECASE)  # noqa: E731
    assert Pattern("^ping$").matches(ctx.message, ctx, mutator)


def test_predicate_gets_message_and_context():
    seen = []

    def check(message, ctx):
        seen.append((message.text, ctx.me.login))
        return message.sender is not None

    ctx = ctx_for("anything")
    assert Predicate(check).matches(ctx.message, ctx)
    assert seen == [("anything", "bot")]


def test_as_filter_shorthands():
    assert as_filter("^/x") == Pattern("^/x")
    assert isinstance(as_filter(lambda m, c: True), Predicate)
    compiled = re.compile("abc", re.IGNORECASE)
    assert as_filter(compiled).flags == compiled.flags
    with pytest.raises(TypeError):
        as_filter(42)


def test_filters_are_anded():
    entry = Handler(lambda: None, [Pattern("^/x"), Predicate(lambda m, c: "!" in m.text)])
    assert entry.matches(ctx_for("/x!"))
    assert not entry.matches(ctx_for("/x"))
    assert not entry.matches(ctx_for("/y!"))


def test_invalid_pattern_fails_at_registration():
    async def broken() -> None:
        pass

    table = HandlerTable()
    with pytest.raises(ValueError, match="Invalid filter pattern"):
        table.add(Handler(broken, [Pattern("(unclosed")]))
    assert table.handlers == []


def test_mutator_is_checked_against_registered_patterns():
    async def ok() -> None:
        pass

    table = HandlerTable()
    table.add(Handler(ok, [Pattern("ping")]))
    with pytest.raises(ValueError):
        table.set_pattern_mutator(lambda p: "(" + p)

    # The rejected mutator was not installed, later patterns still validate
    table.add(Handler(ok, [Pattern("pong")]))
    assert len(table.handlers) == 2


def test_async_predicate_is_rejected():
    async def check(message, ctx):
        return False

    with pytest.raises(TypeError, match="not async"):
        as_filter(check)
    with pytest.raises(TypeError):
        handler("^/p", check)
