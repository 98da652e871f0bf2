"""Test bot showing handlers, argument parsing, user data and hooks."""

import enum
import logging
import random
import time
from dataclasses import dataclass

from chatto_dispatch import (
    Args,
    Bot,
    Client,
    Context,
    Data,
    DispatchError,
    HandlerError,
    Message,
    RawArgs,
    Sender,
    SpaceEvent,
    Sticker,
    UserChat,
    handler,
    ignore_case,
    rest,
)

logger = logging.getLogger("testbot")


class OwnMessage(Exception):
    pass


@dataclass
class Uptime:
    started: float


@dataclass
class Repeat:
    amount: int
    text: str = rest()


@dataclass
class Numbers:
    values: list[float] = rest()


@ignore_case
class Action(enum.Enum):
    Play = "play"
    Pause = "pause"
    Skip = "skip"


@dataclass
class ActionArgs:
    action: Action


@handler("^ping$")
async def ping(ctx: Context) -> None:
    await ctx.reply("Pong!")


@handler("^repeat\\b")
async def repeat(client: Client, message: Message, args: Args[Repeat]) -> None:
    """Post the text ``amount`` times."""
    for _ in range(min(args.value.amount, 5)):
        await client.send_message(message, args.value.text)


@handler("^sum\\b")
async def total(ctx: Context, args: Args[Numbers]) -> None:
    await ctx.reply(f"{sum(args.value.values):g}")


@handler("^player\\b")
async def player(ctx: Context, args: Args[ActionArgs]) -> None:
    await ctx.reply(f"Player: {args.value.action.value}")


@handler("^choose\\b")
async def choose(ctx: Context, options: RawArgs) -> None:
    if len(options) < 2:
        await ctx.reply("Give me at least 2 choices.")
        return
    await ctx.reply(f"I choose: **{random.choice(options)}**")


@handler("^uptime$")
async def uptime(ctx: Context, started: Data[Uptime]) -> None:
    elapsed = int(time.monotonic() - started.inner().started)
    minutes, seconds = divmod(elapsed, 60)
    await ctx.reply(f"Uptime: {minutes}m {seconds}s")


@handler(".*")
async def sticker_reaction(ctx: Context, sticker: Sticker) -> None:
    await ctx.react("👍")


@handler(".*", lambda message, ctx: "bot" in message.text.lower())
async def greet_in_dm(ctx: Context, chat: UserChat, sender: Sender) -> None:
    await ctx.reply(f"Hi {sender.display_name}, this is a DM.")


async def fallback(message: Message) -> None:
    logger.info("Nothing matched %r", message.text)


async def on_event(client: Client, event: SpaceEvent) -> None:
    logger.debug("Ignoring %s", type(event.event).__name__)


async def on_error(error: DispatchError, client: Client, event: SpaceEvent) -> None:
    if isinstance(error, HandlerError) and isinstance(error.original, OwnMessage):
        return
    logger.error("Event %s failed: %s", event.id, error)


async def ignore_self(ctx: Context) -> Context:
    """Don't process the bot's own messages."""
    if ctx.sender and ctx.sender.id == ctx.me.id:
        raise OwnMessage(ctx.message.id)
    return ctx


if __name__ == "__main__":
    bot = Bot.from_config("bot.yaml")
    for entry in (ping, repeat, total, player, choose, uptime, sticker_reaction, greet_in_dm):
        bot.add_handler(entry)
    (
        bot.fallback_handler(fallback)
        .event_fallback(on_event)
        .error_handler(on_error)
        .interceptor(ignore_self)
        .pattern_mutator(lambda pattern: pattern.replace("^", "^!", 1))
        .add_data(Uptime(time.monotonic()))
        .run()
    )
