"""Question/answer engine."""

import asyncio
import inspect
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..event_bus import channels
from ..logging_config import get_logger
from ..models import (
    Answer,
    AnswerMeta,
    ErrorEvent,
    Packet,
    PacketAlreadyAnsweredError,
    PacketAlreadyAskedError,
)
from .command import ADDRESS_MARKER, MalformedCommandError, parse_command

if TYPE_CHECKING:
    from .agent import Agent

logger = get_logger(__name__)

OFFLINE = "offline"
INVALID_METHOD = "invalid_method"


def result_text(result: Any) -> str | None:
    """Text carried by a capability result, if any."""
    if isinstance(result, Mapping):
        return result.get("text")
    return getattr(result, "text", None)


class Dispatcher:
    """Parses question packets, runs capabilities, publishes one answer each.

    Answers always arrive asynchronously. Resolution outcomes (unknown method,
    agent offline) are normal answers with ``error=False``; only a failing
    capability produces an error answer and an ``error`` event.
    """

    def __init__(self, agent: "Agent"):
        self._agent = agent
        self._pending: set[asyncio.Task] = set()

    def question(self, packet: Packet | Mapping[str, Any]) -> asyncio.Future:
        """Dispatch a question; the returned future resolves with the answered packet."""
        loop = asyncio.get_running_loop()
        packet = Packet.coerce(packet)
        if packet.is_answered:
            raise PacketAlreadyAnsweredError(f"packet {packet.id} already answered")
        if packet.asked is not None:
            raise PacketAlreadyAskedError(f"packet {packet.id} already asked")
        key = self._agent.me.key
        future = self._await_answer(loop, packet)

        packet.q.text_orig = packet.q.text
        packet.asked = datetime.now(timezone.utc)
        try:
            command = parse_command(packet.q.text, key, packet.id)
        except MalformedCommandError as e:
            logger.debug("Malformed question %s for %s: %s", packet.id, key, e)
            packet.q.params = [""]
            packet.q.text = ""
            loop.call_soon(self._method_not_found, packet)
            return future

        packet.q.params = list(command.params)
        packet.q.text = command.text

        method = command.method
        handler = self._agent.methods.get(method)
        if handler is None:
            loop.call_soon(self._method_not_found, packet)
        elif not self._agent.lifecycle.accepts(method):
            loop.call_soon(self._not_running, packet)
        else:
            task = loop.create_task(self._invoke(method, handler, packet))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return future

    def _await_answer(self, loop: asyncio.AbstractEventLoop, packet: Packet) -> asyncio.Future:
        """One-shot subscription on the correlation channel, exposed as a future."""
        future = loop.create_future()
        channel = channels.answer_channel(self._agent.me.key, packet.id)
        events = self._agent.events

        def on_answer(answered: Packet) -> None:
            if not future.done():
                future.set_result(answered)

        def on_done(f: asyncio.Future) -> None:
            if f.cancelled():
                events.remove_listener(channel, on_answer)

        events.once(channel, on_answer)
        future.add_done_callback(on_done)
        return future

    async def _invoke(self, method: str, handler, packet: Packet) -> None:
        key = self._agent.me.key
        try:
            result = handler(packet)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self._failed(method, packet, e)
            return

        self._answer(
            packet,
            text=result_text(result) or f"{ADDRESS_MARKER}{key} {method}",
            data=result,
            type=method,
        )

    def _failed(self, method: str, packet: Packet, error: Exception) -> None:
        key = self._agent.me.key
        message = str(error) or type(error).__name__
        logger.error(
            "Method %s of %s failed for packet %s: %s",
            method,
            key,
            packet.id,
            error,
            exc_info=(type(error), error, error.__traceback__),
            extra={"context": {"key": key, "packet_id": packet.id}},
        )
        self._answer(
            packet,
            text=f"{ADDRESS_MARKER}{key} {method}",
            error=message,
            type=method,
        )
        self._agent.talk(
            channels.ERROR,
            ErrorEvent(type=f"{ADDRESS_MARKER}{key}:question", error=message, packet=packet),
        )

    def _method_not_found(self, packet: Packet) -> None:
        key = self._agent.me.key
        self._answer(
            packet,
            text=f"{key} {packet.q.params[0]} is not a valid method",
            type=INVALID_METHOD,
        )

    def _not_running(self, packet: Packet) -> None:
        self._answer(packet, text=f"{self._agent.me.name} is OFFLINE", type=OFFLINE)

    def _answer(
        self,
        packet: Packet,
        text: str,
        type: str,
        data: Any = False,
        error: str | bool = False,
    ) -> None:
        key = self._agent.me.key
        packet.set_answer(
            Answer(
                bot=self._agent.me.snapshot(),
                text=text,
                data=data,
                error=error,
                meta=AnswerMeta(format=key, type=type),
            )
        )
        logger.debug("Answering %s on %s: %s", packet.id, key, text)
        self._agent.talk(channels.answer_channel(key, packet.id), packet)
