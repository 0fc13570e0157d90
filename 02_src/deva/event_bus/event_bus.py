"""EventBus implementation for in-process pub/sub messaging."""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


EventHandler = Callable[[Any], Any]


class IEventBus(Protocol):
    """Named-channel pub/sub shared by an agent tree."""

    def on(self, name: str, handler: EventHandler) -> None:
        """Subscribe a handler to a channel."""
        ...

    def once(self, name: str, handler: EventHandler) -> None:
        """Subscribe a handler for the next emit only."""
        ...

    def remove_listener(self, name: str, handler: EventHandler) -> None:
        """Unsubscribe a handler."""
        ...

    def emit(self, name: str, payload: Any = None) -> bool:
        """Deliver payload synchronously to the channel's current handlers."""
        ...


@dataclass
class _Listener:
    """Internal subscription record."""

    handler: EventHandler
    once: bool = False


class EventBus:
    """In-process pub/sub event bus with synchronous delivery."""

    def __init__(self):
        self._subscribers: dict[str, list[_Listener]] = {}
        self._tasks: set[asyncio.Task] = set()

    def on(self, name: str, handler: EventHandler) -> None:
        """Subscribe a handler to a channel."""
        self._subscribers.setdefault(name, []).append(_Listener(handler))

    def once(self, name: str, handler: EventHandler) -> None:
        """Subscribe a handler for the next emit only."""
        self._subscribers.setdefault(name, []).append(_Listener(handler, once=True))

    def remove_listener(self, name: str, handler: EventHandler) -> None:
        """Unsubscribe the most recently added registration of handler."""
        listeners = self._subscribers.get(name)
        if not listeners:
            return

        for index in range(len(listeners) - 1, -1, -1):
            if listeners[index].handler == handler:
                del listeners[index]
                break

        if not listeners:
            del self._subscribers[name]

    def remove_all_listeners(self, name: str | None = None) -> None:
        """Drop every handler of one channel, or of all channels."""
        if name is None:
            self._subscribers.clear()
        else:
            self._subscribers.pop(name, None)

    def listener_count(self, name: str) -> int:
        """Number of handlers registered on a channel."""
        return len(self._subscribers.get(name, []))

    def emit(self, name: str, payload: Any = None) -> bool:
        """Deliver payload synchronously to the channel's current handlers.

        Returns True when the channel had at least one handler.
        """
        listeners = list(self._subscribers.get(name, []))
        if not listeners:
            return False

        for listener in listeners:
            if listener.once:
                self._discard(name, listener)

            try:
                result = listener.handler(payload)
            except Exception as e:
                logger.error("Error in handler for %s: %s", name, e, exc_info=True)
                continue

            if inspect.isawaitable(result):
                self._schedule(name, result)

        return True

    def _discard(self, name: str, listener: _Listener) -> None:
        listeners = self._subscribers.get(name)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._subscribers[name]

    def _schedule(self, name: str, awaitable: Any) -> None:
        """Run an awaitable returned by a handler on the running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.error("No running event loop for async handler on %s", name)
            return

        task = asyncio.ensure_future(awaitable, loop=loop)

        self._tasks.add(task)
        task.add_done_callback(lambda t: self._task_done(name, t))

    def _task_done(self, name: str, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Error in async handler for %s: %s",
                name,
                error,
                exc_info=(type(error), error, error.__traceback__),
            )
