"""Agent implementation."""

import asyncio
import inspect
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from ..event_bus import EventBus, EventHandler, IEventBus, channels
from ..logging_config import get_logger
from ..models import ErrorEvent, LifecycleState, Packet, Profile, StatusSnapshot, new_id
from .binder import assign_bind, assign_inherit
from .command import ADDRESS_MARKER
from .dispatcher import Dispatcher
from .lifecycle import Lifecycle

logger = get_logger(__name__)

Hook = Callable[["Agent"], Any]


class IAgent(Protocol):
    """An addressable unit answering questions over a shared EventBus."""

    @property
    def running(self) -> bool:
        """Whether non-start methods are dispatched."""
        ...

    async def init(self, recurse: bool = False) -> None:
        """Inherit, bind, subscribe, then run the init hook."""
        ...

    def question(self, packet: Packet | Mapping[str, Any]) -> asyncio.Future:
        """Dispatch a question packet; resolves with the answered packet."""
        ...

    def start(self) -> Any:
        """Enter RUNNING."""
        ...

    def stop(self) -> Any:
        """Enter STOPPED."""
        ...

    def status(self) -> bool:
        """Publish a status snapshot and return the running flag."""
        ...


class Agent:
    """Composable agent ("Deva").

    Capabilities, listeners, func and lib entries are free functions whose
    first argument is the agent; ``init`` pins them with the bind pass::

        async def hello(deva, packet):
            return {"text": deva.vars["hello"]}

        agent = Agent(me={"key": "hello"}, methods={"hello": hello})
        await agent.init()
    """

    def __init__(
        self,
        me: Profile | Mapping[str, Any],
        *,
        id: Any = None,
        config: dict | None = None,
        vars: dict | None = None,
        events: IEventBus | None = None,
        listeners: dict[str, EventHandler] | None = None,
        deva: Mapping[str, "Agent | Mapping[str, Any]"] | None = None,
        methods: dict[str, Callable] | None = None,
        modules: dict | None = None,
        func: dict[str, Callable] | None = None,
        lib: dict | None = None,
        on_start: Hook | None = None,
        on_stop: Hook | None = None,
        on_init: Hook | None = None,
        on_loaded: Hook | None = None,
        on_logout: Hook | None = None,
    ):
        self.id = id if id is not None else new_id()
        self.me = me if isinstance(me, Profile) else Profile.model_validate(dict(me))
        self.config = config if config is not None else {}
        self.vars = vars if vars is not None else {}
        self.events: IEventBus = events if events is not None else EventBus()
        self.listeners = dict(listeners or {})
        self.methods = dict(methods or {})
        self.modules = dict(modules or {})
        self.func = dict(func or {})
        self.lib = dict(lib or {})
        self.deva: dict[str, Agent] = {}
        for name, child in (deva or {}).items():
            self.deva[name] = _as_agent(child)

        self._hooks: dict[str, Hook | None] = {
            "on_start": on_start,
            "on_stop": on_stop,
            "on_init": on_init,
            "on_loaded": on_loaded,
            "on_logout": on_logout,
        }
        self.lifecycle = Lifecycle()
        self._dispatcher = Dispatcher(self)
        self._listening = False
        self._initialized = False
        self._hook_tasks: set[asyncio.Future] = set()

    @property
    def key(self) -> str:
        return self.me.key

    @property
    def running(self) -> bool:
        return self.lifecycle.running

    # Bus pass-throughs

    def talk(self, event: str, payload: Any = None) -> bool:
        return self.events.emit(event, payload)

    def listen(self, event: str, callback: EventHandler) -> None:
        self.events.on(event, callback)

    def once(self, event: str, callback: EventHandler) -> None:
        self.events.once(event, callback)

    def ignore(self, event: str, callback: EventHandler) -> None:
        self.events.remove_listener(event, callback)

    # Children

    def add_deva(self, name: str, child: "Agent | Mapping[str, Any]") -> "Agent":
        """Add or replace a child. Takes effect for composition on the next init."""
        agent = _as_agent(child)
        self.deva[name] = agent
        return agent

    def delete_deva(self, name: str) -> None:
        self.deva.pop(name, None)

    # Lifecycle

    def uid(self) -> str:
        return new_id()

    def status(self) -> bool:
        """Publish a status snapshot on the ``status`` channel."""
        running = self.running
        state = LifecycleState.RUNNING if running else LifecycleState.STOPPED
        self.talk(
            channels.STATUS,
            StatusSnapshot(
                id=self.uid(),
                format=self.key,
                text=f"{self.key} {state.name}",
                data={"running": running},
            ),
        )
        return running

    def start(self) -> Any:
        """Enter RUNNING, publish status, then run on_start.

        An async on_start is scheduled on the running loop; its task is returned.
        """
        if not self.lifecycle.transition(LifecycleState.RUNNING):
            return None
        logger.info("Agent %s started", self.key, extra={"context": {"key": self.key}})
        self.status()
        return self._run_hook("on_start")

    def stop(self) -> Any:
        """Enter STOPPED, publish status, then run on_stop."""
        if not self.lifecycle.transition(LifecycleState.STOPPED):
            return None
        logger.info("Agent %s stopped", self.key, extra={"context": {"key": self.key}})
        self.status()
        return self._run_hook("on_stop")

    # Questions

    def question(self, packet: Packet | Mapping[str, Any]) -> asyncio.Future:
        """Dispatch a question packet; the future resolves with the answered packet."""
        return self._dispatcher.question(packet)

    async def ask(self, text: str, id: Any = None) -> Packet:
        """Build a packet for text, dispatch it and wait for the answer."""
        return await self.question(Packet.from_text(text, id=id))

    # Initialization

    async def init(self, recurse: bool = False) -> None:
        """Inherit pass, bind pass, standard listeners, children, on_init.

        Failures are published on ``error`` and logged, never raised.
        """
        try:
            assign_inherit(self)
            assign_bind(self)
            if not self._listening:
                self._assign_listeners()
            if recurse:
                for child in self.deva.values():
                    await child.init(recurse=True)
            if not self._initialized:
                result = self._call_hook("on_init")
                if inspect.isawaitable(result):
                    await result
                self._initialized = True
        except Exception as e:
            logger.error(
                "Init of %s failed: %s",
                self.key,
                e,
                exc_info=True,
                extra={"context": {"key": self.key}},
            )
            error = ErrorEvent(
                type=f"{ADDRESS_MARKER}{self.key}:init",
                error=str(e) or type(e).__name__,
            )
            self.talk(channels.ERROR, error)

    def _assign_listeners(self) -> None:
        key = self.key
        self.events.on(channels.question_channel(key), self.question)
        self.events.on(channels.start_channel(key), self._handle_start)
        self.events.on(channels.stop_channel(key), self._handle_stop)
        self.events.on(channels.status_channel(key), self._handle_status)
        self.events.on(channels.LOADED, self._handle_loaded)
        self.events.on(channels.LOGOUT, self._handle_logout)

        for name, listener in self.listeners.items():
            self.events.on(name, listener)
        self._listening = True

    def _handle_start(self, _payload: Any = None) -> Any:
        return self.start()

    def _handle_stop(self, _payload: Any = None) -> Any:
        return self.stop()

    def _handle_status(self, _payload: Any = None) -> bool:
        return self.status()

    def _handle_loaded(self, _payload: Any = None) -> Any:
        return self._run_hook("on_loaded")

    def _handle_logout(self, _payload: Any = None) -> Any:
        result = self._run_hook("on_logout")
        if self.running:
            self.stop()
        return result

    def _call_hook(self, name: str) -> Any:
        hook = self._hooks.get(name)
        if hook is None:
            return None
        return hook(self)

    def _run_hook(self, name: str) -> Any:
        """Call a hook; an awaitable result is scheduled and its task returned."""
        result = self._call_hook(name)
        if not inspect.isawaitable(result):
            return result

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            logger.error("No running event loop for %s of %s", name, self.key)
            return None

        task = asyncio.ensure_future(result, loop=loop)
        self._hook_tasks.add(task)
        task.add_done_callback(lambda t: self._hook_done(name, t))
        return task

    def _hook_done(self, name: str, task: asyncio.Future) -> None:
        self._hook_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Hook %s of %s failed: %s",
                name,
                self.key,
                error,
                exc_info=(type(error), error, error.__traceback__),
                extra={"context": {"key": self.key}},
            )

    def __repr__(self) -> str:
        return f"Agent(key={self.key!r}, running={self.running})"


def _as_agent(child: "Agent | Mapping[str, Any]") -> Agent:
    if isinstance(child, Agent):
        return child
    return Agent(**child)
