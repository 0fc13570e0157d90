"""Tracker implementation for recording TraceEvents."""

import uuid
from collections import deque
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from ..event_bus import IEventBus, channels
from ..logging_config import get_logger
from ..models import ErrorEvent, StatusSnapshot, TraceEvent

logger = get_logger(__name__)


class ITracker(Protocol):
    """Records TraceEvents. Two channels: EventBus subscription + direct calls."""

    def track(self, event_type: str, actor: str, data: dict) -> TraceEvent:
        """Create and keep a TraceEvent."""
        ...

    def get_trace_events(
        self,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get recorded trace events with optional filters."""
        ...


class Tracker:
    """Keeps the most recent status and error events seen on the bus."""

    def __init__(self, event_bus: IEventBus, max_events: int = 1000):
        self._event_bus = event_bus
        self._events: deque[TraceEvent] = deque(maxlen=max_events)

    def start(self) -> None:
        """Subscribe to the bus-wide status and error channels."""
        self._event_bus.on(channels.STATUS, self._handle_status)
        self._event_bus.on(channels.ERROR, self._handle_error)

    def stop(self) -> None:
        """Unsubscribe from the bus."""
        self._event_bus.remove_listener(channels.STATUS, self._handle_status)
        self._event_bus.remove_listener(channels.ERROR, self._handle_error)

    def _handle_status(self, snapshot: StatusSnapshot) -> None:
        self.track(
            event_type=channels.STATUS,
            actor=snapshot.format,
            data={"text": snapshot.text, **snapshot.data},
        )

    def _handle_error(self, event: Any) -> None:
        if isinstance(event, ErrorEvent):
            data = {
                "type": event.type,
                "error": event.error,
                "packet_id": event.packet.id if event.packet else None,
            }
            actor = event.type.lstrip("#").split(":", 1)[0]
        else:
            data = asdict(event) if is_dataclass(event) else {"error": str(event)}
            actor = "unknown"

        logger.warning("Error event from %s: %s", actor, data.get("error"))
        self.track(event_type=channels.ERROR, actor=actor, data=data)

    def track(self, event_type: str, actor: str, data: dict) -> TraceEvent:
        """Create a TraceEvent and keep it."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        self._events.append(trace_event)
        return trace_event

    def get_trace_events(
        self,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get recorded trace events, oldest first, at most limit of the newest."""
        events = [
            e
            for e in self._events
            if (event_types is None or e.event_type in event_types)
            and (actor is None or e.actor == actor)
        ]
        return events[-limit:] if limit else []

    def clear(self) -> None:
        self._events.clear()
