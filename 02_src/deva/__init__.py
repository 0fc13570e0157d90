"""Deva: composable agents over an in-process event bus."""

from .agent import Agent, Command, IAgent, MalformedCommandError, parse_command
from .config import Settings, load_settings
from .event_bus import EventBus, IEventBus, channels
from .logging_config import get_logger, setup_logging
from .models import (
    Answer,
    AnswerMeta,
    ErrorEvent,
    LifecycleState,
    Packet,
    PacketAlreadyAnsweredError,
    PacketAlreadyAskedError,
    Profile,
    Question,
    StatusSnapshot,
    TraceEvent,
)
from .tracker import ITracker, Tracker

__version__ = "0.1.0"

__all__ = [
    # Agent
    "Agent",
    "IAgent",
    "Command",
    "MalformedCommandError",
    "parse_command",
    # Models
    "Packet",
    "Question",
    "Answer",
    "AnswerMeta",
    "PacketAlreadyAnsweredError",
    "PacketAlreadyAskedError",
    "Profile",
    "LifecycleState",
    "StatusSnapshot",
    "ErrorEvent",
    "TraceEvent",
    # Components
    "IEventBus",
    "EventBus",
    "channels",
    "ITracker",
    "Tracker",
    # Ambient
    "Settings",
    "load_settings",
    "setup_logging",
    "get_logger",
]
