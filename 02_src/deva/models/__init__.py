"""Core data models for Deva."""

from .agents import ErrorEvent, LifecycleState, Profile, StatusSnapshot
from .packet import (
    Answer,
    AnswerMeta,
    Packet,
    PacketAlreadyAnsweredError,
    PacketAlreadyAskedError,
    Question,
    new_id,
)
from .tracing import TraceEvent

__all__ = [
    # Packets
    "Packet",
    "Question",
    "Answer",
    "AnswerMeta",
    "PacketAlreadyAnsweredError",
    "PacketAlreadyAskedError",
    "new_id",
    # Agents
    "Profile",
    "LifecycleState",
    "StatusSnapshot",
    "ErrorEvent",
    # Tracing
    "TraceEvent",
]
