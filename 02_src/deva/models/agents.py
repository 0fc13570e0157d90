"""Agent-related data models."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .packet import Packet, new_id


class LifecycleState(str, Enum):
    """Agent lifecycle states."""

    STOPPED = "stopped"
    RUNNING = "running"


class Profile(BaseModel):
    """Identity record ("me") of an agent.

    ``key`` namespaces every channel the agent uses and must be unique among
    siblings. Any extra presentation fields (prompt, voice, avatar...) are kept.
    """

    model_config = ConfigDict(extra="allow")

    key: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    translate: Callable[..., Any] | None = Field(default=None, exclude=True)
    parse: Callable[..., Any] | None = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def _default_name(self) -> "Profile":
        if not self.name:
            self.name = self.key
        return self

    def snapshot(self) -> dict:
        """Plain-data copy used as the answer's ``bot`` field. Functions are left out."""
        data = self.model_dump()
        return {name: value for name, value in data.items() if not callable(value)}


@dataclass
class StatusSnapshot:
    """Payload published on the bus-wide ``status`` channel."""

    format: str
    text: str
    data: dict
    type: str = "status"
    id: str = field(default_factory=new_id)
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ErrorEvent:
    """Payload published on the bus-wide ``error`` channel."""

    type: str  # "#<key>:question" or "#<key>:init"
    error: str
    packet: Packet | None = None
    id: str = field(default_factory=new_id)
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
