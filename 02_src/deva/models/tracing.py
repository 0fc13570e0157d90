"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single observability event recorded by the Tracker."""

    id: str
    event_type: str  # e.g. "status", "error"
    actor: str  # agent key or component that produced it
    data: dict
    timestamp: datetime
