"""Question/answer packet models."""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


class PacketAlreadyAnsweredError(RuntimeError):
    """Raised when a second answer is assigned to a packet."""


class PacketAlreadyAskedError(RuntimeError):
    """Raised when a packet already in flight is dispatched again."""


@dataclass
class Question:
    """The question side of a packet."""

    text: str
    text_orig: str | None = None
    params: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnswerMeta:
    """Answer classification: agent key and method (or outcome) name."""

    format: str
    type: str


@dataclass(frozen=True)
class Answer:
    """The answer side of a packet. Immutable once built."""

    bot: dict
    text: str
    meta: AnswerMeta
    data: Any = False
    error: str | Literal[False] = False
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Packet:
    """Request/response envelope correlated by id."""

    q: Question
    id: Any = field(default_factory=new_id)
    a: Answer | None = None
    asked: datetime | None = None
    answered: datetime | None = None

    @property
    def is_answered(self) -> bool:
        return self.a is not None

    def set_answer(self, answer: Answer) -> None:
        """Assign the answer. A packet is answered exactly once."""
        if self.a is not None:
            raise PacketAlreadyAnsweredError(f"packet {self.id} already answered")
        self.a = answer
        self.answered = answer.created

    @classmethod
    def from_text(cls, text: str, id: Any = None) -> "Packet":
        """Build an unanswered packet for a raw command line."""
        if id is None:
            return cls(q=Question(text=text))
        return cls(q=Question(text=text), id=id)

    @classmethod
    def coerce(cls, obj: "Packet | Mapping[str, Any]") -> "Packet":
        """Accept a Packet or a plain mapping of the form {"id", "q": {"text"}}."""
        if isinstance(obj, Packet):
            return obj
        if not isinstance(obj, Mapping):
            raise TypeError(f"cannot build a Packet from {type(obj).__name__}")

        q = obj.get("q") or {}
        if isinstance(q, Question):
            question = q
        else:
            question = Question(text=str(q.get("text", "")))
        return cls.from_text(question.text, id=obj.get("id"))
