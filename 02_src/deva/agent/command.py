"""Command-line grammar for question text.

A question is ``[#<key> ]<method>[:<param>...] [argument text]``. Standalone
``:id:`` tokens are replaced with ``#<packet id>`` so a capability can refer
back to its own request.
"""

import re
from dataclasses import dataclass

ADDRESS_MARKER = "#"
ID_PLACEHOLDER = ":id:"
PARAM_DELIMITER = ":"

_PLACEHOLDER_RE = re.compile(rf"(?<!\S){re.escape(ID_PLACEHOLDER)}(?!\S)")


class MalformedCommandError(ValueError):
    """Raised when question text does not name a method."""


@dataclass(frozen=True)
class Command:
    """Parsed question text."""

    method: str
    params: tuple[str, ...]
    text: str


def strip_address(text: str, key: str) -> str:
    """Remove a leading ``#<key> `` self-address (case-insensitive)."""
    pattern = re.compile(rf"^{re.escape(ADDRESS_MARKER + key)} ", re.IGNORECASE)
    return pattern.sub("", text, count=1)


def substitute_id(text: str, packet_id) -> str:
    """Replace every standalone ``:id:`` token with ``#<packet_id>``."""
    return _PLACEHOLDER_RE.sub(f"{ADDRESS_MARKER}{packet_id}", text)


def parse_command(text: str, key: str, packet_id) -> Command:
    """Parse raw question text addressed to the agent ``key``."""
    text = substitute_id(strip_address(text, key), packet_id).strip()
    if not text:
        raise MalformedCommandError("empty command")

    parts = text.split(None, 1)
    head = parts[0]
    rest = parts[1] if len(parts) > 1 else ""
    params = tuple(head.split(PARAM_DELIMITER))
    if not params[0]:
        raise MalformedCommandError(f"no method in {head!r}")

    return Command(method=params[0], params=params, text=rest.strip())
