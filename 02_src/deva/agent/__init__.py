"""Agent runtime: lifecycle, dispatch and composition."""

from .agent import Agent, IAgent
from .binder import BIND, INHERIT, assign_bind, assign_inherit, bind_function
from .command import Command, MalformedCommandError, parse_command
from .dispatcher import Dispatcher
from .lifecycle import Lifecycle

__all__ = [
    "Agent",
    "IAgent",
    "Dispatcher",
    "Lifecycle",
    "Command",
    "MalformedCommandError",
    "parse_command",
    "INHERIT",
    "BIND",
    "assign_inherit",
    "assign_bind",
    "bind_function",
]
