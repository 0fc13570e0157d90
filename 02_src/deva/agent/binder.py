"""Composition passes: share resources with children, pin function context."""

import inspect
import types
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .agent import Agent

INHERIT = ("events", "config", "lib")
BIND = ("listeners", "methods", "func", "lib")
PROFILE_HOOKS = ("translate", "parse")


def bind_function(fn: Any, owner: "Agent") -> Any:
    """Return fn with its first argument pinned to owner.

    Non-functions are returned unchanged. A function already bound to another
    object is unwrapped first so binding never stacks.
    """
    if inspect.ismethod(fn):
        if fn.__self__ is owner:
            return fn
        fn = fn.__func__
    if not inspect.isfunction(fn):
        return fn
    return types.MethodType(fn, owner)


def assign_inherit(parent: "Agent") -> None:
    """Copy the parent's shared resources onto every child, by reference."""
    for child in parent.deva.values():
        for name in INHERIT:
            setattr(child, name, getattr(parent, name))


def assign_bind(agent: "Agent") -> None:
    """Pin every function in the bindable collections to agent.

    Each collection is rebuilt as a new dict so functions reached through an
    inherited mapping are not re-targeted for the agent that shared it. On the
    profile, translate, parse and any extra function-valued field are bound.
    """
    for name in BIND:
        collection = getattr(agent, name)
        setattr(
            agent,
            name,
            {key: bind_function(value, agent) for key, value in collection.items()},
        )

    me = agent.me
    names = list(PROFILE_HOOKS) + list(me.model_extra or {})
    for name in names:
        fn = getattr(me, name)
        if callable(fn):
            setattr(me, name, bind_function(fn, agent))
