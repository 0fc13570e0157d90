"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def event_bus():
    """Create an empty EventBus."""
    from deva.event_bus import EventBus

    return EventBus()


@pytest.fixture
def hello_methods():
    """Capabilities of the hello agent."""

    async def hello(deva, packet):
        return {"text": deva.func["greeting"]()}

    async def echo(deva, packet):
        return {"text": packet.q.text, "params": packet.q.params}

    async def fail(deva, packet):
        raise ValueError("handler exploded")

    def start(deva, packet):
        deva.start()
        return {"text": f"{deva.me.name} started"}

    return {"hello": hello, "echo": echo, "fail": fail, "start": start}


@pytest.fixture
def hello_agent(event_bus, hello_methods):
    """Create an uninitialized hello agent on the shared bus."""
    from deva.agent import Agent

    def greeting(deva):
        return deva.vars["hello"]

    return Agent(
        me={"key": "hello", "name": "Hello World", "description": "Says hello"},
        vars={"hello": "Hello World"},
        events=event_bus,
        methods=hello_methods,
        func={"greeting": greeting},
    )


@pytest.fixture
def recorder():
    """Collect payloads emitted on a channel."""

    class Recorder:
        def __init__(self):
            self.calls = []

        def __call__(self, payload=None):
            self.calls.append(payload)

    return Recorder
