"""Tests for question/answer dispatch."""

import asyncio

import pytest

from deva.agent.dispatcher import INVALID_METHOD, OFFLINE, result_text
from deva.event_bus import channels
from deva.models import (
    ErrorEvent,
    Packet,
    PacketAlreadyAnsweredError,
    PacketAlreadyAskedError,
    Question,
)


class TestQuestionSuccess:
    """Tests for successful capability invocation."""

    @pytest.mark.asyncio
    async def test_hello_world(self, hello_agent, event_bus, recorder):
        """Test the hello scenario on the correlation channel."""
        await hello_agent.init()
        hello_agent.start()
        rec = recorder()
        event_bus.on("hello:question:42", rec)

        answered = await hello_agent.question(Packet(id=42, q=Question(text="hello")))

        assert rec.calls == [answered]
        assert answered.a.text == "Hello World"
        assert answered.a.error is False
        assert answered.a.data == {"text": "Hello World"}
        assert answered.a.meta.format == "hello"
        assert answered.a.meta.type == "hello"
        assert answered.a.bot["key"] == "hello"

    @pytest.mark.asyncio
    async def test_parsed_params_and_text(self, hello_agent):
        """Test that the capability sees the parsed packet."""
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.ask("#hello echo:loud back to :id:", id=7)

        assert answered.q.text_orig == "#hello echo:loud back to :id:"
        assert answered.q.params == ["echo", "loud"]
        assert answered.q.text == "back to #7"
        assert answered.a.text == "back to #7"
        assert answered.asked <= answered.answered

    @pytest.mark.asyncio
    async def test_default_text_without_result_text(self, hello_agent):
        """Test the fallback answer text."""

        async def quiet(deva, packet):
            return {"value": 3}

        hello_agent.methods["quiet"] = quiet
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.ask("quiet")
        assert answered.a.text == "#hello quiet"
        assert answered.a.data == {"value": 3}

    @pytest.mark.asyncio
    async def test_result_object_text_attribute(self, hello_agent):
        """Test results exposing text as an attribute."""

        class Result:
            text = "from attribute"

        def sync_method(deva, packet):
            return Result()

        hello_agent.methods["sync"] = sync_method
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.ask("sync")
        assert answered.a.text == "from attribute"

    @pytest.mark.asyncio
    async def test_dict_packet(self, hello_agent):
        """Test that plain mapping packets are accepted."""
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.question({"id": "p1", "q": {"text": "hello"}})
        assert answered.id == "p1"
        assert answered.a.text == "Hello World"


class TestQuestionResolution:
    """Tests for method-not-found and not-running outcomes."""

    @pytest.mark.asyncio
    async def test_method_not_found(self, hello_agent):
        """Test that unknown methods are answered without error."""
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.ask("bogus arg1")

        assert answered.a.text == "hello bogus is not a valid method"
        assert answered.a.error is False
        assert answered.a.data is False
        assert answered.a.meta.type == INVALID_METHOD

    @pytest.mark.asyncio
    async def test_method_not_found_is_deferred(self, hello_agent, event_bus, recorder):
        """Test that the answer is not delivered in the same tick."""
        await hello_agent.init()
        hello_agent.start()
        rec = recorder()
        event_bus.on("hello:question:1", rec)

        future = hello_agent.question(Packet(id=1, q=Question(text="bogus")))
        assert not future.done()
        assert rec.calls == []

        answered = await future
        assert len(rec.calls) == 1
        assert answered.a.error is False

    @pytest.mark.asyncio
    async def test_malformed_command(self, hello_agent):
        """Test that empty commands are reported as invalid methods."""
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.ask("   ")
        assert answered.a.error is False
        assert answered.a.data is False
        assert "is not a valid method" in answered.a.text

    @pytest.mark.asyncio
    async def test_not_running(self, hello_agent):
        """Test the OFFLINE answer of a stopped agent."""
        await hello_agent.init()

        answered = await hello_agent.ask("hello")

        assert "Hello World" in answered.a.text
        assert "OFFLINE" in answered.a.text
        assert answered.a.error is False
        assert answered.a.data is False
        assert answered.a.meta.type == OFFLINE

    @pytest.mark.asyncio
    async def test_not_running_is_deferred(self, hello_agent):
        await hello_agent.init()
        future = hello_agent.question(Packet.from_text("hello"))
        assert not future.done()
        await future

    @pytest.mark.asyncio
    async def test_unknown_method_wins_over_offline(self, hello_agent):
        """Test that resolution is checked before the running gate."""
        await hello_agent.init()

        answered = await hello_agent.ask("bogus")
        assert "is not a valid method" in answered.a.text

    @pytest.mark.asyncio
    async def test_start_allowed_while_stopped(self, hello_agent):
        """Test that start is dispatched to a stopped agent."""
        await hello_agent.init()

        answered = await hello_agent.ask("start")

        assert hello_agent.running
        assert answered.a.text == "Hello World started"
        assert answered.a.error is False


class TestQuestionFailure:
    """Tests for capability failures."""

    @pytest.mark.asyncio
    async def test_handler_exception(self, hello_agent, event_bus, recorder):
        """Test the error answer and the error event."""
        await hello_agent.init()
        hello_agent.start()
        errors = recorder()
        event_bus.on(channels.ERROR, errors)

        answered = await hello_agent.ask("fail", id=5)

        assert answered.a.error == "handler exploded"
        assert answered.a.data is False
        assert answered.a.text == "#hello fail"

        assert len(errors.calls) == 1
        event = errors.calls[0]
        assert isinstance(event, ErrorEvent)
        assert event.type == "#hello:question"
        assert event.error == "handler exploded"
        assert event.packet is answered
        assert event.created is not None

    @pytest.mark.asyncio
    async def test_exception_without_message(self, hello_agent):
        """Test that the error field is never empty for a failure."""

        async def silent(deva, packet):
            raise KeyError()

        hello_agent.methods["silent"] = silent
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.ask("silent")
        assert answered.a.error == "KeyError"

    @pytest.mark.asyncio
    async def test_sync_handler_exception(self, hello_agent):
        def broken(deva, packet):
            raise RuntimeError("sync boom")

        hello_agent.methods["broken"] = broken
        await hello_agent.init()
        hello_agent.start()

        answered = await hello_agent.ask("broken")
        assert answered.a.error == "sync boom"


class TestQuestionCorrelation:
    """Tests for answer delivery."""

    @pytest.mark.asyncio
    async def test_exactly_one_answer(self, hello_agent, event_bus, recorder):
        await hello_agent.init()
        hello_agent.start()
        rec = recorder()
        event_bus.on("hello:question:9", rec)

        await hello_agent.ask("hello", id=9)
        await asyncio.sleep(0.01)
        assert len(rec.calls) == 1

    @pytest.mark.asyncio
    async def test_answered_packet_rejected(self, hello_agent):
        await hello_agent.init()
        hello_agent.start()
        answered = await hello_agent.ask("hello")

        with pytest.raises(PacketAlreadyAnsweredError):
            hello_agent.question(answered)

    @pytest.mark.asyncio
    async def test_in_flight_packet_rejected(self, hello_agent, event_bus, recorder):
        """Test that a packet cannot be dispatched twice while unanswered."""
        await hello_agent.init()
        hello_agent.start()
        rec = recorder()
        event_bus.on("hello:question:d1", rec)
        packet = Packet(id="d1", q=Question(text="echo:loud twice"))

        future = hello_agent.question(packet)
        with pytest.raises(PacketAlreadyAskedError):
            hello_agent.question(packet)

        answered = await future
        await asyncio.sleep(0.01)
        assert answered.q.params == ["echo", "loud"]
        assert answered.q.text_orig == "echo:loud twice"
        assert len(rec.calls) == 1
        assert event_bus.listener_count("hello:question:d1") == 1

    @pytest.mark.asyncio
    async def test_question_over_the_bus(self, hello_agent, event_bus):
        """Test questions emitted on <key>:question."""
        await hello_agent.init()
        hello_agent.start()
        loop = asyncio.get_running_loop()
        received = loop.create_future()
        event_bus.once("hello:question:b1", received.set_result)

        event_bus.emit("hello:question", Packet(id="b1", q=Question(text="hello")))

        answered = await asyncio.wait_for(received, timeout=1)
        assert answered.a.text == "Hello World"

    @pytest.mark.asyncio
    async def test_cancelled_future_unsubscribes(self, hello_agent, event_bus):
        async def slow(deva, packet):
            await asyncio.sleep(0.05)
            return {"text": "late"}

        hello_agent.methods["slow"] = slow
        await hello_agent.init()
        hello_agent.start()

        future = hello_agent.question(Packet(id="c1", q=Question(text="slow")))
        assert event_bus.listener_count("hello:question:c1") == 1
        future.cancel()
        await asyncio.sleep(0)
        assert event_bus.listener_count("hello:question:c1") == 0

        # the capability still finishes; nobody is listening for it
        await asyncio.sleep(0.1)

    @pytest.mark.asyncio
    async def test_out_of_order_completion(self, hello_agent):
        """Test that concurrent questions complete in their own order."""
        order = []

        async def slow(deva, packet):
            await asyncio.sleep(0.05)
            order.append("slow")
            return {"text": "slow"}

        async def fast(deva, packet):
            order.append("fast")
            return {"text": "fast"}

        hello_agent.methods.update(slow=slow, fast=fast)
        await hello_agent.init()
        hello_agent.start()

        slow_answer, fast_answer = await asyncio.gather(
            hello_agent.ask("slow"), hello_agent.ask("fast")
        )
        assert order == ["fast", "slow"]
        assert slow_answer.a.text == "slow"
        assert fast_answer.a.text == "fast"


class TestResultText:
    def test_mapping(self):
        assert result_text({"text": "a"}) == "a"

    def test_missing(self):
        assert result_text({"data": 1}) is None
        assert result_text(None) is None
