"""Tests for inter-agent message passing."""

from __future__ import annotations

import asyncio

import pytest

from craftmind.runtime.mailbox import AgentMailbox, AgentMessage, MailboxFullError, MessageBus, MessageKind


class TestMessageBus:
    """Routing between registered mailboxes."""

    def test_register_is_idempotent(self) -> None:
        bus = MessageBus()
        assert bus.register("miner") is bus.register("miner")
        assert bus.agents == ["miner"]

    def test_send_delivers_a_copy(self) -> None:
        bus = MessageBus()
        inbox = bus.register("builder")
        payload = {"goal": "Get wood(5)", "tags": ["urgent"]}

        bus.send("miner", "builder", MessageKind.GOAL, payload)
        payload["tags"].append("changed")

        (message,) = inbox.drain()
        assert message.sender == "miner"
        assert message.kind == MessageKind.GOAL
        assert message.payload == {"goal": "Get wood(5)", "tags": ["urgent"]}

    def test_kind_accepts_string(self) -> None:
        bus = MessageBus()
        inbox = bus.register("builder")
        bus.send("miner", "builder", "chat", {"text": "hi"})
        assert inbox.drain()[0].kind == MessageKind.CHAT

    def test_unknown_recipient(self) -> None:
        with pytest.raises(KeyError):
            MessageBus().send("miner", "nobody", MessageKind.CHAT, {"text": "hi"})

    def test_unregister(self) -> None:
        bus = MessageBus()
        bus.register("builder")
        bus.unregister("builder")
        bus.unregister("builder")
        assert bus.agents == []

    def test_broadcast_skips_sender(self) -> None:
        bus = MessageBus()
        miner = bus.register("miner")
        builder = bus.register("builder")
        farmer = bus.register("farmer")

        delivered = bus.broadcast("miner", MessageKind.CHAT, {"text": "found diamonds"})

        assert delivered == 2
        assert len(miner) == 0
        assert len(builder) == 1
        assert len(farmer) == 1

    def test_broadcast_skips_full_mailboxes(self) -> None:
        bus = MessageBus(mailbox_size=1)
        bus.register("miner")
        builder = bus.register("builder")
        bus.register("farmer")
        builder.deliver(AgentMessage(sender="x", recipient="builder", kind=MessageKind.CHAT))

        assert bus.broadcast("miner", MessageKind.CHAT, {"text": "hi"}) == 1


class TestAgentMailbox:
    def test_bounded_mailbox_raises_when_full(self) -> None:
        mailbox = AgentMailbox("builder", maxsize=1)
        message = AgentMessage(sender="miner", recipient="builder", kind=MessageKind.CUSTOM)
        mailbox.deliver(message)
        with pytest.raises(MailboxFullError):
            mailbox.deliver(message)

    def test_drain_preserves_order(self) -> None:
        mailbox = AgentMailbox("builder")
        for i in range(3):
            mailbox.deliver(
                AgentMessage(sender="miner", recipient="builder", kind=MessageKind.CHAT, payload={"i": i})
            )
        assert [m.payload["i"] for m in mailbox.drain()] == [0, 1, 2]
        assert mailbox.drain() == []

    @pytest.mark.asyncio
    async def test_receive_waits_for_delivery(self) -> None:
        bus = MessageBus()
        inbox = bus.register("builder")
        waiter = asyncio.create_task(inbox.receive())
        await asyncio.sleep(0)
        assert not waiter.done()

        bus.send("miner", "builder", MessageKind.GOAL, {"goal": "Build a house"})
        message = await asyncio.wait_for(waiter, timeout=1.0)
        assert message.payload == {"goal": "Build a house"}
