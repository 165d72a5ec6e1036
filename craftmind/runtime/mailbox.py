"""Asynchronous message passing between agents.

Agents never share state. Each agent owns an :class:`AgentMailbox`; the
:class:`MessageBus` routes messages between them and deep-copies every
payload on send, so a receiver can never observe the sender's objects.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class MessageKind(StrEnum):
    """What a message asks the receiving agent to do."""

    GOAL = "goal"
    CHAT = "chat"
    LOCATION = "location"
    CUSTOM = "custom"


class AgentMessage(BaseModel):
    """A message from one agent to another."""

    sender: str
    recipient: str
    kind: MessageKind
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}


class MailboxFullError(Exception):
    """Raised when a bounded mailbox cannot accept another message."""

    pass


class AgentMailbox:
    """Inbound message queue of one agent."""

    def __init__(self, owner: str, maxsize: int = 0) -> None:
        self.owner = owner
        self._queue: asyncio.Queue[AgentMessage] = asyncio.Queue(maxsize=maxsize)

    def __len__(self) -> int:
        return self._queue.qsize()

    def deliver(self, message: AgentMessage) -> None:
        """Enqueue ``message`` without waiting.

        Raises:
            MailboxFullError: If the mailbox is bounded and full.
        """
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull as e:
            raise MailboxFullError(f"Mailbox for {self.owner} is full") from e

    async def receive(self) -> AgentMessage:
        """Wait for the next message."""
        return await self._queue.get()

    def drain(self) -> list[AgentMessage]:
        """Return every queued message without waiting, oldest first."""
        messages = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return messages


class MessageBus:
    """Routes messages between registered agent mailboxes.

    Example:
        >>> bus = MessageBus()
        >>> inbox = bus.register("builder")
        >>> bus.register("miner")
        >>> bus.send("miner", "builder", MessageKind.GOAL, {"goal": "Get wood(5)"})
        >>> inbox.drain()[0].payload
        {'goal': 'Get wood(5)'}
    """

    def __init__(self, mailbox_size: int = 0) -> None:
        self._mailbox_size = mailbox_size
        self._mailboxes: dict[str, AgentMailbox] = {}

    @property
    def agents(self) -> list[str]:
        return list(self._mailboxes)

    def register(self, name: str) -> AgentMailbox:
        """Create (or return the existing) mailbox for agent ``name``."""
        mailbox = self._mailboxes.get(name)
        if mailbox is None:
            mailbox = AgentMailbox(name, self._mailbox_size)
            self._mailboxes[name] = mailbox
            logger.debug(f"Registered mailbox for {name}")
        return mailbox

    def unregister(self, name: str) -> None:
        self._mailboxes.pop(name, None)

    def send(
        self,
        sender: str,
        recipient: str,
        kind: MessageKind | str,
        payload: dict[str, Any] | None = None,
    ) -> AgentMessage:
        """Send a message to ``recipient``.

        Raises:
            KeyError: If the recipient is not registered.
            MailboxFullError: If the recipient's mailbox is full.
        """
        mailbox = self._mailboxes.get(recipient)
        if mailbox is None:
            raise KeyError(f"Unknown recipient: {recipient}")
        message = AgentMessage(
            sender=sender,
            recipient=recipient,
            kind=MessageKind(kind),
            payload=copy.deepcopy(payload or {}),
        )
        mailbox.deliver(message)
        return message

    def broadcast(
        self,
        sender: str,
        kind: MessageKind | str,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Send a message to every other registered agent; returns how many were delivered."""
        delivered = 0
        for name in self._mailboxes:
            if name == sender:
                continue
            try:
                self.send(sender, name, kind, payload)
                delivered += 1
            except MailboxFullError as e:
                logger.warning(f"Broadcast from {sender} dropped: {e}")
        return delivered
