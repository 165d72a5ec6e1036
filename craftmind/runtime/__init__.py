"""Runtime helpers for running several agents side by side."""

from craftmind.runtime.mailbox import (
    AgentMailbox,
    AgentMessage,
    MailboxFullError,
    MessageBus,
    MessageKind,
)

__all__ = [
    "AgentMailbox",
    "AgentMessage",
    "MailboxFullError",
    "MessageBus",
    "MessageKind",
]
