"""Turn a stored session into the message list sent to the completion API.

The orchestrator stores the user's turn *before* it asks for a reply, so
the last stored turn is that very message.  :func:`build_transcript` drops
it and appends the caller's text instead, which keeps what the model sees
identical to what the user typed.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple

from .db import Role, SessionStore, Turn


class ChatMessage(NamedTuple):
    """A role-tagged piece of a transcript."""

    role: Role
    content: str

    @classmethod
    def from_turn(cls, turn: Turn) -> "ChatMessage":
        return cls(turn.role, turn.content)


def build_transcript(store: SessionStore, session_id: str, incoming_text: str) -> list[ChatMessage]:
    """Return the prior turns of *session_id* followed by *incoming_text*.

    Turns keep their stored order and role.  Empty placeholder turns are
    passed through unchanged.
    """
    history = store.history(session_id)
    msgs = [ChatMessage.from_turn(t) for t in history[:-1]]
    msgs.append(ChatMessage(Role.USER, incoming_text))
    return msgs


def to_api_messages(messages: Iterable[ChatMessage]) -> list[dict]:
    """Convert a transcript into the dicts expected by ``chat.completions``."""
    return [{"role": m.role.value, "content": m.content} for m in messages]


__all__ = ["ChatMessage", "build_transcript", "to_api_messages"]
