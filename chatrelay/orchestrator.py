"""Control flow of one chat request.

``reply`` and ``stream_reply`` follow the same steps: validate the text,
store the user turn, build the transcript, call the relay and finally
store the assistant turn.  The user turn is never rolled back, so the
history shows the question even when no answer was produced.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Protocol, Sequence

from .chat_history import ChatMessage, build_transcript
from .db import Role, SessionStore
from .errors import ValidationError

log = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"


class Relay(Protocol):
    def complete(self, messages: Sequence[ChatMessage]) -> str: ...

    def stream(self, messages: Sequence[ChatMessage]) -> Iterator[str]: ...


def validate_message(message: Any) -> str:
    """Return *message* if it is a non-empty string, else raise."""
    if not isinstance(message, str) or not message:
        raise ValidationError("Message is required")
    return message


class TurnOrchestrator:
    """Glue between a :class:`SessionStore` and a completion relay."""

    def __init__(self, store: SessionStore, relay: Relay) -> None:
        self.store = store
        self.relay = relay

    def _begin(self, session_id: str, message: Any) -> list[ChatMessage]:
        message = validate_message(message)
        self.store.append(session_id, Role.USER, message)
        return build_transcript(self.store, session_id, message)

    def reply(self, session_id: str, message: Any) -> str:
        """Answer *message* in one piece and store the answer."""
        transcript = self._begin(session_id, message)
        log.info("Chat turn for session %s (%d messages)", session_id, len(transcript))
        answer = self.relay.complete(transcript)
        self.store.append(session_id, Role.ASSISTANT, answer)
        return answer

    def stream_reply(self, session_id: str, message: Any) -> Iterator[str]:
        """Validate and store the user turn, then return the fragment iterator.

        Validation and the user-turn write happen eagerly, before this
        method returns.  The assistant turn is stored once the iterator is
        drained; if the relay fails first, nothing is stored for it.
        """
        transcript = self._begin(session_id, message)
        log.info("Streaming chat turn for session %s (%d messages)", session_id, len(transcript))
        return self._relay_and_store(session_id, transcript)

    def _relay_and_store(self, session_id: str, transcript: list[ChatMessage]) -> Iterator[str]:
        parts: list[str] = []
        for fragment in self.relay.stream(transcript):
            parts.append(fragment)
            yield fragment
        self.store.append(session_id, Role.ASSISTANT, "".join(parts))


__all__ = ["TurnOrchestrator", "validate_message", "DEFAULT_SESSION_ID"]
