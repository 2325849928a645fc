"""Completion relay built on the official :mod:`openai` client.

The relay is configured once (model, temperature) and then used for both
blocking and streaming calls.  Any failure of the service is re-raised as
:class:`~chatrelay.errors.UpstreamError`; nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Iterator, Sequence

from openai import OpenAI, OpenAIError

from .chat_history import ChatMessage, to_api_messages
from .config import Settings
from .errors import UpstreamError

log = logging.getLogger(__name__)


def get_client(settings: Settings) -> OpenAI:
    """Return an :class:`openai.OpenAI` client for *settings*, with retries off."""
    return OpenAI(
        api_key=settings.api_key,
        base_url=settings.base_url,
        max_retries=0,
    )


class CompletionRelay:
    """Forward a transcript to the completion service and relay the answer."""

    def __init__(self, client: OpenAI, model_name: str, temperature: float) -> None:
        self.client = client
        self.model_name = model_name
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionRelay":
        return cls(get_client(settings), settings.model_name, settings.temperature)

    def _create(self, messages: Sequence[ChatMessage], *, stream: bool):
        try:
            return self.client.chat.completions.create(
                model=self.model_name,
                temperature=self.temperature,
                messages=to_api_messages(messages),
                stream=stream,
            )
        except OpenAIError as exc:
            raise UpstreamError(f"completion request failed: {exc}") from exc

    def complete(self, messages: Sequence[ChatMessage]) -> str:
        """Block until the full answer is available and return its text."""
        resp = self._create(messages, stream=False)
        return resp.choices[0].message.content or ""

    def stream(self, messages: Sequence[ChatMessage]) -> Iterator[str]:
        """Yield the answer fragment by fragment, in arrival order.

        The iterator is lazy and single-use.  A failure in the middle of the
        stream surfaces as :class:`UpstreamError` on the next ``next()``.
        """
        stream = self._create(messages, stream=True)
        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                token = chunk.choices[0].delta.content
                if token:
                    yield token
        except OpenAIError as exc:
            raise UpstreamError(f"completion stream failed: {exc}") from exc
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()


__all__ = ["CompletionRelay", "get_client"]
