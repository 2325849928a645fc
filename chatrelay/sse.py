"""Server-sent-event framing for streamed answers.

Each fragment becomes ``data: {"content": ...}`` followed by a blank line;
a drained stream ends with ``data: {"done": true}``.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, Iterator

from .errors import ChatRelayError

log = logging.getLogger(__name__)

SSE_CONTENT_TYPE = "text/event-stream"


def format_event(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def encode_stream(fragments: Iterable[str]) -> Iterator[str]:
    """Frame *fragments* as SSE events and append the ``done`` event.

    If the source raises a :class:`ChatRelayError`, the error is logged and
    the stream simply stops: no ``done`` event is sent.
    """
    try:
        for fragment in fragments:
            yield format_event({"content": fragment})
    except ChatRelayError:
        log.exception("Stream aborted")
        return
    yield format_event({"done": True})


__all__ = ["SSE_CONTENT_TYPE", "format_event", "encode_stream"]
