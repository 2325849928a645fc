"""Shared fixtures: an in-memory store, a scripted relay and a test client."""

from __future__ import annotations

from typing import Iterator, Sequence

import pytest
from fastapi.testclient import TestClient

from chatrelay.chat_history import ChatMessage
from chatrelay.config import Settings
from chatrelay.db import SessionStore
from chatrelay.errors import UpstreamError
from chatrelay.server import create_app


class FakeRelay:
    """Relay that answers from a script and records every transcript it saw.

    ``fail_after`` makes :meth:`stream` raise :class:`UpstreamError` after
    that many fragments; ``fail`` makes :meth:`complete` raise at once.
    """

    def __init__(self, fragments: Sequence[str] = ("Hi", " there", "!"), *, fail: bool = False, fail_after: int | None = None):
        self.fragments = list(fragments)
        self.fail = fail
        self.fail_after = fail_after
        self.calls: list[list[ChatMessage]] = []

    def complete(self, messages: Sequence[ChatMessage]) -> str:
        self.calls.append(list(messages))
        if self.fail:
            raise UpstreamError("service unavailable")
        return "".join(self.fragments)

    def stream(self, messages: Sequence[ChatMessage]) -> Iterator[str]:
        self.calls.append(list(messages))
        for i, fragment in enumerate(self.fragments):
            if self.fail_after is not None and i >= self.fail_after:
                raise UpstreamError("connection reset")
            yield fragment


@pytest.fixture
def store() -> Iterator[SessionStore]:
    s = SessionStore(":memory:")
    s.init_db()
    yield s
    s.close()


@pytest.fixture
def relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key", db_path=":memory:")


@pytest.fixture
def client(settings: Settings, store: SessionStore, relay: FakeRelay) -> TestClient:
    return TestClient(create_app(settings, store=store, relay=relay))
