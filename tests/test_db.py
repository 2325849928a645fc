"""Tests for the SQLite session store.

Most tests use the in-memory store from ``conftest.py``; the schema test
uses a file in ``tmp_path`` so it can be inspected with a second
connection.
"""

import sqlite3
import threading
from pathlib import Path

import pytest

from chatrelay import db
from chatrelay.chat_history import ChatMessage, build_transcript
from chatrelay.db import Role, SessionStore
from chatrelay.errors import StorageError


def test_init_db_creates_table(tmp_path: Path) -> None:
    """``init_db`` creates the table and index and is idempotent."""

    db_path = tmp_path / "chat.db"
    store = SessionStore(str(db_path))
    store.init_db()
    store.init_db()
    store.close()

    with sqlite3.connect(db_path) as conn:
        columns = [row[1] for row in conn.execute("PRAGMA table_info(messages)")]
        indexes = [row[1] for row in conn.execute("PRAGMA index_list(messages)")]
    assert columns == ["id", "session_id", "role", "content", "created_at"]
    assert "idx_session_id" in indexes


def test_turns_survive_reopen(tmp_path: Path) -> None:
    db_path = str(tmp_path / "chat.db")
    store = SessionStore(db_path)
    store.init_db()
    store.append("s1", "user", "Hello")
    store.close()

    reopened = SessionStore(db_path)
    reopened.init_db()
    assert [t.content for t in reopened.history("s1")] == ["Hello"]
    reopened.close()


def test_append_assigns_id_and_timestamp(store: SessionStore) -> None:
    first = store.append("s1", "user", "Hello")
    second = store.append("s1", Role.ASSISTANT, "Hi there!")
    assert first.role is Role.USER
    assert second.id > first.id
    assert second.created_at >= first.created_at
    assert first.created_at.tzinfo is not None


def test_append_rejects_unknown_role(store: SessionStore) -> None:
    with pytest.raises(ValueError):
        store.append("s1", "system", "nope")


def test_log_and_load_history(store: SessionStore) -> None:
    """Turns are returned oldest first and only for the requested session."""

    store.append("test-session", "user", "Hello")
    store.append("other", "user", "elsewhere")
    store.append("test-session", "assistant", "Hi there!")
    history = store.history("test-session")
    assert [(t.role, t.content) for t in history] == [
        (Role.USER, "Hello"),
        (Role.ASSISTANT, "Hi there!"),
    ]
    assert store.history("test-session") == history


def test_history_of_unknown_session_is_empty(store: SessionStore) -> None:
    assert store.history("missing") == []


def test_history_order_with_concurrent_appends(store: SessionStore) -> None:
    def writer(n: int) -> None:
        for i in range(20):
            store.append("busy", "user", f"{n}-{i}")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    history = store.history("busy")
    assert len(history) == 80
    keys = [(t.created_at, t.id) for t in history]
    assert keys == sorted(keys)
    ids = [t.id for t in history]
    assert ids == sorted(ids)


def test_timestamp_taken_in_commit_order(store: SessionStore, monkeypatch) -> None:
    """A writer that is slow to read the clock cannot be overtaken."""

    entered = threading.Event()
    release = threading.Event()
    real_now = db._now

    def slow_first_now():
        if not entered.is_set():
            entered.set()
            release.wait(timeout=5)
        return real_now()

    monkeypatch.setattr(db, "_now", slow_first_now)

    first = threading.Thread(target=store.append, args=("s1", "user", "A-question"))
    first.start()
    assert entered.wait(timeout=5)
    second = threading.Thread(target=store.append, args=("s1", "user", "B-question"))
    second.start()
    second.join(timeout=0.1)
    release.set()
    first.join()
    second.join()

    history = store.history("s1")
    assert [t.content for t in history] == ["A-question", "B-question"]
    assert [t.id for t in history] == sorted(t.id for t in history)
    assert build_transcript(store, "s1", "B-question") == [
        ChatMessage(Role.USER, "A-question"),
        ChatMessage(Role.USER, "B-question"),
    ]


def test_list_sessions_distinct_and_stable(store: SessionStore) -> None:
    for sid in ("a", "c", "b", "a"):
        store.append(sid, "user", "x")
    assert store.list_sessions() == ["c", "b", "a"]
    assert store.list_sessions() == store.list_sessions()


def test_create_session_adds_placeholder(store: SessionStore) -> None:
    store.create_session("x")
    assert "x" in store.list_sessions()
    (turn,) = store.history("x")
    assert turn.role is Role.ASSISTANT
    assert turn.content == ""


def test_create_session_twice_keeps_both_placeholders(store: SessionStore) -> None:
    store.create_session("x")
    store.create_session("x")
    assert store.list_sessions() == ["x"]
    assert len(store.history("x")) == 2


def test_delete_session(store: SessionStore) -> None:
    store.append("s1", "user", "Hello")
    store.append("s1", "assistant", "Hi")
    store.append("s2", "user", "keep me")
    assert store.delete_session("s1") == 2
    assert store.history("s1") == []
    assert store.list_sessions() == ["s2"]


def test_delete_unknown_session_is_noop(store: SessionStore) -> None:
    assert store.delete_session("ghost") == 0


def test_turn_to_dict(store: SessionStore) -> None:
    turn = store.append("s1", "user", "Hello")
    data = turn.to_dict()
    assert data == {
        "id": turn.id,
        "session_id": "s1",
        "role": "user",
        "content": "Hello",
        "timestamp": turn.created_at.isoformat(),
    }


def test_closed_store_raises_storage_error() -> None:
    store = SessionStore(":memory:")
    store.init_db()
    store.close()
    with pytest.raises(StorageError):
        store.history("s1")
