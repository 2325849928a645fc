# chatrelay/db.py
"""Persist chat turns in a lightweight SQLite database.

The store holds a single append-only table ``messages`` with one row per
user or assistant turn.  A session has no record of its own: it exists as
long as at least one row carries its ``session_id``.  Rows are never
updated; the only destructive operation deletes every row of a session.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from .errors import StorageError

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id  TEXT NOT NULL,
    role        TEXT NOT NULL,   -- 'user' or 'assistant'
    content     TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_session_id ON messages(session_id);
"""


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """One stored message of a conversation."""

    id: int
    session_id: str
    role: Role
    content: str
    created_at: datetime

    def to_dict(self) -> dict:
        """Return the JSON shape served by ``GET /api/history``."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.created_at.isoformat(),
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_turn(row: sqlite3.Row) -> Turn:
    return Turn(
        id=row["id"],
        session_id=row["session_id"],
        role=Role(row["role"]),
        content=row["content"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# ---------------------------------------------------------------------------
#  Store
# ---------------------------------------------------------------------------

class SessionStore:
    """Durable per-session log of turns backed by one SQLite connection.

    The store is constructed explicitly and handed to whoever needs it;
    pass ``":memory:"`` as *db_path* for an isolated throw-away database.
    Every call goes to SQLite, there is no cache in front of it.
    """

    def __init__(self, db_path: str = "chat.db") -> None:
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        self._last_stamp: datetime | None = None
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open database {self.db_path!r}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row

    def init_db(self) -> None:
        """Create the ``messages`` table and its index if they do not exist.

        The function is idempotent; it should be invoked once during
        application startup.
        """
        with self._lock:
            try:
                self._conn.executescript(_SCHEMA)
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StorageError(f"cannot initialise database: {exc}") from exc
        log.info("Database initialised at %s", self.db_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _write(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                cur = self._conn.execute(query, params)
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StorageError(str(exc)) from exc
        return cur

    def _insert_turn(self, session_id: str, role: Role, content: str) -> tuple[int, datetime]:
        # Stamp under the lock so created_at follows commit (and id) order.
        with self._lock:
            created_at = max(_now(), self._last_stamp) if self._last_stamp else _now()
            try:
                cur = self._conn.execute(
                    "INSERT INTO messages (session_id, role, content, created_at) VALUES (?, ?, ?, ?)",
                    (session_id, role.value, content, created_at.isoformat(timespec="microseconds")),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StorageError(str(exc)) from exc
            self._last_stamp = created_at
        return cur.lastrowid, created_at

    def _read(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(query, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(str(exc)) from exc

    # -----------------------------------------------------------------------
    #  Turns
    # -----------------------------------------------------------------------

    def append(self, session_id: str, role: Role | str, content: str) -> Turn:
        """Persist a single turn and return it with ``id`` and ``created_at`` set.

        Parameters
        ----------
        session_id
            Identifier of the conversation, chosen by the caller.
        role
            Either ``"user"`` or ``"assistant"``.
        content
            The raw text sent or received; may be empty.
        """
        role = Role(role)
        row_id, created_at = self._insert_turn(session_id, role, content)
        return Turn(
            id=row_id,
            session_id=session_id,
            role=role,
            content=content,
            created_at=created_at,
        )

    def history(self, session_id: str) -> list[Turn]:
        """Return every turn of *session_id*, oldest first.

        Turns written in the same instant keep their insertion order.  An
        unknown session yields an empty list.
        """
        rows = self._read(
            "SELECT id, session_id, role, content, created_at FROM messages "
            "WHERE session_id = ? ORDER BY created_at ASC, id ASC",
            (session_id,),
        )
        return [_row_to_turn(row) for row in rows]

    # -----------------------------------------------------------------------
    #  Sessions
    # -----------------------------------------------------------------------

    def list_sessions(self) -> list[str]:
        """Return all distinct session identifiers, in descending order."""
        rows = self._read(
            "SELECT DISTINCT session_id FROM messages ORDER BY session_id DESC"
        )
        return [row[0] for row in rows]

    def create_session(self, session_id: str) -> Turn:
        """Make *session_id* listable by storing an empty assistant turn.

        Repeated calls add another placeholder each time.
        """
        turn = self.append(session_id, Role.ASSISTANT, "")
        log.info("Created session %s", session_id)
        return turn

    def delete_session(self, session_id: str) -> int:
        """Delete every turn of *session_id*; return how many rows went away."""
        cur = self._write(
            "DELETE FROM messages WHERE session_id = ?", (session_id,)
        )
        log.info("Deleted session %s (%d turns)", session_id, cur.rowcount)
        return cur.rowcount


__all__ = ["Role", "Turn", "SessionStore"]

# End of file
