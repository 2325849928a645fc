"""Exception types raised by the chat relay.

Every per-request failure is one of these.  The HTTP layer maps them to
status codes in :func:`chatrelay.server.create_app`.
"""

from __future__ import annotations


class ChatRelayError(Exception):
    """Base class for all errors raised by :mod:`chatrelay`."""

    status_code = 500


class ValidationError(ChatRelayError):
    """A required request field is missing or empty."""

    status_code = 400


class UpstreamError(ChatRelayError):
    """The completion service failed (transport or API level)."""


class StorageError(ChatRelayError):
    """The SQLite store could not be opened, read or written."""


__all__ = ["ChatRelayError", "ValidationError", "UpstreamError", "StorageError"]
