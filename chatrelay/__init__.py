"""Chat-session proxy: persist turns in SQLite, relay them to a completion API."""

__version__ = "0.1.0"
