"""Process-wide settings read from the environment.

Values are read once at import time (after an optional ``.env`` file has
been loaded) and frozen into a :class:`Settings` snapshot by
:func:`load_settings`.  Nothing is reloaded while the server runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")
MODEL_NAME = os.getenv("CHAT_MODEL", "gpt-4.1-nano")
TEMPERATURE = os.getenv("CHAT_TEMPERATURE", "0.7")

DB_PATH = os.getenv("CHAT_DB_PATH", "chat.db")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "3001")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for one server process.

    Parameters
    ----------
    api_key:
        Credential for the completion service.
    model_name:
        Model identifier sent with every completion call.
    temperature:
        Sampling temperature sent with every completion call.
    db_path:
        SQLite file holding the ``messages`` table, or ``":memory:"``.
    """

    api_key: str | None = None
    base_url: str | None = None
    model_name: str = "gpt-4.1-nano"
    temperature: float = 0.7
    db_path: str = "chat.db"
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: tuple[str, ...] = field(default=("*",))
    log_level: str = "INFO"


def _split_origins(value: str) -> tuple[str, ...]:
    return tuple(o.strip() for o in value.split(",") if o.strip())


def load_settings() -> Settings:
    """Return a :class:`Settings` built from the module-level constants.

    Raises ``ValueError`` if ``CHAT_TEMPERATURE`` or ``PORT`` is not a number.
    """
    return Settings(
        api_key=OPENAI_API_KEY,
        base_url=OPENAI_BASE_URL or None,
        model_name=MODEL_NAME,
        temperature=float(TEMPERATURE),
        db_path=DB_PATH,
        host=HOST,
        port=int(PORT),
        cors_origins=_split_origins(CORS_ORIGINS) or ("*",),
        log_level=LOG_LEVEL.upper(),
    )
