"""Run the chat relay with uvicorn: ``python -m chatrelay``."""

from __future__ import annotations

import logging
import sys

import uvicorn

from .config import load_settings
from .server import create_app

log = logging.getLogger("chatrelay")


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        app = create_app(settings)
    except Exception:  # storage or client setup
        log.exception("Failed to start server")
        sys.exit(1)
    log.info("Server running on http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
