"""FastAPI front end of the chat relay.

Routes
------
``POST /api/chat``                  answer a message, as JSON or as SSE
``GET /api/history/{session_id}``   stored turns of a session
``GET /api/sessions``               all session identifiers
``POST /api/sessions``              create an empty session
``DELETE /api/sessions/{session_id}`` delete a session
``GET /api/health``                 liveness probe

The application is built by :func:`create_app`; the store and relay are
passed in (or built from :class:`~chatrelay.config.Settings`) and kept on
``app.state.orchestrator``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from .client import CompletionRelay
from .config import Settings, load_settings
from .db import SessionStore
from .errors import ChatRelayError, ValidationError
from .orchestrator import DEFAULT_SESSION_ID, Relay, TurnOrchestrator
from .sse import SSE_CONTENT_TYPE, encode_stream

log = logging.getLogger(__name__)


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:  # bad JSON or bad UTF-8
        return {}
    return body if isinstance(body, dict) else {}


def _orchestrator(request: Request) -> TurnOrchestrator:
    return request.app.state.orchestrator


def create_app(
    settings: Settings | None = None,
    store: SessionStore | None = None,
    relay: Relay | None = None,
) -> FastAPI:
    """Build the application.

    Raises :class:`~chatrelay.errors.StorageError` if the database cannot
    be initialised.
    """
    settings = settings or load_settings()
    if store is None:
        store = SessionStore(settings.db_path)
    store.init_db()
    if relay is None:
        relay = CompletionRelay.from_settings(settings)

    app = FastAPI(title="chatrelay")
    app.state.settings = settings
    app.state.orchestrator = TurnOrchestrator(store, relay)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatRelayError)
    async def relay_error_handler(request: Request, exc: ChatRelayError) -> JSONResponse:
        if isinstance(exc, ValidationError):
            return JSONResponse({"error": str(exc)}, status_code=exc.status_code)
        log.error("Error in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse({"error": "Internal server error"}, status_code=exc.status_code)

    @app.post("/api/chat")
    async def chat(request: Request):
        body = await _json_body(request)
        message = body.get("message")
        session_id = str(body.get("sessionId") or DEFAULT_SESSION_ID)
        orchestrator = _orchestrator(request)

        if body.get("streaming") is True:
            fragments = await run_in_threadpool(orchestrator.stream_reply, session_id, message)
            return StreamingResponse(
                encode_stream(fragments),
                media_type=SSE_CONTENT_TYPE,
                headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
            )

        answer = await run_in_threadpool(orchestrator.reply, session_id, message)
        return {"message": answer}

    @app.get("/api/history/{session_id}")
    def history(session_id: str, request: Request):
        turns = _orchestrator(request).store.history(session_id)
        return {"history": [t.to_dict() for t in turns]}

    @app.get("/api/sessions")
    def list_sessions(request: Request):
        return {"sessions": _orchestrator(request).store.list_sessions()}

    @app.post("/api/sessions")
    async def create_session(request: Request):
        body = await _json_body(request)
        session_id = body.get("sessionId")
        if not session_id:
            raise ValidationError("Session ID is required")
        await run_in_threadpool(_orchestrator(request).store.create_session, str(session_id))
        return {"success": True}

    @app.delete("/api/sessions/{session_id}")
    def delete_session(session_id: str, request: Request):
        _orchestrator(request).store.delete_session(session_id)
        return {"success": True}

    @app.get("/api/health")
    def health():
        return {"status": "OK"}

    return app


__all__ = ["create_app"]
