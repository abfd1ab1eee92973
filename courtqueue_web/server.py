"""FastAPI application exposing the check-in queue.

Run with ``uvicorn courtqueue_web.server:app``.  The default app keeps its
data in a :class:`~courtqueue.store.MemoryStore`; pass another store to
:func:`create_app` to persist elsewhere.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from courtqueue import MemoryStore, QueueService, SessionConfig, Store
from courtqueue.entities import MoveCommand
from courtqueue.errors import (
    InsufficientPlayersError,
    InvalidStateError,
    NotFoundError,
    QueueError,
    SessionNotFoundError,
    ValidationError,
)

from . import config

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (SessionNotFoundError, 404),
    (InsufficientPlayersError, 409),
    (InvalidStateError, 409),
)


def _status_for(exc: QueueError) -> int:
    for error_type, status in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 400


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    return value


def create_app(store: Optional[Store] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    app = FastAPI(title=config.APP_TITLE, version=config.APP_VERSION)
    app.state.service = QueueService(store or MemoryStore())

    @app.exception_handler(QueueError)
    async def _queue_error(request: Request, exc: QueueError) -> JSONResponse:
        status = _status_for(exc)
        logger.info("%s %s -> %s: %s", request.method, request.url.path, status, exc.message)
        return JSONResponse(exc.serialise(), status_code=status)

    def get_service(request: Request) -> QueueService:
        return request.app.state.service

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        """Simple readiness probe for container orchestration."""

        return {"status": "ok"}

    @app.post("/api/sessions")
    async def open_session(
        payload: Optional[Dict[str, Any]] = Body(None),
        service: QueueService = Depends(get_service),
    ) -> Dict[str, Any]:
        session_config = SessionConfig.from_payload(payload)
        try:
            session_config.validate()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        session = await service.open_session(session_config)
        return session.serialise()

    @app.get("/api/sessions/active")
    async def active_session(service: QueueService = Depends(get_service)) -> Dict[str, Any]:
        session = await service.active_session()
        return session.serialise()

    @app.delete("/api/sessions/{session_id}")
    async def close_session(session_id: int, service: QueueService = Depends(get_service)) -> Dict[str, Any]:
        await service.close_session(session_id)
        return {"id": session_id, "active": False}

    @app.post("/api/players")
    async def register_player(
        payload: Dict[str, Any] = Body(...),
        service: QueueService = Depends(get_service),
    ) -> Dict[str, Any]:
        name = payload.get("displayName")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("displayName is required")
        birth_year = payload.get("birthYear")
        if birth_year is not None:
            birth_year = _require_int(payload, "birthYear")
        player = await service.register_player(
            name.strip(), birth_year=birth_year, auto_rejoin=bool(payload.get("autoRejoin", False))
        )
        return player.serialise()

    @app.post("/api/sessions/{session_id}/checkins")
    async def check_in(
        session_id: int,
        payload: Dict[str, Any] = Body(...),
        service: QueueService = Depends(get_service),
    ) -> Dict[str, Any]:
        entry = await service.check_in(session_id, _require_int(payload, "playerId"))
        return entry.serialise()

    @app.get("/api/sessions/{session_id}/snapshot")
    async def snapshot(session_id: int, service: QueueService = Depends(get_service)) -> Dict[str, Any]:
        populated = await service.populate_game(session_id)
        return populated.serialise()

    @app.post("/api/sessions/{session_id}/moves")
    async def move_player(
        session_id: int,
        payload: Dict[str, Any] = Body(...),
        service: QueueService = Depends(get_service),
    ) -> Dict[str, Any]:
        command = MoveCommand.from_payload(payload)
        result = await service.apply_move(session_id, command.player_id, command.move_type)
        return result.serialise()

    @app.post("/api/sessions/{session_id}/games")
    async def create_game(session_id: int, service: QueueService = Depends(get_service)) -> Dict[str, Any]:
        game = await service.create_game(session_id)
        return game.serialise()

    @app.patch("/api/games/{game_id}/score")
    async def record_score(
        game_id: int,
        payload: Dict[str, Any] = Body(...),
        service: QueueService = Depends(get_service),
    ) -> Dict[str, Any]:
        outcome = await service.resolve_promotion(
            game_id, _require_int(payload, "team1Score"), _require_int(payload, "team2Score")
        )
        return outcome.serialise()

    @app.get("/api/sessions/{session_id}/log")
    async def session_log(session_id: int, service: QueueService = Depends(get_service)) -> List[Dict[str, Any]]:
        return await service.session_log(session_id)

    return app


app = create_app()


__all__ = ["app", "create_app"]
