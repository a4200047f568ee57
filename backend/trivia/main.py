import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from .errors import GameError, SessionNotFound
from .events import BroadcastHub, format_sse
from .game import GameEngine
from .generators import build_question_source
from .logger import setup_logging
from .questions import QuestionSource
from .reaper import SessionReaper
from .schemas import (
    CreateGameIn,
    CreateGameOut,
    JoinGameIn,
    JoinGameOut,
    PhaseIn,
    SessionOut,
    StartGameIn,
    VoteIn,
)
from .settings import Settings, get_settings
from .store import SessionStore

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "not_found": 404,
    "invalid_state": 409,
    "invalid_input": 400,
    "resource_exhausted": 409,
    "upstream_unavailable": 503,
}


def _http_error(action: str, exc: GameError) -> HTTPException:
    logger.warning("[%s] %s", action, exc.message)
    return HTTPException(
        status_code=STATUS_BY_KIND.get(exc.kind, 400),
        detail={"success": False, "error": exc.message, "kind": exc.kind},
    )


async def event_stream(
    engine: GameEngine,
    hub: BroadcastHub,
    session_id: str,
    player_id: str,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """SSE frames for one player. The player counts as connected only while this runs."""
    subscription = None
    try:
        await engine.update_player_connection(session_id, player_id, True)
        subscription = await hub.subscribe(session_id)
        async for event in subscription:
            if is_disconnected is not None and await is_disconnected():
                break
            yield format_sse(event)
    finally:
        if subscription is not None:
            await hub.unsubscribe(subscription)
        await engine.update_player_connection(session_id, player_id, False)


def get_engine(request: Request) -> GameEngine:
    return request.app.state.engine


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


def create_app(settings: Optional[Settings] = None, question_source: Optional[QuestionSource] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    store = SessionStore()
    engine = GameEngine(
        store,
        question_source or build_question_source(settings),
        total_rounds=settings.TOTAL_ROUNDS,
    )
    hub = BroadcastHub(store, settings.HEARTBEAT_INTERVAL_SECONDS, settings.SUBSCRIBER_QUEUE_SIZE)
    reaper = SessionReaper(
        store,
        hub,
        interval=settings.REAPER_INTERVAL_SECONDS,
        max_inactive=settings.SESSION_MAX_INACTIVE_SECONDS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        reaper.start()
        yield
        await reaper.stop()
        await hub.close()

    app = FastAPI(title="Confident Trivia API", lifespan=lifespan)
    app.state.store = store
    app.state.engine = engine
    app.state.hub = hub
    app.state.reaper = reaper

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_origin_regex=settings.CORS_ORIGIN_REGEX or None,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/game/create", response_model=CreateGameOut)
    async def create_game(
        payload: CreateGameIn,
        engine: GameEngine = Depends(get_engine),
        hub: BroadcastHub = Depends(get_hub),
    ):
        try:
            created = await engine.create_session(payload.host_name)
        except GameError as exc:
            raise _http_error("CREATE", exc) from exc

        await hub.publish(created.session.id, created.session, "game-created")
        return CreateGameOut(session_id=created.session.id, code=created.code, host_id=created.host_id)

    @app.post("/api/game/join", response_model=JoinGameOut)
    async def join_game(
        payload: JoinGameIn,
        engine: GameEngine = Depends(get_engine),
        hub: BroadcastHub = Depends(get_hub),
    ):
        try:
            joined = await engine.join_session(payload.code, payload.player_name)
        except GameError as exc:
            raise _http_error("JOIN", exc) from exc

        await hub.publish(joined.session.id, joined.session, "player-joined")
        return JoinGameOut(session_id=joined.session.id, player_id=joined.player_id)

    @app.post("/api/game/start", response_model=SessionOut)
    async def start_game(
        payload: StartGameIn,
        engine: GameEngine = Depends(get_engine),
        hub: BroadcastHub = Depends(get_hub),
    ):
        try:
            session = await engine.start_game(payload.session_id, payload.categories, payload.difficulties)
        except GameError as exc:
            raise _http_error("START", exc) from exc

        await hub.publish(session.id, session, "game-started")
        return SessionOut(session=session)

    @app.post("/api/game/phase", response_model=SessionOut)
    async def change_phase(
        payload: PhaseIn,
        engine: GameEngine = Depends(get_engine),
        hub: BroadcastHub = Depends(get_hub),
    ):
        try:
            session = await engine.request_phase(payload.session_id, payload.phase.strip().lower())
        except GameError as exc:
            raise _http_error("PHASE", exc) from exc

        await hub.publish(session.id, session, f"phase-{session.current_phase.value}")
        return SessionOut(session=session)

    @app.post("/api/game/vote", response_model=SessionOut)
    async def vote(
        payload: VoteIn,
        engine: GameEngine = Depends(get_engine),
        hub: BroadcastHub = Depends(get_hub),
    ):
        try:
            session = await engine.submit_vote(payload.session_id, payload.player_id, payload.answer, payload.token)
        except GameError as exc:
            raise _http_error("VOTE", exc) from exc

        await hub.publish(session.id, session, "vote-submitted")
        return SessionOut(session=session)

    @app.get("/api/game/events")
    async def events(
        request: Request,
        session_id: Optional[str] = Query(default=None, alias="sessionId"),
        player_id: Optional[str] = Query(default=None, alias="playerId"),
        engine: GameEngine = Depends(get_engine),
        hub: BroadcastHub = Depends(get_hub),
    ):
        if not session_id or not player_id:
            raise HTTPException(status_code=400, detail="Missing sessionId or playerId")

        return StreamingResponse(
            event_stream(engine, hub, session_id, player_id, request.is_disconnected),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/api/game/code/{code}", response_model=SessionOut)
    async def get_session_by_code(code: str, engine: GameEngine = Depends(get_engine)):
        try:
            session = await engine.get_session_by_code(code)
        except GameError as exc:
            raise _http_error("LOOKUP", exc) from exc
        return SessionOut(session=session)

    @app.get("/api/game/{session_id}", response_model=SessionOut)
    async def get_session(session_id: str, engine: GameEngine = Depends(get_engine)):
        try:
            session = await engine.get_session(session_id)
        except GameError as exc:
            raise _http_error("LOOKUP", exc) from exc
        return SessionOut(session=session)

    @app.delete("/api/game/{session_id}")
    async def end_game(
        session_id: str,
        engine: GameEngine = Depends(get_engine),
        hub: BroadcastHub = Depends(get_hub),
    ):
        if not await engine.end_session(session_id):
            raise _http_error("END", SessionNotFound(session_id))
        await hub.drop_session(session_id)
        return {"success": True}

    return app


app = create_app()
