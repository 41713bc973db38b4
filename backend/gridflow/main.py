"""FastAPI application with CORS, lifespan, and routes."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .config import settings
from .api.routes import router
from .api.websocket import manager
from .engine.session import active_sessions, get_session
from .engine.store import InMemoryGraphStore
from .engine.types import create_port_types
from .log import configure_logging
from .nodes import create_registry
from .packs.client import RunnerClient
from .packs.manifest import discover_packs
from .packs.remote import register_pack


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    registry = create_registry()
    client = RunnerClient(settings.runner_url, timeout=settings.runner_timeout)
    for pack in discover_packs(settings.custom_nodes_dir):
        register_pack(registry, pack, client)
    app.state.registry = registry
    app.state.types = create_port_types()
    app.state.store = InMemoryGraphStore(history_limit=settings.history_limit)
    logger.info(f"{settings.app_name} ready with {len(registry)} node types")
    yield


app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.websocket("/ws/runs/{session_id}")
async def websocket_endpoint(websocket: WebSocket, session_id: str):
    """Stream run events for ``session_id``.

    The client may send ``{"type": "cancel", "execution_id": ...}`` to cancel a
    run; without an id, every active run of the session is cancelled.
    """
    await manager.connect(session_id, websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "cancel":
                _cancel_from_socket(session_id, message.get("execution_id"))
    except WebSocketDisconnect:
        manager.disconnect(session_id, websocket)


def _cancel_from_socket(session_id: str, execution_id: str | None):
    if execution_id:
        session = get_session(execution_id)
        targets = [session] if session and session.session_id == session_id else []
    else:
        targets = [s for s in active_sessions() if s.session_id == session_id]
    for session in targets:
        logger.info(f"Cancel requested over websocket for run {session.execution_id}")
        session.token.cancel("Cancelled by user")
