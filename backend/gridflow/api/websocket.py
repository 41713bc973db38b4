"""WebSocket fan-out of run events to editor sessions."""
import asyncio
import json
from typing import Any

from fastapi import WebSocket
from loguru import logger

from ..engine.events import RunEvent


class ConnectionManager:
    """Sockets subscribed to each editor session.

    A socket that fails a send is dropped from its session; the run that
    produced the event is never affected.
    """

    def __init__(self):
        self._sessions: dict[str, set[WebSocket]] = {}

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        self._sessions.setdefault(session_id, set()).add(websocket)

    def disconnect(self, session_id: str, websocket: WebSocket):
        sockets = self._sessions.get(session_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._sessions[session_id]

    def subscribers(self, session_id: str) -> int:
        return len(self._sessions.get(session_id, ()))

    async def publish(self, session_id: str, data: dict[str, Any]):
        sockets = list(self._sessions.get(session_id, ()))
        if not sockets:
            return
        message = json.dumps(data, default=str)
        for ws in sockets:
            try:
                await ws.send_text(message)
            except Exception as e:
                logger.debug(f"Dropping socket of session {session_id}: {e}")
                self.disconnect(session_id, ws)

    def stream(self, session_id: str) -> "SessionStream":
        return SessionStream(self, session_id)


class SessionStream:
    """Engine listener that forwards events to one session in publish order.

    Calls are non-blocking: events are queued and a single pump task sends
    them, so a slow socket never holds up the run.
    """

    def __init__(self, manager: ConnectionManager, session_id: str):
        self.manager = manager
        self.session_id = session_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task = asyncio.create_task(self._pump())

    def __call__(self, event: RunEvent):
        self._queue.put_nowait(event.to_dict())

    def send(self, data: dict[str, Any]):
        self._queue.put_nowait(data)

    async def _pump(self):
        while True:
            data = await self._queue.get()
            if data is None:
                return
            await self.manager.publish(self.session_id, data)

    async def aclose(self):
        self._queue.put_nowait(None)
        await self._task


manager = ConnectionManager()
