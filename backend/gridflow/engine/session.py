"""Run session manager: tracks active runs so they can be cancelled."""
import asyncio

from .cancellation import CancellationToken


class RunSession:
    def __init__(self, execution_id: str, session_id: str):
        self.execution_id = execution_id
        self.session_id = session_id
        self.token = CancellationToken()
        self.task: asyncio.Task | None = None


_sessions: dict[str, RunSession] = {}


def create_session(execution_id: str, session_id: str) -> RunSession:
    session = RunSession(execution_id, session_id)
    _sessions[execution_id] = session
    return session


def get_session(execution_id: str) -> RunSession | None:
    return _sessions.get(execution_id)


def remove_session(execution_id: str) -> None:
    _sessions.pop(execution_id, None)


def active_sessions() -> list[RunSession]:
    return list(_sessions.values())
