"""Run events, per-node status and listener fan-out."""
import asyncio
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from loguru import logger


class EventType(str, Enum):
    RUN_STARTED = "run-started"
    NODE_STARTED = "node-started"
    NODE_LOG = "node-log"
    NODE_DONE = "node-done"
    NODE_ERROR = "node-error"
    RUN_ABORTED = "run-aborted"
    RUN_ENDED = "run-ended"


class Status(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


@dataclass
class RunEvent:
    type: EventType
    run_id: str
    node_id: str | None = None
    outputs: dict[str, Any] | None = None
    message: str | None = None
    error_kind: str | None = None
    status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"type": self.type.value, "run_id": self.run_id}
        for key in ("node_id", "outputs", "message", "error_kind", "status"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class NodeStatus:
    status: Status = Status.IDLE
    last_error: str | None = None
    error_kind: str | None = None
    logs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "last_error": self.last_error,
            "error_kind": self.error_kind,
            "logs": list(self.logs),
        }


Listener = Callable[[RunEvent], Any]


class EventBus:
    """Delivers events to listeners without ever letting one affect the run.

    Plain callables are invoked in order. A listener that returns an awaitable
    has it scheduled as a task and is not waited on. Exceptions from either
    kind are logged and dropped.
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def publish(self, event: RunEvent) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
            except Exception:
                logger.exception(f"Listener {listener!r} failed on {event.type.value}")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                task.add_done_callback(_log_listener_failure)


def _log_listener_failure(task: asyncio.Future):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).warning("Async event listener failed")
