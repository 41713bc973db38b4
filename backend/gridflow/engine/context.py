"""The surface a node implementation sees while it runs."""
from dataclasses import dataclass, field
from typing import Any, Callable

from .cancellation import CancellationToken


@dataclass
class NodeResult:
    """Explicit return value for nodes that also change their persistent state.

    ``state`` replaces the node's persistent state and is written back as one
    undoable store transaction; leave it ``None`` to keep the state untouched.
    """

    outputs: dict[str, Any] = field(default_factory=dict)
    state: dict[str, Any] | None = None


class ExecutionContext:
    """Per-node execution context.

    Attributes:
        inputs: resolved data inputs by port id
        state: isolated copy of the node's persistent state
        signal: the run's cancellation token
        cache: scratch mapping shared by every node of the run
    """

    def __init__(
        self,
        node_id: str,
        title: str,
        inputs: dict[str, Any],
        state: dict[str, Any],
        signal: CancellationToken,
        cache: dict[str, Any],
        on_log: Callable[[str], None],
    ):
        self.node_id = node_id
        self.title = title
        self.inputs = inputs
        self.state = state
        self.signal = signal
        self.cache = cache
        self.partial_outputs: dict[str, Any] = {}
        self._on_log = on_log

    def emit(self, payload: dict[str, Any] | str) -> None:
        """Publish partial outputs (a mapping) or a log line (anything else)."""
        if isinstance(payload, dict):
            self.partial_outputs.update(payload)
        else:
            self._on_log(str(payload))

    def log(self, message: Any) -> None:
        self._on_log(str(message))
