"""Execution engine: schedule a graph and run its nodes one at a time."""
import asyncio
import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from ..nodes.base import NodeDefinition
from ..nodes.registry import NodeRegistry
from .cache import ValueCache
from .cancellation import CancellationToken
from .context import ExecutionContext, NodeResult
from .errors import Aborted, CycleDetected, EngineError, MissingDefinition, NodeRuntimeError
from .events import EventBus, EventType, Listener, NodeStatus, RunEvent, Status
from .graph import Graph, GraphIndex, Node
from .inputs import resolve_inputs
from .schedule import compute_schedule
from .store import GraphStore
from .types import PortTypes, create_port_types


class RunState(str, Enum):
    IDLE = "idle"
    SCHEDULING = "scheduling"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class RunResult:
    run_id: str
    state: RunState
    order: list[str] = field(default_factory=list)
    values: dict[str, dict[str, Any]] = field(default_factory=dict)
    statuses: dict[str, NodeStatus] = field(default_factory=dict)
    state_changes: dict[str, dict[str, Any]] = field(default_factory=dict)
    logs: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def executed(self) -> list[str]:
        return [nid for nid in self.order if self.statuses[nid].status != Status.IDLE]


class GraphExecutor:
    """Runs one graph at a time.

    The registry and port types are passed in; the store is optional and only
    needed for reading the graph and writing node state back.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        types: PortTypes | None = None,
        store: GraphStore | None = None,
        bus: EventBus | None = None,
        log_tail: int = 200,
    ):
        self.registry = registry
        self.types = types or create_port_types()
        self.store = store
        self.bus = bus or EventBus()
        self.log_tail = log_tail
        self.state = RunState.IDLE
        self.values = ValueCache()
        self.statuses: dict[str, NodeStatus] = {}
        self._result: RunResult | None = None

    def subscribe(self, listener: Listener):
        return self.bus.subscribe(listener)

    @property
    def last_result(self) -> RunResult | None:
        return self._result

    def _publish(self, type_: EventType, **kwargs):
        self.bus.publish(RunEvent(type=type_, run_id=self._result.run_id, **kwargs))

    def _log(self, line: str):
        self._result.logs.append(line)

    def _node_log(self, node_id: str, line: str):
        logs = self.statuses[node_id].logs
        logs.append(line)
        del logs[:-self.log_tail]

    def _finish(self, state: RunState, error: str | None = None):
        self.state = state
        self._result.state = state
        self._result.error = error
        self._result.values = self.values.snapshot()

    def _is_start(self, graph: Graph):
        def check(node_id: str) -> bool:
            definition = self.registry.lookup(graph.nodes[node_id].type)
            return definition is not None and definition.is_start
        return check

    async def run(
        self,
        graph: Graph | None = None,
        signal: CancellationToken | None = None,
        run_id: str | None = None,
    ) -> RunResult:
        """Execute ``graph`` (or the store's current graph) and return the result.

        Raises CycleDetected before any node runs if the graph cannot be
        scheduled, and re-raises the error of a fail-fast node.
        """
        if self.state in (RunState.SCHEDULING, RunState.RUNNING):
            raise RuntimeError("A run is already in progress")
        if graph is None:
            if self.store is None:
                raise ValueError("No graph given and no store to read one from")
            graph = self.store.get_graph()
        graph = graph.copy()
        self.registry.fill_ports(graph)
        signal = signal or CancellationToken()

        self.values.clear()
        self.statuses = {nid: NodeStatus() for nid in graph.nodes}
        self._result = RunResult(
            run_id=run_id or str(uuid.uuid4()),
            state=RunState.SCHEDULING,
            statuses=self.statuses,
        )
        self.state = RunState.SCHEDULING
        run_cache: dict[str, Any] = {}

        logger.info(f"Run {self._result.run_id} started ({len(graph.nodes)} nodes)")
        self._log("Run start")
        self._publish(EventType.RUN_STARTED)

        index = GraphIndex(graph)
        try:
            order = compute_schedule(graph, index, self._is_start(graph))
        except CycleDetected as e:
            logger.warning(str(e))
            self._log(f"Run failed: {e}")
            self._finish(RunState.FAILED, str(e))
            self._publish(EventType.RUN_ENDED, status=RunState.FAILED.value,
                          message=str(e), error_kind=e.kind)
            raise
        self._result.order = order

        self.state = RunState.RUNNING
        try:
            for node_id in order:
                if signal.cancelled:
                    return self._abort(signal)
                try:
                    await self._execute_node(graph.nodes[node_id], index, signal, run_cache)
                except Exception as e:
                    if isinstance(e, Aborted) and signal.cancelled:
                        return self._abort(signal)
                    logger.exception(f"Fail-fast node {node_id} aborted the run")
                    self._log(f"Run failed: {e}")
                    self._finish(RunState.FAILED, str(e))
                    self._publish(EventType.RUN_ENDED, status=RunState.FAILED.value,
                                  node_id=node_id, message=str(e))
                    raise
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            signal.cancel("Task cancelled")
            self._abort(signal)
            raise

        self._log("Run end")
        self._finish(RunState.COMPLETED)
        logger.info(f"Run {self._result.run_id} completed")
        self._publish(EventType.RUN_ENDED, status=RunState.COMPLETED.value)
        return self._result

    def _abort(self, signal: CancellationToken) -> RunResult:
        logger.info(f"Run {self._result.run_id} aborted: {signal.reason}")
        self._log(f"Run aborted: {signal.reason}")
        self._finish(RunState.ABORTED, signal.reason)
        self._publish(EventType.RUN_ABORTED, message=signal.reason)
        return self._result

    def _fail_node(self, node: Node, error: Exception, kind: str):
        status = self.statuses[node.id]
        status.status = Status.ERROR
        status.last_error = str(error)
        status.error_kind = kind
        line = f"failed: {node.title or node.id}: {error}"
        self._node_log(node.id, line)
        self._log(line)
        self._publish(EventType.NODE_ERROR, node_id=node.id, message=str(error), error_kind=kind)

    async def _execute_node(
        self,
        node: Node,
        index: GraphIndex,
        signal: CancellationToken,
        run_cache: dict[str, Any],
    ):
        definition = self.registry.lookup(node.type)
        if definition is None:
            logger.warning(f"Node {node.id}: unknown type {node.type}, skipping")
            self._fail_node(node, MissingDefinition(node.id, node.type), MissingDefinition.kind)
            return

        self.statuses[node.id].status = Status.RUNNING
        self._publish(EventType.NODE_STARTED, node_id=node.id)

        def on_log(line: str):
            self._node_log(node.id, line)
            self._publish(EventType.NODE_LOG, node_id=node.id, message=line)

        try:
            inputs = resolve_inputs(node, index, self.values, self.types)
            ctx = ExecutionContext(
                node_id=node.id,
                title=node.title,
                inputs=inputs,
                state=copy.deepcopy(node.state),
                signal=signal,
                cache=run_cache,
                on_log=on_log,
            )
            result = await definition.create().run(ctx)
            outputs, new_state = _unpack(result)
        except Aborted:
            if not signal.cancelled:
                self._fail_node(node, NodeRuntimeError(node.id, "Aborted"), NodeRuntimeError.kind)
                if definition.fail_fast:
                    raise
                return
            self.statuses[node.id].status = Status.IDLE
            self._node_log(node.id, "aborted")
            raise
        except Exception as e:
            kind = e.kind if isinstance(e, EngineError) else NodeRuntimeError.kind
            self._fail_node(node, e, kind)
            if definition.fail_fast:
                raise
            return

        merged = {**ctx.partial_outputs, **outputs}
        self.values.put(node.id, merged)
        self.statuses[node.id].status = Status.DONE
        line = f"done: {node.title or node.id}"
        self._node_log(node.id, line)
        self._log(line)
        self._publish(EventType.NODE_DONE, node_id=node.id, outputs=dict(merged))

        if new_state is not None:
            self._write_state(node, definition, new_state)

    def _write_state(self, node: Node, definition: NodeDefinition, new_state: dict[str, Any]):
        self._result.state_changes[node.id] = copy.deepcopy(new_state)
        if self.store is None:
            return
        node_id = node.id
        # Graphs passed to run() directly may hold nodes the store has never seen.
        if node_id not in self.store.get_graph().nodes:
            return

        def mutate(g: Graph):
            g.nodes[node_id].state = copy.deepcopy(new_state)

        try:
            self.store.transact(mutate, f"State of {node.title or definition.title}")
        except Exception as e:
            logger.exception(f"Node {node_id}: state writeback failed")
            self.statuses[node_id].last_error = f"State writeback failed: {e}"
            self._node_log(node_id, f"state writeback failed: {e}")
            self._publish(EventType.NODE_LOG, node_id=node_id,
                          message=f"state writeback failed: {e}")


def _unpack(result: Any) -> tuple[dict[str, Any], dict[str, Any] | None]:
    if result is None:
        return {}, None
    if isinstance(result, NodeResult):
        return dict(result.outputs), result.state
    if isinstance(result, dict):
        return dict(result), None
    raise TypeError(
        f"run() must return a mapping, NodeResult or None, got {type(result).__name__}"
    )
