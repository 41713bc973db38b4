"""Shared test fixtures for GridFlow backend tests."""
import asyncio
import sys
from pathlib import Path

import pytest

# Ensure gridflow package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from gridflow.engine.cancellation import CancellationToken
from gridflow.engine.context import ExecutionContext
from gridflow.engine.executor import GraphExecutor
from gridflow.engine.graph import EXEC, Graph, Wire
from gridflow.engine.store import InMemoryGraphStore
from gridflow.engine.types import create_port_types
from gridflow.nodes import create_registry
from gridflow.nodes.base import FAIL_FAST, NodeBehavior, data_in, data_out, exec_in, exec_out


class SpyNode(NodeBehavior):
    """Passes ``in`` through to ``out`` and records that it ran."""

    TYPE = "test.spy"
    TITLE = "Spy"
    calls: list[str] = []

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in(), data_in("in", "any")]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("out", "any")]

    async def run(self, ctx):
        SpyNode.calls.append(ctx.node_id)
        return {"out": ctx.inputs.get("in")}


class NumberNode(NodeBehavior):
    TYPE = "test.number"
    TITLE = "Number"

    @classmethod
    def INPUT_TYPES(cls):
        return []

    @classmethod
    def RETURN_TYPES(cls):
        return [data_out("value", "number")]

    async def run(self, ctx):
        return {"value": ctx.state.get("value", 0)}


class BoolNode(NodeBehavior):
    TYPE = "test.bool"
    TITLE = "Bool"

    @classmethod
    def INPUT_TYPES(cls):
        return []

    @classmethod
    def RETURN_TYPES(cls):
        return [data_out("value", "boolean")]

    async def run(self, ctx):
        return {"value": bool(ctx.state.get("value", True))}


class StringSinkNode(NodeBehavior):
    TYPE = "test.string_sink"
    TITLE = "String Sink"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in(), data_in("text", "string")]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("out", "string")]

    async def run(self, ctx):
        return {"out": ctx.inputs.get("text")}


class FailNode(NodeBehavior):
    TYPE = "test.fail"
    TITLE = "Fail"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("out", "any")]

    async def run(self, ctx):
        raise RuntimeError("boom")


class FailFastNode(FailNode):
    TYPE = "test.fail_fast"
    TITLE = "Fail Fast"
    ON_ERROR = FAIL_FAST


class CancelNode(NodeBehavior):
    """Cancels the run's token from inside its own run."""

    TYPE = "test.cancel"
    TITLE = "Cancel"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("done", "boolean")]

    async def run(self, ctx):
        ctx.signal.cancel("stop requested")
        return {"done": True}


class TaskCancelNode(NodeBehavior):
    """Cancels the asyncio task running the graph, then returns normally."""

    TYPE = "test.task_cancel"
    TITLE = "Task Cancel"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out()]

    async def run(self, ctx):
        asyncio.current_task().cancel()


class SlowNode(NodeBehavior):
    TYPE = "test.slow"
    TITLE = "Slow"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out()]

    async def run(self, ctx):
        await ctx.signal.sleep(ctx.state.get("seconds", 10))


TEST_NODES = [
    SpyNode, NumberNode, BoolNode, StringSinkNode, FailNode, FailFastNode,
    CancelNode, TaskCancelNode, SlowNode,
]


class GraphBuilder:
    """Small helper for assembling graphs from registered definitions."""

    def __init__(self, registry):
        self.registry = registry
        self.graph = Graph()

    def node(self, node_id, node_type, title=None, **state):
        self.graph.nodes[node_id] = self.registry.get(node_type).instantiate(node_id, title, state)
        return self

    def exec(self, wire_id, source, target, source_port="exec_out", target_port="exec_in"):
        self.graph.wires.append(Wire(wire_id, EXEC, source, source_port, target, target_port))
        return self

    def data(self, wire_id, source, source_port, target, target_port):
        self.graph.wires.append(Wire(wire_id, "data", source, source_port, target, target_port))
        return self


@pytest.fixture(autouse=True)
def reset_spy():
    SpyNode.calls.clear()
    yield
    SpyNode.calls.clear()


@pytest.fixture
def registry():
    """Built-in nodes plus the test-only nodes above."""
    reg = create_registry()
    for node_cls in TEST_NODES:
        reg.register()(node_cls)
    return reg


@pytest.fixture
def types():
    return create_port_types()


@pytest.fixture
def builder(registry):
    return GraphBuilder(registry)


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def events():
    return []


@pytest.fixture
def executor(registry, types, store, events):
    ex = GraphExecutor(registry, types, store=store)
    ex.subscribe(events.append)
    return ex


@pytest.fixture
def make_ctx():
    """Build an ExecutionContext for calling a node's run() directly."""
    def _make(inputs=None, state=None, signal=None, logs=None):
        lines = [] if logs is None else logs
        return ExecutionContext(
            node_id="n",
            title="Node",
            inputs=inputs or {},
            state=state or {},
            signal=signal or CancellationToken(),
            cache={},
            on_log=lines.append,
        )
    return _make
