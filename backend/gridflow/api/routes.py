"""REST API routes."""
import asyncio
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from loguru import logger

from ..config import settings
from ..engine.executor import GraphExecutor, RunResult
from ..engine.graph import Graph, Node, Port, Wire
from ..engine.session import active_sessions, create_session, get_session, remove_session
from ..engine.validator import validate_graph, wire_errors
from ..models.schemas import (
    ExecuteRequest, ExecuteResponse, GraphSchema, PortSchema,
    RunnerRequest, ValidateResponse, WireCheckRequest, WireCheckResponse,
)
from ..packs.manifest import discover_packs
from ..packs.runner import run_pack
from .websocket import manager

router = APIRouter(prefix="/api")

# Finished runs (capped at settings.max_results to prevent unbounded growth)
_results: dict[str, Any] = {}


def _port(schema: PortSchema) -> Port:
    return Port(**schema.model_dump())


def _schema_to_graph(schema: GraphSchema) -> Graph:
    nodes = {
        n.id: Node(
            id=n.id, type=n.type, title=n.title,
            inputs=[_port(p) for p in n.inputs],
            outputs=[_port(p) for p in n.outputs],
            state=dict(n.state),
        )
        for n in schema.nodes
    }
    wires = [
        Wire(
            id=w.id, kind=w.kind or "data",
            source_node=w.source.node_id, source_port=w.source.port_id,
            target_node=w.target.node_id, target_port=w.target.port_id,
        )
        for w in schema.wires
    ]
    return Graph(nodes=nodes, wires=wires, name=schema.name)


def _port_dict(port: Port) -> dict[str, Any]:
    return {
        "id": port.id,
        "name": port.name,
        "direction": port.direction,
        "dataType": port.data_type,
        "multi": port.multi,
        "default": port.default,
    }


@router.get("/nodes")
async def list_nodes(request: Request):
    """Return all registered node definitions."""
    defs = request.app.state.registry.all_definitions()
    result = {}
    for name, defn in defs.items():
        result[name] = {
            "type": defn.node_type,
            "title": defn.title,
            "category": defn.category,
            "description": defn.description,
            "inputs": [_port_dict(p) for p in defn.inputs],
            "outputs": [_port_dict(p) for p in defn.outputs],
            "onError": defn.on_error,
            "isStart": defn.is_start,
            "pack": defn.pack,
        }
    return result


@router.post("/validate", response_model=ValidateResponse)
async def validate(schema: GraphSchema, request: Request):
    state = request.app.state
    graph = _schema_to_graph(schema)
    state.registry.fill_ports(graph)
    errors = validate_graph(graph, state.registry, state.types)
    return ValidateResponse(valid=not errors, errors=errors)


@router.post("/wires/check", response_model=WireCheckResponse)
async def check_wire(body: WireCheckRequest, request: Request):
    """Report whether a proposed wire may be created, and its kind."""
    graph = _schema_to_graph(body.graph)
    request.app.state.registry.fill_ports(graph)
    errors = wire_errors(
        graph,
        body.source.node_id, body.source.port_id,
        body.target.node_id, body.target.port_id,
        request.app.state.types, body.kind,
    )
    if errors:
        return WireCheckResponse(ok=False, errors=errors)
    port = graph.nodes[body.source.node_id].get_output(body.source.port_id)
    return WireCheckResponse(ok=True, kind="exec" if port.is_exec else "data")


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool, type(None))):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(type(value).__name__)


def _serialize_run_result(result: RunResult) -> dict[str, Any]:
    """Convert a run result to JSON-serializable format."""
    return {
        "run_id": result.run_id,
        "state": result.state.value,
        "order": result.order,
        "values": _jsonable(result.values),
        "statuses": {nid: s.to_dict() for nid, s in result.statuses.items()},
        "state_changes": _jsonable(result.state_changes),
        "logs": result.logs,
        "error": result.error,
    }


def _remember(execution_id: str, serialized: dict[str, Any]):
    # Evict oldest entries if at capacity
    while len(_results) >= settings.max_results:
        _results.pop(next(iter(_results)))
    _results[execution_id] = serialized


@router.post("/execute", response_model=ExecuteResponse)
async def execute(body: ExecuteRequest, request: Request):
    """Run a graph.

    Returns immediately with execution_id. The run happens in a background
    task; node and run events are delivered via WebSocket.
    """
    if active_sessions():
        raise HTTPException(status_code=409, detail="A run is already in progress")

    state = request.app.state
    state.store.set_graph(_schema_to_graph(body.graph))

    session_id = body.session_id or str(uuid.uuid4())
    execution_id = str(uuid.uuid4())
    session = create_session(execution_id, session_id)

    executor = GraphExecutor(
        state.registry, state.types, store=state.store, log_tail=settings.log_tail,
    )
    stream = manager.stream(session_id)
    executor.subscribe(stream)

    async def _run_graph():
        try:
            result = await executor.run(signal=session.token, run_id=execution_id)
            _remember(execution_id, _serialize_run_result(result))
        except Exception as e:
            logger.warning(f"Run {execution_id} failed: {e}")
            if executor.last_result is not None:
                _remember(execution_id, _serialize_run_result(executor.last_result))
            stream.send({
                "type": "execution_error",
                "run_id": execution_id,
                "error": str(e),
            })
        finally:
            remove_session(execution_id)
            await stream.aclose()

    session.task = asyncio.create_task(_run_graph())

    return ExecuteResponse(execution_id=execution_id, session_id=session_id, status="started")


@router.post("/execute/{execution_id}/cancel")
async def cancel_run(execution_id: str):
    session = get_session(execution_id)
    if not session:
        raise HTTPException(status_code=404, detail="Execution not found or already completed")
    session.token.cancel("Cancelled by user")
    return {"status": "cancelling"}


@router.get("/results/{execution_id}")
async def get_results(execution_id: str):
    if execution_id not in _results:
        raise HTTPException(status_code=404, detail="Execution not found")
    return _results[execution_id]


@router.get("/custom-nodes")
async def list_custom_nodes():
    """List external node packs found under the custom nodes directory."""
    packs = discover_packs(settings.custom_nodes_dir)
    return {"packs": [p.model_dump() for p in packs]}


@router.post("/custom-nodes/run")
async def run_custom_node(body: RunnerRequest):
    """Run one node of an external pack through its runner.py."""
    return await run_pack(
        settings.custom_nodes_dir,
        body.slug,
        body.payload,
        settings.python_candidates,
        timeout=settings.runner_timeout,
    )
