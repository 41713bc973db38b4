"""Wiring rules and whole-graph validation."""
from collections import deque

from ..nodes.registry import NodeRegistry
from .errors import CycleDetected, WiringError
from .graph import EXEC, Graph, GraphIndex
from .schedule import compute_schedule
from .types import PortTypes


def exec_reaches(graph: Graph, start: str, goal: str) -> bool:
    """True if ``goal`` is reachable from ``start`` along exec wires."""
    if start == goal:
        return True
    adj: dict[str, list[str]] = {}
    for wire in graph.wires:
        if wire.kind == EXEC:
            adj.setdefault(wire.source_node, []).append(wire.target_node)
    seen = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for succ in adj.get(current, ()):
            if succ == goal:
                return True
            if succ not in seen:
                seen.add(succ)
                queue.append(succ)
    return False


def wire_errors(
    graph: Graph,
    source_node: str,
    source_port: str,
    target_node: str,
    target_port: str,
    types: PortTypes,
    kind: str | None = None,
) -> list[str]:
    """Reasons why a new wire between the given ports would be illegal."""
    src = graph.nodes.get(source_node)
    tgt = graph.nodes.get(target_node)
    if src is None or tgt is None:
        return ["Wire references a missing node"]

    out_port = src.get_output(source_port)
    in_port = tgt.get_input(target_port)
    if out_port is None or out_port.direction != "out":
        return [f"'{source_port}' is not an output of {src.title or src.id}"]
    if in_port is None or in_port.direction != "in":
        return [f"'{target_port}' is not an input of {tgt.title or tgt.id}"]

    if out_port.is_exec != in_port.is_exec:
        return ["Exec and data pins cannot be connected"]
    wire_kind = EXEC if out_port.is_exec else "data"
    if kind is not None and kind != wire_kind:
        return [f"Wire kind '{kind}' does not match {wire_kind} pins"]

    errors: list[str] = []
    if not types.is_port_compatible(out_port.data_type, in_port.data_type):
        errors.append(f"Incompatible ports: {out_port.data_type} → {in_port.data_type}")

    existing = [
        w for w in graph.get_incoming_wires(target_node, wire_kind)
        if w.target_port == target_port
    ]
    if existing and (in_port.is_exec or not in_port.multi):
        label = "Exec input" if in_port.is_exec else "Input"
        errors.append(f"{label} '{target_port}' already connected")

    if wire_kind == EXEC and exec_reaches(graph, target_node, source_node):
        errors.append("Wire would create a cycle in exec flow")
    return errors


def check_wire(
    graph: Graph,
    source_node: str,
    source_port: str,
    target_node: str,
    target_port: str,
    types: PortTypes,
    kind: str | None = None,
) -> str:
    """Return the kind of the wire to create, or raise WiringError."""
    errors = wire_errors(graph, source_node, source_port, target_node, target_port, types, kind)
    if errors:
        raise WiringError(errors)
    return EXEC if graph.nodes[source_node].get_output(source_port).is_exec else "data"


def validate_graph(graph: Graph, registry: NodeRegistry, types: PortTypes) -> list[str]:
    """Validate a graph, returning a list of error messages (empty = valid)."""
    errors: list[str] = []
    errors.extend(_check_node_types(graph, registry))
    errors.extend(_check_wires(graph, types))
    errors.extend(_check_fan_in(graph))
    errors.extend(_check_cycles(graph, registry))
    return errors


def _check_node_types(graph: Graph, registry: NodeRegistry) -> list[str]:
    return [
        f"Node '{node.id}': unknown node type {node.type}"
        for node in graph.nodes.values()
        if registry.lookup(node.type) is None
    ]


def _check_wires(graph: Graph, types: PortTypes) -> list[str]:
    errors: list[str] = []
    for wire in graph.wires:
        src = graph.nodes.get(wire.source_node)
        tgt = graph.nodes.get(wire.target_node)
        if src is None or tgt is None:
            errors.append(f"Wire {wire.id} references missing node")
            continue
        out_port = src.get_output(wire.source_port)
        in_port = tgt.get_input(wire.target_port)
        if out_port is None or in_port is None:
            errors.append(f"Wire {wire.id} references missing port")
            continue
        if out_port.is_exec != in_port.is_exec:
            errors.append(f"Wire {wire.id}: exec and data pins cannot be connected")
            continue
        expected = EXEC if out_port.is_exec else "data"
        if wire.kind != expected:
            errors.append(f"Wire {wire.id}: kind '{wire.kind}' on {expected} pins")
            continue
        if not types.is_port_compatible(out_port.data_type, in_port.data_type):
            errors.append(
                f"Wire {wire.id}: type mismatch {out_port.data_type} → {in_port.data_type}"
            )
    return errors


def _check_fan_in(graph: Graph) -> list[str]:
    errors: list[str] = []
    counts: dict[tuple[str, str], int] = {}
    for wire in graph.wires:
        key = (wire.target_node, wire.target_port)
        counts[key] = counts.get(key, 0) + 1
    for (node_id, port_id), count in sorted(counts.items()):
        node = graph.nodes.get(node_id)
        port = node.get_input(port_id) if node else None
        if port is None or count < 2:
            continue
        if port.is_exec or not port.multi:
            errors.append(f"Node '{node_id}': input '{port_id}' has {count} wires but is not multi")
    return errors


def _check_cycles(graph: Graph, registry: NodeRegistry) -> list[str]:
    def is_start(node_id: str) -> bool:
        definition = registry.lookup(graph.nodes[node_id].type)
        return definition is not None and definition.is_start

    try:
        compute_schedule(graph, GraphIndex(graph), is_start)
    except CycleDetected as e:
        return [str(e)]
    return []
