"""Resolve a node's data inputs from the value cache."""
import copy
from typing import Any

from loguru import logger

from .cache import ValueCache
from .errors import TypeMismatch
from .graph import GraphIndex, Node, Wire
from .types import PortTypes


def _wire_value(index: GraphIndex, wire: Wire, values: ValueCache, types: PortTypes, to_type: str) -> Any:
    source = index.graph.nodes[wire.source_node].get_output(wire.source_port)
    from_type = source.data_type
    if not types.accepts(to_type, from_type) and not types.has_adapter(from_type, to_type):
        raise TypeMismatch(from_type, to_type)
    value = values.get(wire.source_node, wire.source_port)
    if value is None:
        return None
    return types.adapt_value(from_type, to_type, value)


def resolve_inputs(
    node: Node,
    index: GraphIndex,
    values: ValueCache,
    types: PortTypes,
) -> dict[str, Any]:
    """Build ``{port_id: value}`` for every non-exec input of ``node``.

    Unconnected ports get their declared default. A ``multi`` port with
    several wires receives a list ordered by wire id. A non-multi port with
    several wires keeps the first by wire id. Raises TypeMismatch (with the
    node and port filled in) when a wire's types cannot be adapted.
    """
    resolved: dict[str, Any] = {}
    for port in node.inputs:
        if port.is_exec:
            continue
        wires = index.data_wires_into(node.id, port.id)
        try:
            if not wires:
                resolved[port.id] = copy.deepcopy(port.default)
            elif port.multi:
                resolved[port.id] = [
                    _wire_value(index, w, values, types, port.data_type) for w in wires
                ]
            else:
                if len(wires) > 1:
                    logger.warning(
                        f"Input '{port.id}' on node {node.id} has {len(wires)} wires "
                        f"but is not multi; using {wires[0].id}"
                    )
                resolved[port.id] = _wire_value(index, wires[0], values, types, port.data_type)
        except TypeMismatch as e:
            raise TypeMismatch(e.from_type, e.to_type, node_id=node.id, port_id=port.id) from None
    return resolved
