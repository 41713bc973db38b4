"""Graph data structures for the execution engine."""
import copy
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

EXEC = "exec"


@dataclass
class Port:
    id: str
    name: str = ""
    direction: str = "in"        # "in" | "out"
    data_type: str = "any"       # "exec" or a scalar type name
    multi: bool = False          # input accepts several data wires
    default: Any = None

    @property
    def is_exec(self) -> bool:
        return self.data_type == EXEC


@dataclass
class Wire:
    id: str
    kind: str                    # "data" | "exec"
    source_node: str
    source_port: str
    target_node: str
    target_port: str


@dataclass
class Node:
    id: str
    type: str
    title: str = ""
    inputs: list[Port] = field(default_factory=list)
    outputs: list[Port] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)

    def get_input(self, port_id: str) -> Port | None:
        return next((p for p in self.inputs if p.id == port_id), None)

    def get_output(self, port_id: str) -> Port | None:
        return next((p for p in self.outputs if p.id == port_id), None)

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.title or "", self.id)


@dataclass
class Graph:
    nodes: dict[str, Node] = field(default_factory=dict)
    wires: list[Wire] = field(default_factory=list)
    name: str = "Untitled"

    def copy(self) -> "Graph":
        return copy.deepcopy(self)

    def get_incoming_wires(self, node_id: str, kind: str | None = None) -> list[Wire]:
        return [
            w for w in self.wires
            if w.target_node == node_id and (kind is None or w.kind == kind)
        ]


class GraphIndex:
    """Wire lookups built once per run.

    Wires whose endpoints reference a missing node or port are dropped here,
    so nothing downstream has to guard against them.
    """

    def __init__(self, graph: Graph):
        self.graph = graph
        self.exec_wires: list[Wire] = []
        self.data_wires: list[Wire] = []
        self.skipped: list[Wire] = []
        # (node_id, port_id) -> data wires, ordered by wire id
        self._data_in: dict[tuple[str, str], list[Wire]] = {}

        for wire in graph.wires:
            if not self._is_attached(wire):
                logger.warning(f"Skipping dangling wire {wire.id}")
                self.skipped.append(wire)
                continue
            if wire.kind == EXEC:
                self.exec_wires.append(wire)
            else:
                self.data_wires.append(wire)
                key = (wire.target_node, wire.target_port)
                self._data_in.setdefault(key, []).append(wire)

        for wires in self._data_in.values():
            wires.sort(key=lambda w: w.id)

    def _is_attached(self, wire: Wire) -> bool:
        src = self.graph.nodes.get(wire.source_node)
        tgt = self.graph.nodes.get(wire.target_node)
        if src is None or tgt is None:
            return False
        return src.get_output(wire.source_port) is not None and \
            tgt.get_input(wire.target_port) is not None

    def data_wires_into(self, node_id: str, port_id: str) -> list[Wire]:
        return self._data_in.get((node_id, port_id), [])

    def exec_participants(self) -> set[str]:
        ids: set[str] = set()
        for w in self.exec_wires:
            ids.add(w.source_node)
            ids.add(w.target_node)
        return ids

    @staticmethod
    def adjacency(node_ids, wires: list[Wire]) -> tuple[dict[str, int], dict[str, list[str]]]:
        """In-degree and successor lists over ``wires`` restricted to ``node_ids``.

        One entry per wire, so parallel wires between the same pair count twice
        on both sides and cancel out during traversal.
        """
        in_degree: dict[str, int] = {nid: 0 for nid in node_ids}
        adj: dict[str, list[str]] = {nid: [] for nid in node_ids}
        for wire in wires:
            if wire.source_node in adj and wire.target_node in in_degree:
                in_degree[wire.target_node] += 1
                adj[wire.source_node].append(wire.target_node)
        return in_degree, adj
