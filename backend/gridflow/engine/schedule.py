"""Run-order computation over the exec graph and the data graph.

When a graph has exec wires, the exec graph decides the order: traversal
starts at nodes with no incoming exec wire (and at designated start nodes)
and follows exec wires breadth-first, a node becoming ready once every exec
wire into it has been satisfied. Nodes that take no part in the exec graph
are pure data nodes; each one runs just before the first exec node that
consumes it (directly or through other pure nodes), and any left unclaimed
run at the end in data order.

Without exec wires the whole graph is ordered by data dependencies.

Ready candidates are always enqueued sorted by ``(title, id)`` so an
unchanged graph yields the same order every run. Anything left unscheduled
means a cycle and raises CycleDetected.
"""
from collections import deque
from typing import Callable, Iterable

from loguru import logger

from .errors import CycleDetected
from .graph import Graph, GraphIndex, Wire


def _sorted(graph: Graph, node_ids: Iterable[str]) -> list[str]:
    return sorted(node_ids, key=lambda nid: graph.nodes[nid].sort_key)


def _kahn(
    graph: Graph,
    node_ids: list[str],
    wires: list[Wire],
    seeds: Callable[[dict[str, int]], list[str]] | None = None,
) -> list[str]:
    """Kahn's algorithm with deterministic (title, id) tie-breaking."""
    in_degree, adj = GraphIndex.adjacency(node_ids, wires)
    if seeds is None:
        start = [nid for nid in node_ids if in_degree[nid] == 0]
    else:
        start = seeds(in_degree)

    queue = deque(_sorted(graph, start))
    queued = set(queue)
    order: list[str] = []
    while queue:
        node_id = queue.popleft()
        order.append(node_id)
        ready = []
        for succ in adj[node_id]:
            in_degree[succ] -= 1
            if in_degree[succ] == 0 and succ not in queued:
                ready.append(succ)
        for succ in _sorted(graph, set(ready)):
            queued.add(succ)
            queue.append(succ)
    return order


def data_order(graph: Graph, index: GraphIndex, node_ids: list[str] | None = None) -> list[str]:
    """Topological order over data wires only."""
    ids = list(graph.nodes) if node_ids is None else node_ids
    order = _kahn(graph, ids, index.data_wires)
    if len(order) != len(ids):
        remaining = _sorted(graph, set(ids) - set(order))
        raise CycleDetected(remaining, flow="data")
    return order


def exec_order(
    graph: Graph,
    index: GraphIndex,
    is_start: Callable[[str], bool] = lambda node_id: False,
) -> list[str]:
    """Breadth-first order along exec wires for the nodes that take part in them."""
    participants = index.exec_participants()
    participants.update(nid for nid in graph.nodes if is_start(nid))
    ids = list(participants)

    def seeds(in_degree: dict[str, int]) -> list[str]:
        has_out = {w.source_node for w in index.exec_wires}
        return [
            nid for nid in ids
            if in_degree[nid] == 0 and (nid in has_out or is_start(nid))
        ]

    order = _kahn(graph, ids, index.exec_wires, seeds)
    if len(order) != len(ids):
        remaining = _sorted(graph, set(ids) - set(order))
        raise CycleDetected(remaining, flow="exec")
    return order


def _pure_ancestors(index: GraphIndex, node_id: str, pure: set[str]) -> set[str]:
    """Pure nodes reachable backwards from ``node_id`` through data wires."""
    upstream: dict[str, set[str]] = {}
    for wire in index.data_wires:
        upstream.setdefault(wire.target_node, set()).add(wire.source_node)

    found: set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        for src in upstream.get(current, ()):
            if src in pure and src not in found:
                found.add(src)
                stack.append(src)
    return found


def compute_schedule(
    graph: Graph,
    index: GraphIndex | None = None,
    is_start: Callable[[str], bool] = lambda node_id: False,
) -> list[str]:
    """Return every node id of ``graph`` in execution order.

    Raises CycleDetected before anything runs if the exec graph, or the data
    graph among the nodes it orders, contains a cycle.
    """
    index = index or GraphIndex(graph)
    if not index.exec_wires:
        order = data_order(graph, index)
        logger.debug(f"Data-order schedule: {order}")
        return order

    flow = exec_order(graph, index, is_start)
    pure_ids = [nid for nid in graph.nodes if nid not in set(flow)]
    pure = set(pure_ids)
    pure_rank = {nid: i for i, nid in enumerate(data_order(graph, index, pure_ids))}

    order: list[str] = []
    placed: set[str] = set()
    for node_id in flow:
        feeders = _pure_ancestors(index, node_id, pure) - placed
        for feeder in sorted(feeders, key=pure_rank.__getitem__):
            order.append(feeder)
            placed.add(feeder)
        order.append(node_id)

    for nid in sorted(pure - placed, key=pure_rank.__getitem__):
        order.append(nid)

    logger.debug(f"Exec-first schedule: {order}")
    return order
