"""Graph store contract and an in-memory implementation with undo/redo."""
from typing import Callable, Protocol

from loguru import logger

from .graph import Graph

Mutator = Callable[[Graph], None]


class GraphStore(Protocol):
    """What the engine needs from whoever owns the canonical graph."""

    def get_graph(self) -> Graph:
        ...

    def transact(self, mutator: Mutator, label: str = "change") -> None:
        ...


class InMemoryGraphStore:
    """Holds one graph; every ``transact`` is one undoable history entry."""

    def __init__(self, graph: Graph | None = None, history_limit: int = 1000):
        self._graph = graph or Graph()
        self._past: list[Graph] = []
        self._future: list[Graph] = []
        self._limit = history_limit
        self._listeners: list[Callable[[Graph], None]] = []
        self.labels: list[str] = []

    def get_graph(self) -> Graph:
        return self._graph.copy()

    def set_graph(self, graph: Graph) -> None:
        """Replace the graph without recording history."""
        for wire in graph.wires:
            if not wire.kind:
                wire.kind = "data"
        self._graph = graph
        self._emit()

    def subscribe(self, listener: Callable[[Graph], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def transact(self, mutator: Mutator, label: str = "change") -> None:
        before = self._graph.copy()
        mutator(self._graph)
        self._past.append(before)
        if len(self._past) > self._limit:
            self._past.pop(0)
        self._future.clear()
        self.labels.append(label)
        logger.debug(f"Store transaction: {label}")
        self._emit()

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def undo(self) -> bool:
        if not self._past:
            return False
        self._future.append(self._graph)
        self._graph = self._past.pop()
        self._emit()
        return True

    def redo(self) -> bool:
        if not self._future:
            return False
        self._past.append(self._graph)
        self._graph = self._future.pop()
        self._emit()
        return True

    def _emit(self):
        for listener in list(self._listeners):
            listener(self._graph)
