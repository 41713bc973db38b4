"""Tests for the in-memory graph store and its undo/redo history."""
from gridflow.engine.graph import Graph, Node, Wire
from gridflow.engine.store import InMemoryGraphStore


def _rename(title):
    def mutate(graph):
        graph.nodes["n"].title = title
    return mutate


def _store(**kwargs):
    return InMemoryGraphStore(Graph(nodes={"n": Node(id="n", type="t", title="start")}), **kwargs)


class TestGraphStore:
    def test_get_graph_returns_copy(self):
        store = _store()
        store.get_graph().nodes["n"].title = "changed"
        assert store.get_graph().nodes["n"].title == "start"

    def test_transact_records_label(self):
        store = _store()
        store.transact(_rename("one"), "Rename")
        assert store.get_graph().nodes["n"].title == "one"
        assert store.labels == ["Rename"]
        assert store.can_undo
        assert not store.can_redo

    def test_undo_redo(self):
        store = _store()
        store.transact(_rename("one"))
        store.transact(_rename("two"))

        assert store.undo()
        assert store.get_graph().nodes["n"].title == "one"
        assert store.undo()
        assert store.get_graph().nodes["n"].title == "start"
        assert not store.undo()

        assert store.redo()
        assert store.get_graph().nodes["n"].title == "one"

    def test_transact_clears_redo(self):
        store = _store()
        store.transact(_rename("one"))
        store.undo()
        store.transact(_rename("other"))
        assert not store.can_redo
        assert not store.redo()

    def test_history_limit(self):
        store = _store(history_limit=2)
        for title in ("a", "b", "c"):
            store.transact(_rename(title))
        assert store.undo()
        assert store.undo()
        assert not store.undo()
        assert store.get_graph().nodes["n"].title == "a"

    def test_listeners_notified(self):
        store = _store()
        seen = []
        unsubscribe = store.subscribe(lambda graph: seen.append(graph.nodes["n"].title))
        store.transact(_rename("one"))
        store.undo()
        unsubscribe()
        store.redo()
        assert seen == ["one", "start"]

    def test_set_graph_defaults_wire_kind(self):
        store = InMemoryGraphStore()
        graph = Graph(wires=[Wire("w1", "", "a", "out", "b", "in")])
        store.set_graph(graph)
        assert store.get_graph().wires[0].kind == "data"
        assert not store.can_undo
