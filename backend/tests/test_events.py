"""Tests for run events and the event bus."""
from gridflow.engine.events import EventBus, EventType, NodeStatus, RunEvent, Status


def test_event_to_dict_drops_unset_fields():
    event = RunEvent(type=EventType.NODE_DONE, run_id="r1", node_id="n", outputs={"x": 1})
    assert event.to_dict() == {"type": "node-done", "run_id": "r1", "node_id": "n", "outputs": {"x": 1}}


def test_node_status_to_dict():
    status = NodeStatus(status=Status.ERROR, last_error="boom", error_kind="NodeRuntimeError")
    assert status.to_dict() == {
        "status": "error",
        "last_error": "boom",
        "error_kind": "NodeRuntimeError",
        "logs": [],
    }


def test_bus_isolates_failing_listener():
    bus = EventBus()
    seen = []

    def broken(event):
        raise ValueError("listener bug")

    bus.subscribe(broken)
    bus.subscribe(seen.append)
    bus.publish(RunEvent(type=EventType.RUN_STARTED, run_id="r1"))
    assert [e.type for e in seen] == [EventType.RUN_STARTED]


def test_unsubscribe_twice_is_harmless():
    bus = EventBus()
    unsubscribe = bus.subscribe(lambda event: None)
    unsubscribe()
    unsubscribe()
    bus.publish(RunEvent(type=EventType.RUN_ENDED, run_id="r1"))
