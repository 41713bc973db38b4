"""Run-scoped value cache for node outputs."""
from typing import Any


class ValueCache:
    """Caches node outputs keyed by (node_id, output_port_id).

    One instance belongs to one run and is cleared before the next.
    """

    def __init__(self):
        self._cache: dict[str, dict[str, Any]] = {}

    def get(self, node_id: str, port_id: str, default: Any = None) -> Any:
        return self._cache.get(node_id, {}).get(port_id, default)

    def put(self, node_id: str, outputs: dict[str, Any]) -> None:
        self._cache.setdefault(node_id, {}).update(outputs)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {nid: dict(outputs) for nid, outputs in self._cache.items()}

    def clear(self):
        self._cache.clear()
