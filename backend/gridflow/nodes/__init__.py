"""Built-in node packs and the registry factory."""
from .registry import NodeRegistry


def create_registry() -> NodeRegistry:
    """A fresh registry holding every built-in node type."""
    registry = NodeRegistry()
    registry.discover(__name__)
    return registry
