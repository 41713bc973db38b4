"""Node registry with auto-discovery."""
import copy
import importlib
import inspect
import pkgutil

from loguru import logger

from ..engine.graph import Graph
from .base import NodeBehavior, NodeDefinition


class NodeRegistry:
    """Maps node type strings to definitions.

    Registries are plain objects: build one, fill it, and hand it to the
    executor. Nothing reads a process-wide instance.

    Usage:
        registry = NodeRegistry()

        @registry.register()
        class MyNode(NodeBehavior):
            TYPE = "my.node"
            ...

        registry.discover("gridflow.nodes")
    """

    def __init__(self):
        self._nodes: dict[str, NodeDefinition] = {}

    def register(self, node_type: str | None = None):
        """Decorator registering a NodeBehavior subclass."""
        def decorator(node_cls: type[NodeBehavior]) -> type[NodeBehavior]:
            self.add(node_cls.get_definition(node_type))
            return node_cls
        return decorator

    def add(self, definition: NodeDefinition) -> NodeDefinition:
        if definition.node_type in self._nodes:
            logger.debug(f"Replacing node definition {definition.node_type}")
        self._nodes[definition.node_type] = definition
        return definition

    def lookup(self, node_type: str) -> NodeDefinition | None:
        return self._nodes.get(node_type)

    def get(self, node_type: str) -> NodeDefinition:
        if node_type not in self._nodes:
            raise KeyError(f"Unknown node type: {node_type}")
        return self._nodes[node_type]

    def fill_ports(self, graph: Graph) -> None:
        """Give port-less nodes of ``graph`` copies of the ports their definition declares."""
        for node in graph.nodes.values():
            if node.inputs or node.outputs:
                continue
            definition = self.lookup(node.type)
            if definition is not None:
                node.inputs = copy.deepcopy(definition.inputs)
                node.outputs = copy.deepcopy(definition.outputs)

    def all_definitions(self) -> dict[str, NodeDefinition]:
        return dict(self._nodes)

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def discover(self, package_name: str) -> None:
        """Import every module in the package and register the node classes it defines."""
        try:
            package = importlib.import_module(package_name)
        except ImportError:
            logger.warning(f"Node package {package_name} not importable")
            return
        if not hasattr(package, "__path__"):
            return
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            if module_name.startswith("_") or module_name in ("base", "registry"):
                continue
            module = importlib.import_module(f"{package_name}.{module_name}")
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if (
                    issubclass(obj, NodeBehavior)
                    and obj.__module__ == module.__name__
                    and obj.TYPE
                    and not inspect.isabstract(obj)
                ):
                    self.add(obj.get_definition())
