"""Base node behaviour and definition types."""
import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from ..engine.context import ExecutionContext, NodeResult
from ..engine.graph import EXEC, Node, Port

FAIL_FAST = "fail-fast"

NodeOutputs = dict[str, Any] | NodeResult | None


def exec_in(port_id: str = "exec_in", name: str = "Exec In") -> Port:
    return Port(id=port_id, name=name, direction="in", data_type=EXEC)


def exec_out(port_id: str = "exec_out", name: str = "Exec Out") -> Port:
    return Port(id=port_id, name=name, direction="out", data_type=EXEC)


def data_in(port_id: str, data_type: str = "any", name: str = "", default: Any = None,
            multi: bool = False) -> Port:
    return Port(id=port_id, name=name or port_id, direction="in",
                data_type=data_type, default=default, multi=multi)


def data_out(port_id: str, data_type: str = "any", name: str = "") -> Port:
    return Port(id=port_id, name=name or port_id, direction="out", data_type=data_type)


@dataclass
class NodeDefinition:
    """Everything the engine and the UI need to know about one node type."""
    node_type: str
    title: str
    category: str
    description: str
    inputs: list[Port]
    outputs: list[Port]
    factory: Callable[[], "NodeBehavior"] = field(repr=False)
    on_error: str | None = None
    is_start: bool = False
    pack: str | None = None

    @property
    def fail_fast(self) -> bool:
        return self.on_error == FAIL_FAST

    def create(self) -> "NodeBehavior":
        return self.factory()

    def instantiate(self, node_id: str, title: str | None = None,
                    state: dict[str, Any] | None = None) -> Node:
        """Build a graph node carrying copies of this definition's ports."""
        return Node(
            id=node_id,
            type=self.node_type,
            title=title or self.title,
            inputs=copy.deepcopy(self.inputs),
            outputs=copy.deepcopy(self.outputs),
            state=dict(state or {}),
        )


class NodeBehavior(ABC):
    """Abstract base class for everything that can run as a graph node."""

    TYPE: str = ""
    TITLE: str = ""
    CATEGORY: str = "Uncategorized"
    DESCRIPTION: str = ""
    ON_ERROR: str | None = None
    IS_START: bool = False

    @classmethod
    @abstractmethod
    def INPUT_TYPES(cls) -> list[Port]:
        ...

    @classmethod
    @abstractmethod
    def RETURN_TYPES(cls) -> list[Port]:
        ...

    @abstractmethod
    async def run(self, ctx: ExecutionContext) -> NodeOutputs:
        ...

    @classmethod
    def get_definition(cls, node_type: str | None = None) -> NodeDefinition:
        return NodeDefinition(
            node_type=node_type or cls.TYPE or cls.__name__,
            title=cls.TITLE or cls.__name__,
            category=cls.CATEGORY,
            description=cls.DESCRIPTION or (cls.__doc__ or "").strip(),
            inputs=cls.INPUT_TYPES(),
            outputs=cls.RETURN_TYPES(),
            factory=cls,
            on_error=cls.ON_ERROR,
            is_start=cls.IS_START,
        )
