"""Error taxonomy for graph runs."""


class EngineError(Exception):
    """Base class for every error the engine reports."""

    kind = "EngineError"


class MissingDefinition(EngineError):
    kind = "MissingDefinition"

    def __init__(self, node_id: str, node_type: str):
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type}")


class TypeMismatch(EngineError):
    kind = "TypeMismatch"

    def __init__(
        self,
        from_type: str,
        to_type: str,
        node_id: str | None = None,
        port_id: str | None = None,
    ):
        self.from_type = from_type
        self.to_type = to_type
        self.node_id = node_id
        self.port_id = port_id
        where = f" on input '{port_id}'" if port_id else ""
        super().__init__(f"Type mismatch{where}: {from_type} → {to_type} (no adapter)")


class NodeRuntimeError(EngineError):
    """An exception raised inside a node's ``run``."""

    kind = "NodeRuntimeError"

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        self.message = message
        super().__init__(message)


class CycleDetected(EngineError):
    kind = "CycleDetected"

    def __init__(self, remaining: list[str], flow: str = "exec"):
        self.remaining = remaining
        self.flow = flow
        super().__init__(
            f"Cycle detected in {flow} flow: {', '.join(remaining)} could not be scheduled"
        )


class Aborted(EngineError):
    kind = "Aborted"

    def __init__(self, message: str = "Run aborted"):
        super().__init__(message)


class ValidationError(Exception):
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Graph validation failed: {errors}")


class WiringError(ValidationError):
    """Raised when a proposed wire breaks a wiring rule."""
