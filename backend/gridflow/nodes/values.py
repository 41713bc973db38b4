"""Value generator nodes whose output comes from node state."""
from ..engine.context import NodeResult
from .base import NodeBehavior, data_out, exec_in, exec_out


def _to_number(value, fallback=0):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).strip())
    except ValueError:
        return fallback


class IntegerNode(NodeBehavior):
    TYPE = "util.integer"
    TITLE = "Integer"
    CATEGORY = "Utilities"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("value", "integer", "Value")]

    async def run(self, ctx):
        ctx.emit({"value": int(_to_number(ctx.state.get("value", 0)))})


class StringNode(NodeBehavior):
    TYPE = "util.string"
    TITLE = "String"
    CATEGORY = "Utilities"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("value", "string", "Value")]

    async def run(self, ctx):
        ctx.emit({"value": str(ctx.state.get("text", ""))})


class CounterNode(NodeBehavior):
    """Counts how many times it has run; the count lives in node state."""

    TYPE = "util.counter"
    TITLE = "Counter"
    CATEGORY = "Utilities"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("count", "integer", "Count")]

    async def run(self, ctx):
        count = int(_to_number(ctx.state.get("count", 0))) + 1
        return NodeResult(outputs={"count": count}, state={**ctx.state, "count": count})
