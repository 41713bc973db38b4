"""Flow nodes: Start, End, If, Delay."""
import time

from .base import NodeBehavior, data_in, data_out, exec_in, exec_out


class StartNode(NodeBehavior):
    TYPE = "flow.start"
    TITLE = "Start"
    CATEGORY = "Flow"
    DESCRIPTION = "Entry point of the exec flow"
    IS_START = True

    @classmethod
    def INPUT_TYPES(cls):
        return []

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("tick", "any", "Tick")]

    async def run(self, ctx):
        return {"tick": int(time.time() * 1000)}


class EndNode(NodeBehavior):
    TYPE = "flow.end"
    TITLE = "End"
    CATEGORY = "Flow"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in()]

    @classmethod
    def RETURN_TYPES(cls):
        return []

    async def run(self, ctx):
        ctx.log("End reached")


class IfNode(NodeBehavior):
    TYPE = "flow.if"
    TITLE = "If"
    CATEGORY = "Flow"
    DESCRIPTION = "Select between two values on a condition"

    @classmethod
    def INPUT_TYPES(cls):
        return [
            exec_in(),
            data_in("cond", "boolean", "Condition", default=False),
            data_in("t", "any", "Then"),
            data_in("f", "any", "Else"),
        ]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("out", "any", "Out")]

    async def run(self, ctx):
        return {"out": ctx.inputs["t"] if ctx.inputs.get("cond") else ctx.inputs["f"]}


class DelayNode(NodeBehavior):
    TYPE = "flow.delay"
    TITLE = "Delay"
    CATEGORY = "Flow"
    DESCRIPTION = "Pass a value through after waiting; stops early when the run is cancelled"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in(), data_in("in", "any", "In"), data_in("ms", "number", "ms")]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("out", "any", "Out")]

    async def run(self, ctx):
        ms = ctx.inputs.get("ms")
        if ms is None:
            ms = ctx.state.get("ms", 0)
        await ctx.signal.sleep(float(ms) / 1000)
        return {"out": ctx.inputs.get("in")}
