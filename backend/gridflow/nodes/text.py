"""String and JSON nodes."""
import json

from .base import NodeBehavior, data_in, data_out, exec_in, exec_out


class ConcatNode(NodeBehavior):
    TYPE = "text.concat"
    TITLE = "Concat"
    CATEGORY = "Text"
    DESCRIPTION = "Join strings with the separator stored in state"

    @classmethod
    def INPUT_TYPES(cls):
        return [
            exec_in(),
            data_in("a", "string", "A", default=""),
            data_in("b", "string", "B", default=""),
            data_in("extra", "string", "Extra", multi=True),
        ]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("out", "string", "Out")]

    async def run(self, ctx):
        sep = str(ctx.state.get("sep", ""))
        parts = [ctx.inputs.get("a"), ctx.inputs.get("b"), *(ctx.inputs.get("extra") or [])]
        return {"out": sep.join("" if p is None else str(p) for p in parts)}


class ParseJsonNode(NodeBehavior):
    TYPE = "json.parse"
    TITLE = "Parse JSON"
    CATEGORY = "Text"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in(), data_in("text", "string", "JSON Text", default="")]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("obj", "json", "Object")]

    async def run(self, ctx):
        try:
            return {"obj": json.loads(str(ctx.inputs.get("text") or ""))}
        except json.JSONDecodeError as e:
            raise ValueError("Invalid JSON") from e
