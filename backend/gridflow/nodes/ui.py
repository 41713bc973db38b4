"""Nodes that report values back to the user."""
import json

from .base import NodeBehavior, data_in, data_out, exec_in, exec_out


class LogNode(NodeBehavior):
    TYPE = "ui.log"
    TITLE = "Log"
    CATEGORY = "UI"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in(), data_in("msg", "any", "Message")]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("out", "any", "Out")]

    async def run(self, ctx):
        msg = ctx.inputs.get("msg")
        label = ctx.state.get("label")
        text = msg if isinstance(msg, str) else json.dumps(msg, default=str)
        ctx.log(f"{label}: {text}" if label else text)
        return {"out": msg}


class TextDisplayNode(NodeBehavior):
    TYPE = "ui.display.text"
    TITLE = "Text Display"
    CATEGORY = "UI"
    DESCRIPTION = "Show a value inside the node body"

    @classmethod
    def INPUT_TYPES(cls):
        return [exec_in(), data_in("value", "any", "Value")]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("text", "string", "Text")]

    async def run(self, ctx):
        value = ctx.inputs.get("value")
        text = "" if value is None else str(value)
        ctx.log(f"Display: {text}")
        return {"text": text}
