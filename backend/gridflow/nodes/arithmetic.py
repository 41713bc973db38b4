"""Math nodes: Add, Subtract, Multiply, Divide.

Each takes ``a`` and ``b`` plus an optional multi-connected ``extra`` input
whose values are folded in after ``b``.
"""
import math

from .base import NodeBehavior, data_in, data_out, exec_in, exec_out
from .values import _to_number


def _extras(value) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


class _BinaryMathNode(NodeBehavior):
    CATEGORY = "Math"
    IDENTITY = 0

    @classmethod
    def INPUT_TYPES(cls):
        return [
            exec_in(),
            data_in("a", "number", "A", default=cls.IDENTITY),
            data_in("b", "number", "B", default=cls.IDENTITY),
            data_in("extra", "number", "Extra", multi=True),
        ]

    @classmethod
    def RETURN_TYPES(cls):
        return [exec_out(), data_out("result", "number", "Result")]

    def op(self, a, b):
        raise NotImplementedError

    async def run(self, ctx):
        values = [ctx.inputs.get("a"), ctx.inputs.get("b"), *_extras(ctx.inputs.get("extra"))]
        numbers = [_to_number(v, self.IDENTITY) if v is not None else self.IDENTITY for v in values]
        result = numbers[0]
        for n in numbers[1:]:
            result = self.op(result, n)
        return {"result": result}


class AddNode(_BinaryMathNode):
    TYPE = "math.add"
    TITLE = "Add"

    def op(self, a, b):
        return a + b


class SubtractNode(_BinaryMathNode):
    TYPE = "math.subtract"
    TITLE = "Subtract"

    def op(self, a, b):
        return a - b


class MultiplyNode(_BinaryMathNode):
    TYPE = "math.multiply"
    TITLE = "Multiply"
    IDENTITY = 1

    def op(self, a, b):
        return a * b


class DivideNode(_BinaryMathNode):
    TYPE = "math.divide"
    TITLE = "Divide"
    IDENTITY = 1

    @classmethod
    def INPUT_TYPES(cls):
        return [
            exec_in(),
            data_in("a", "number", "A (numerator)", default=0),
            data_in("b", "number", "B (denominator)", default=1),
        ]

    def op(self, a, b):
        if not (math.isfinite(a) and math.isfinite(b)):
            raise ValueError("Invalid operand")
        if b == 0:
            raise ZeroDivisionError("Divide by zero")
        return a / b
