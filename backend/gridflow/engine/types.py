"""Port types, accepted-type sets and value adapters."""
from typing import Any, Callable

from .errors import TypeMismatch
from .graph import EXEC

ANY = "any"

Adapter = Callable[[Any], Any]


class PortTypes:
    """Explicitly constructed type table consulted when wiring and resolving inputs.

    Each data type carries the set of source types it accepts without
    conversion. ``any`` is accepted everywhere and accepts everything. Exec is
    only ever compatible with exec.
    """

    def __init__(self):
        self._accepts: dict[str, set[str]] = {ANY: set(), EXEC: {EXEC}}
        self._adapters: dict[tuple[str, str], Adapter] = {}

    def register_type(self, name: str, accepts: tuple[str, ...] | list[str] = ()) -> None:
        self._accepts.setdefault(name, set()).update(accepts)

    def register_adapter(self, from_type: str, to_type: str, fn: Adapter) -> None:
        self._adapters[(from_type, to_type)] = fn

    def has_adapter(self, from_type: str, to_type: str) -> bool:
        return (from_type, to_type) in self._adapters

    @property
    def names(self) -> list[str]:
        return sorted(self._accepts)

    def accepts(self, to_type: str, from_type: str) -> bool:
        if to_type == from_type:
            return True
        if EXEC in (to_type, from_type):
            return False
        if to_type == ANY or from_type == ANY:
            return True
        return from_type in self._accepts.get(to_type, set())

    def is_port_compatible(self, from_type: str, to_type: str) -> bool:
        if (from_type == EXEC) != (to_type == EXEC):
            return False
        return self.accepts(to_type, from_type) or self.has_adapter(from_type, to_type)

    def adapt_value(self, from_type: str, to_type: str, value: Any) -> Any:
        """Convert ``value`` across a wire; raise TypeMismatch when impossible."""
        if self.accepts(to_type, from_type):
            return value
        adapter = self._adapters.get((from_type, to_type))
        if adapter is None:
            raise TypeMismatch(from_type, to_type)
        return adapter(value)


def _number_to_string(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _string_to_number(value: Any) -> float | int:
    number = float(str(value).strip())
    return int(number) if number.is_integer() else number


def _boolean_to_string(value: Any) -> str:
    return "true" if value else "false"


def create_port_types() -> PortTypes:
    """Port types and adapters shipped with the built-in node packs."""
    types = PortTypes()
    types.register_type("number", accepts=("integer",))
    types.register_type("integer")
    types.register_type("string")
    types.register_type("boolean")
    types.register_type("json")
    types.register_adapter("number", "string", _number_to_string)
    types.register_adapter("integer", "string", _number_to_string)
    types.register_adapter("string", "number", _string_to_number)
    types.register_adapter("boolean", "string", _boolean_to_string)
    return types
