"""
Tagged value model passed between pipeline nodes.

AgentValue is a closed set of variants (unit, boolean, integer, number,
string, array, object) plus OPAQUE for host payloads that do not decompose
into the others. Values are immutable once built; arrays are stored as
tuples and objects as read-only mappings.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1


class ValueKind(str, Enum):
    """Variant tag of an AgentValue."""

    UNIT = "unit"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    OPAQUE = "opaque"


class AgentValue:
    """Immutable tagged value. Build with the classmethod constructors."""

    __slots__ = ("_kind", "_payload")

    def __init__(self, kind: ValueKind, payload: Any = None) -> None:
        object.__setattr__(self, "_kind", kind)
        object.__setattr__(self, "_payload", payload)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("AgentValue is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("AgentValue is immutable")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def unit(cls) -> AgentValue:
        return cls(ValueKind.UNIT)

    @classmethod
    def boolean(cls, value: bool) -> AgentValue:
        if not isinstance(value, bool):
            raise TypeError(f"Expected bool, got {type(value).__name__}")
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def integer(cls, value: int) -> AgentValue:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        if not I64_MIN <= value <= I64_MAX:
            raise ValueError(f"Integer out of 64-bit range: {value}")
        return cls(ValueKind.INTEGER, int(value))

    @classmethod
    def number(cls, value: float) -> AgentValue:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
        return cls(ValueKind.NUMBER, float(value))

    @classmethod
    def string(cls, value: str) -> AgentValue:
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return cls(ValueKind.STRING, str(value))

    @classmethod
    def array(cls, items: Iterable[AgentValue]) -> AgentValue:
        arr = tuple(items)
        for item in arr:
            if not isinstance(item, AgentValue):
                raise TypeError(f"Array item must be AgentValue, got {type(item).__name__}")
        return cls(ValueKind.ARRAY, arr)

    @classmethod
    def object(cls, entries: Mapping[str, AgentValue]) -> AgentValue:
        obj: dict[str, AgentValue] = {}
        for k, v in entries.items():
            if not isinstance(k, str):
                raise TypeError(f"Object key must be str, got {type(k).__name__}")
            if not isinstance(v, AgentValue):
                raise TypeError(f"Object value must be AgentValue, got {type(v).__name__}")
            obj[k] = v
        return cls(ValueKind.OBJECT, MappingProxyType(obj))

    @classmethod
    def opaque(cls, payload: Any) -> AgentValue:
        return cls(ValueKind.OPAQUE, payload)

    @classmethod
    def from_json(cls, data: Any) -> AgentValue:
        """Build a value from JSON-like Python data (None, bool, int, float, str, list, dict)."""
        if data is None:
            return cls.unit()
        if isinstance(data, bool):
            return cls.boolean(data)
        if isinstance(data, int):
            return cls.integer(data)
        if isinstance(data, float):
            return cls.number(data)
        if isinstance(data, str):
            return cls.string(data)
        if isinstance(data, (list, tuple)):
            return cls.array(cls.from_json(v) for v in data)
        if isinstance(data, dict):
            return cls.object({k: cls.from_json(v) for k, v in data.items()})
        raise TypeError(f"Not JSON-like data: {type(data).__name__}")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def kind(self) -> ValueKind:
        return self._kind

    @property
    def payload(self) -> Any:
        return self._payload

    def is_unit(self) -> bool:
        return self._kind is ValueKind.UNIT

    def is_boolean(self) -> bool:
        return self._kind is ValueKind.BOOLEAN

    def is_integer(self) -> bool:
        return self._kind is ValueKind.INTEGER

    def is_number(self) -> bool:
        return self._kind is ValueKind.NUMBER

    def is_string(self) -> bool:
        return self._kind is ValueKind.STRING

    def is_array(self) -> bool:
        return self._kind is ValueKind.ARRAY

    def is_object(self) -> bool:
        return self._kind is ValueKind.OBJECT

    def is_opaque(self) -> bool:
        return self._kind is ValueKind.OPAQUE

    def to_json(self) -> Any:
        """Render as JSON-like Python data. OPAQUE values have no JSON form."""
        kind = self._kind
        if kind is ValueKind.UNIT:
            return None
        if kind is ValueKind.ARRAY:
            return [v.to_json() for v in self._payload]
        if kind is ValueKind.OBJECT:
            return {k: v.to_json() for k, v in self._payload.items()}
        if kind is ValueKind.OPAQUE:
            raise TypeError("Opaque value has no JSON representation")
        return self._payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AgentValue):
            return NotImplemented
        if self._kind is not other._kind:
            return False
        if self._kind is ValueKind.OBJECT:
            return dict(self._payload) == dict(other._payload)
        return self._payload == other._payload

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        kind = self._kind
        if kind is ValueKind.UNIT:
            return "AgentValue.unit()"
        if kind is ValueKind.ARRAY:
            return f"AgentValue.array({list(self._payload)!r})"
        if kind is ValueKind.OBJECT:
            return f"AgentValue.object({dict(self._payload)!r})"
        return f"AgentValue.{kind.value}({self._payload!r})"
