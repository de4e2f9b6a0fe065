"""
Conversion between AgentValue and the script's native Python values.

to_native maps every AgentValue within the depth limit to a fresh native
value, and variants with no native counterpart travel through the script
wrapped in ForeignValue. from_native is partial: only the primitive set a script can
build (plus ForeignValue handed back unchanged) converts; anything else is
rejected with UnsupportedNativeType.
"""

from typing import Any

from script_agent.core.config import settings
from script_agent.core.errors import AgentError
from script_agent.models import I64_MAX, I64_MIN, AgentValue, ValueKind


class ConversionError(AgentError):
    """Raised when a native script value cannot be turned into an AgentValue."""

    pass


class UnsupportedNativeType(ConversionError):
    """Raised for a native value whose type has no AgentValue counterpart."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Unsupported script data type: {type_name}")
        self.type_name = type_name


class ConversionDepthError(ConversionError):
    """Raised when a native value nests deeper than the allowed depth (or refers to itself)."""

    pass


class ForeignValue:
    """Opaque slot carrying an AgentValue through a script without conversion."""

    __slots__ = ("value",)

    def __init__(self, value: AgentValue) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"ForeignValue({self.value!r})"


def to_native(value: AgentValue, *, max_depth: int | None = None) -> Any:
    """
    Convert an AgentValue to a new native value.

    Only nesting deeper than max_depth (default settings.SCRIPT_MAX_VALUE_DEPTH)
    fails, with ConversionDepthError.
    """
    limit = settings.SCRIPT_MAX_VALUE_DEPTH if max_depth is None else max_depth
    return _to_native(value, 0, limit)


def _to_native(value: AgentValue, depth: int, limit: int) -> Any:
    if depth > limit:
        raise ConversionDepthError(f"Value nested deeper than {limit} levels")

    kind = value.kind
    if kind is ValueKind.UNIT:
        return None
    if kind is ValueKind.BOOLEAN:
        return bool(value.payload)
    if kind is ValueKind.INTEGER:
        return int(value.payload)
    if kind is ValueKind.NUMBER:
        return float(value.payload)
    if kind is ValueKind.STRING:
        return str(value.payload)
    if kind is ValueKind.ARRAY:
        return [_to_native(v, depth + 1, limit) for v in value.payload]
    if kind is ValueKind.OBJECT:
        return {str(k): _to_native(v, depth + 1, limit) for k, v in value.payload.items()}
    # Just carry the AgentValue itself
    return ForeignValue(value)


def from_native(obj: Any, *, max_depth: int | None = None) -> AgentValue:
    """
    Convert a native script value to an AgentValue.

    The first element or entry that fails aborts the whole conversion.
    max_depth defaults to settings.SCRIPT_MAX_VALUE_DEPTH.
    """
    limit = settings.SCRIPT_MAX_VALUE_DEPTH if max_depth is None else max_depth
    return _from_native(obj, 0, limit)


def _from_native(obj: Any, depth: int, limit: int) -> AgentValue:
    if depth > limit:
        raise ConversionDepthError(f"Value nested deeper than {limit} levels")

    if obj is None:
        return AgentValue.unit()
    if isinstance(obj, bool):
        return AgentValue.boolean(obj)
    if isinstance(obj, int):
        if not I64_MIN <= obj <= I64_MAX:
            raise ConversionError(f"Integer out of 64-bit range: {obj}")
        return AgentValue.integer(int(obj))
    if isinstance(obj, float):
        return AgentValue.number(obj)
    if isinstance(obj, str):
        return AgentValue.string(str(obj))

    if isinstance(obj, (list, tuple)):
        return AgentValue.array([_from_native(v, depth + 1, limit) for v in obj])

    if isinstance(obj, dict):
        entries: dict[str, AgentValue] = {}
        for k, v in obj.items():
            if not isinstance(k, str):
                raise ConversionError(f"Object key must be str, got {type(k).__name__}")
            entries[str(k)] = _from_native(v, depth + 1, limit)
        return AgentValue.object(entries)

    if isinstance(obj, ForeignValue):
        return obj.value

    raise UnsupportedNativeType(type(obj).__name__)
