"""Reduction of arbitrary property values to storage-safe primitives.

Every value is first tagged with a :class:`ValueKind` and then rewritten by
the handler registered for that kind. The result is always one of ``str``,
finite ``int``/``float``, ``bool`` or ``None``.
"""

from __future__ import annotations

import base64
import dataclasses
import json
import math
import numbers
import re
from collections.abc import Mapping, Set
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Callable, Dict

from .types import NormalizedValue

FUNCTION_MARKER = "[Function]"
UNSERIALIZABLE_MARKER = "[Unserializable Object]"


class ValueKind(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    DATETIME = "datetime"
    BINARY = "binary"
    PATTERN = "pattern"
    ERROR = "error"
    CALLABLE = "callable"
    ARRAY = "array"
    MAPPING = "mapping"
    OPAQUE = "opaque"


def kind_of(value: Any) -> ValueKind:
    """Classify a raw value.

    Order matters: ``bool`` is an ``int`` subclass and ``datetime`` is a
    ``date`` subclass.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, numbers.Real):
        return ValueKind.NUMBER
    if isinstance(value, (datetime, date, time)):
        return ValueKind.DATETIME
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BINARY
    if isinstance(value, re.Pattern):
        return ValueKind.PATTERN
    if isinstance(value, BaseException):
        return ValueKind.ERROR
    if isinstance(value, (list, tuple, Set)):
        return ValueKind.ARRAY
    if isinstance(value, Mapping) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        return ValueKind.MAPPING
    if callable(value):
        return ValueKind.CALLABLE
    return ValueKind.OPAQUE


def _number(value: numbers.Real) -> NormalizedValue:
    if isinstance(value, int):
        return value
    try:
        as_float = float(value)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(as_float):
        return None
    return value if isinstance(value, float) else as_float


def _datetime(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        iso = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        return iso.replace("+00:00", "Z")
    return value.isoformat()


def _binary(value: Any) -> str:
    return base64.b64encode(bytes(value)).decode("ascii")


def _pattern(value: re.Pattern) -> str:
    source = value.pattern
    if isinstance(source, bytes):
        return source.decode("utf-8", errors="replace")
    return source


def _error(value: BaseException) -> str:
    return str(value) or type(value).__name__


def _jsonable(value: Any, path: frozenset) -> Any:
    kind = kind_of(value)
    if kind not in (ValueKind.ARRAY, ValueKind.MAPPING):
        return normalize(value)
    if id(value) in path:
        raise ValueError("Circular reference detected")
    path = path | {id(value)}
    if kind is ValueKind.ARRAY:
        items = sorted(value, key=repr) if isinstance(value, Set) else value
        return [_jsonable(item, path) for item in items]
    if not isinstance(value, Mapping):
        value = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return {str(k): _jsonable(v, path) for k, v in value.items()}


def _json(value: Any) -> str:
    try:
        return json.dumps(
            _jsonable(value, frozenset()),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError, RecursionError):
        return UNSERIALIZABLE_MARKER


_HANDLERS: Dict[ValueKind, Callable[[Any], NormalizedValue]] = {
    ValueKind.STRING: lambda v: v,
    ValueKind.NUMBER: _number,
    ValueKind.BOOLEAN: lambda v: v,
    ValueKind.NULL: lambda v: None,
    ValueKind.DATETIME: _datetime,
    ValueKind.BINARY: _binary,
    ValueKind.PATTERN: _pattern,
    ValueKind.ERROR: _error,
    ValueKind.CALLABLE: lambda v: FUNCTION_MARKER,
    ValueKind.ARRAY: _json,
    ValueKind.MAPPING: _json,
    ValueKind.OPAQUE: str,
}


def normalize(value: Any) -> NormalizedValue:
    """Rewrite a value into a storage-safe primitive.

    Args:
        value: Any value a property source may contain.

    Returns:
        A string, finite number, boolean or None. Applying this function to
        its own output returns the output unchanged.
    """
    return _HANDLERS[kind_of(value)](value)


def normalize_entries(entries: Mapping[str, Any]) -> Dict[str, NormalizedValue]:
    """Normalize every value of a mapping; keys are kept as they are."""
    return {key: normalize(value) for key, value in entries.items()}
