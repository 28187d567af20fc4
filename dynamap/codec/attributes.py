"""Conversion between dynamic Python values and DynamoDB attribute values.

`format_value` turns a Python value into a `WireValue`; `flatten_value` turns a
`WireValue` back into a Python value. Supported categories, in the order they
are checked:

- bool
- None / NULL
- text (str and Enum members)
- numbers (int, float, Decimal)
- instants (datetime, date), stored as epoch seconds
- mappings
- lists and tuples
- sets

Numbers come back as float when their decimal string carries a fractional part
or exponent, otherwise as int.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable

from ..errors import FormatError, HeterogeneousSetError
from .null import NULL, NullValue
from .wire import WireValue

_NUMERIC_TYPES = (int, float, Decimal)


def _is_text(value: Any) -> bool:
    return isinstance(value, (str, enum.Enum))


def _is_number(value: Any) -> bool:
    return isinstance(value, _NUMERIC_TYPES) and not isinstance(value, bool)


def _text(value: Any) -> str:
    if isinstance(value, enum.Enum):
        v = value.value
        return v if isinstance(v, str) else value.name
    return str(value)


def _number_text(value: int | float | Decimal) -> str:
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise FormatError(message=f"Can't store a non-finite number <{value!r}>")
        return repr(value)
    if not value.is_finite():
        raise FormatError(message=f"Can't store a non-finite number <{value}>")
    return str(value)


def _epoch_seconds(value: date) -> int:
    if isinstance(value, datetime):
        dt = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    else:
        dt = datetime.combine(value, time.min, tzinfo=timezone.utc)
    return int(dt.timestamp())


def _format_bool(value: bool) -> WireValue:
    return WireValue.of_bool(value)


def _format_null(_: Any) -> WireValue:
    return WireValue.of_null()


def _format_text(value: Any) -> WireValue:
    return WireValue.of_str(_text(value))


def _format_number(value: Any) -> WireValue:
    return WireValue.of_num(_number_text(value))


def _format_instant(value: date) -> WireValue:
    return WireValue.of_num(str(_epoch_seconds(value)))


def _format_mapping(value: Mapping[Any, Any]) -> WireValue:
    if not value:
        return WireValue.of_null()
    return WireValue.of_map({_text(k): format_value(v) for k, v in value.items()})


def _format_sequence(value: list[Any] | tuple[Any, ...]) -> WireValue:
    if not value:
        return WireValue.of_null()
    return WireValue.of_list([format_value(v) for v in value])


def _format_set(value: set[Any] | frozenset[Any]) -> WireValue:
    if not value:
        return WireValue.of_null()

    kinds = {type(v) for v in value}
    if len(kinds) != 1 and not all(_is_number_kind(k) for k in kinds):
        names = tuple(sorted(k.__name__ for k in kinds))
        raise HeterogeneousSetError(
            message=f"Set must only contain one type of value, got {', '.join(names)}",
            kinds=names,
        )

    first = next(iter(kinds))
    if issubclass(first, (str, enum.Enum)):
        return WireValue.of_str_set(tuple(dict.fromkeys(_text(v) for v in value)))
    if _is_number_kind(first):
        return WireValue.of_num_set(_unique_numbers(_number_text(v) for v in value))
    raise FormatError(message=f"Unexpected set type {first.__name__}")


def _unique_numbers(texts: Iterable[str]) -> tuple[str, ...]:
    # "1.1" and "1.10" are the same DynamoDB number; keep one spelling of each.
    seen: dict[Decimal, str] = {}
    for text in texts:
        seen.setdefault(Decimal(text), text)
    return tuple(seen.values())


def _is_number_kind(kind: type) -> bool:
    return issubclass(kind, _NUMERIC_TYPES) and not issubclass(kind, bool)


# Checked in order; bool must come before numbers since bool is an int.
_FORMATTERS: tuple[tuple[Callable[[Any], bool], Callable[[Any], WireValue]], ...] = (
    (lambda v: isinstance(v, bool), _format_bool),
    (lambda v: v is None or isinstance(v, NullValue), _format_null),
    (_is_text, _format_text),
    (_is_number, _format_number),
    (lambda v: isinstance(v, date), _format_instant),
    (lambda v: isinstance(v, Mapping), _format_mapping),
    (lambda v: isinstance(v, (list, tuple)), _format_sequence),
    (lambda v: isinstance(v, (set, frozenset)), _format_set),
)


def format_value(value: Any) -> WireValue:
    for matches, formatter in _FORMATTERS:
        if matches(value):
            return formatter(value)
    raise FormatError(message=f"Unexpected value type {type(value).__name__} <{value!r}>")


def parse_number(text: str) -> int | float:
    if "." in text or "e" in text or "E" in text:
        return float(text)
    return int(text)


def flatten_value(value: WireValue) -> Any:
    if not isinstance(value, WireValue):
        raise FormatError(message="Not an attribute type")

    try:
        if value.s is not None:
            return value.s
        if value.n is not None:
            return parse_number(value.n)
        if value.ss:
            return set(value.ss)
        if value.ns:
            return {parse_number(v) for v in value.ns}
    except ValueError as e:
        raise FormatError(message=f"Invalid number from DynamoDB: {e}") from e

    if value.m is not None:
        return {k: flatten_value(v) for k, v in value.m.items()}
    if value.l is not None:
        return [flatten_value(v) for v in value.l]
    if value.null is True:
        return NULL
    if value.boolean is not None:
        return value.boolean
    raise FormatError(message="Unexpected value type from DynamoDB")


def format_item(item: Mapping[str, Any]) -> dict[str, WireValue]:
    """
    Format every attribute of an item.

    Values that are already `WireValue`s are kept as they are.
    """
    out: dict[str, WireValue] = {}
    for key, value in item.items():
        out[_text(key)] = value if isinstance(value, WireValue) else format_value(value)
    return out


def flatten_item(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten an item in either `WireValue` or boto3 low-level dict form."""
    return {str(k): flatten_value(WireValue.from_wire(v)) for k, v in raw.items()}
