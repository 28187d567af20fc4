"""Value marshaling between Python and DynamoDB's attribute format."""

from __future__ import annotations

from .attributes import flatten_item, flatten_value, format_item, format_value
from .null import NULL, NullValue
from .primary_key import PrimaryKey
from .wire import WireValue

__all__ = [
    "NULL",
    "NullValue",
    "PrimaryKey",
    "WireValue",
    "flatten_item",
    "flatten_value",
    "format_item",
    "format_value",
]
