"""dynamap: DynamoDB value marshaling and batched writes."""

from __future__ import annotations

from .batch import Batch, BatchCoordinator, get_coordinator
from .codec import NULL, NullValue, PrimaryKey, WireValue, flatten_item, flatten_value, format_item, format_value
from .db.persistence import ExecutionResult, Operation, PersistenceExecutor
from .errors import (
    BatchStateError,
    DecodeError,
    DynamapError,
    FormatError,
    HeterogeneousSetError,
    PersistenceError,
    Rollback,
)

__version__ = "0.1.0"

__all__ = [
    "NULL",
    "Batch",
    "BatchCoordinator",
    "BatchStateError",
    "DecodeError",
    "DynamapError",
    "ExecutionResult",
    "FormatError",
    "HeterogeneousSetError",
    "NullValue",
    "Operation",
    "PersistenceError",
    "PersistenceExecutor",
    "PrimaryKey",
    "Rollback",
    "WireValue",
    "flatten_item",
    "flatten_value",
    "format_item",
    "format_value",
    "get_coordinator",
]
