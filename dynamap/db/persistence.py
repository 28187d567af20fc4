"""Batched writes to a DynamoDB table.

This is not a transaction. Grouping only cuts down the number of
BatchWriteItem calls; a failure part-way leaves earlier groups written.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..codec.attributes import format_item
from ..codec.wire import WireValue
from ..errors import PersistenceError
from ..observability.logging import get_logger
from .capacity import sum_consumed_capacity
from .client import StoreClient
from .errors import DdbError

log = get_logger("dynamap.persistence")

# BatchWriteItem group size used for every commit.
DEFAULT_GROUP_SIZE = 10


class OperationKind(str, enum.Enum):
    PUT = "put"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class Operation:
    kind: OperationKind
    item: Mapping[str, WireValue] = field(default_factory=dict)

    @classmethod
    def put(cls, item: Mapping[str, Any]) -> Operation:
        return cls(kind=OperationKind.PUT, item=format_item(item))

    @classmethod
    def delete(cls, key: Mapping[str, Any]) -> Operation:
        return cls(kind=OperationKind.DELETE, item=format_item(key))

    def to_request(self) -> dict[str, Any]:
        wire = {k: v.to_wire() for k, v in self.item.items()}
        if self.kind is OperationKind.PUT:
            return {"PutRequest": {"Item": wire}}
        return {"DeleteRequest": {"Key": wire}}


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    consumed_capacity: float = 0.0
    call_count: int = 0


def _chunks(operations: list[Operation], size: int) -> Iterable[list[Operation]]:
    for i in range(0, len(operations), size):
        yield operations[i : i + size]


class PersistenceExecutor:
    def __init__(self, client: StoreClient, table_name: str):
        self.client = client
        self.table_name = str(table_name)

    def perform_requests(
        self,
        operations: Iterable[Operation],
        group_size: int = DEFAULT_GROUP_SIZE,
    ) -> ExecutionResult:
        """
        Write `operations` in consecutive groups of at most `group_size` (1 to 10).

        One BatchWriteItem call is made per group, one after another and in input
        order. `call_count` is the number of calls made, not the number of
        operations.
        """
        if not 1 <= int(group_size) <= DEFAULT_GROUP_SIZE:
            raise ValueError(f"group_size must be between 1 and {DEFAULT_GROUP_SIZE}")
        ops = list(operations)

        log.info(
            "batch_write_requests",
            table_name=self.table_name,
            operation_count=len(ops),
            group_size=group_size,
        )

        consumed: list[float] = []
        for chunk in _chunks(ops, int(group_size)):
            consumed.append(self._perform_chunk(chunk))

        return ExecutionResult(consumed_capacity=sum(consumed, 0.0), call_count=len(consumed))

    def _perform_chunk(self, chunk: list[Operation]) -> float:
        requests = [op.to_request() for op in chunk]
        report = self.client.batch_write(self.table_name, requests)
        cc = sum_consumed_capacity(report, self.table_name)
        log.info(
            "batch_write_call",
            table_name=self.table_name,
            request_count=len(requests),
            consumed_capacity=cc,
        )
        return cc

    # --- single item convenience ---

    def _perform_single(self, op: Operation) -> DdbError | None:
        """Run one operation; return the store error instead of raising it."""
        try:
            self.perform_requests([op])
        except DdbError as e:
            log.warning(
                "persistence_failed",
                table_name=self.table_name,
                kind=op.kind.value,
                error=str(e),
                operation=e.operation,
            )
            return e
        return None

    def save_model(self, item: Mapping[str, Any]) -> bool:
        return self._perform_single(Operation.put(item)) is None

    def save_model_or_raise(self, item: Mapping[str, Any]) -> None:
        err = self._perform_single(Operation.put(item))
        if err is None:
            return
        raise PersistenceError(message="Failed to save!", operation="save", cause=err) from err

    def delete_model(self, key: Mapping[str, Any]) -> bool:
        return self._perform_single(Operation.delete(key)) is None

    def delete_model_or_raise(self, key: Mapping[str, Any]) -> None:
        err = self._perform_single(Operation.delete(key))
        if err is None:
            return
        raise PersistenceError(message="Failed to delete!", operation="delete", cause=err) from err


def get_main_executor() -> PersistenceExecutor:
    from ..settings import settings
    from .client import shared_store_client
    from .errors import DdbInternal

    if not settings.ddb_table_name:
        raise DdbInternal(message="DDB_TABLE_NAME is not set", operation="Config")
    return PersistenceExecutor(shared_store_client(), settings.ddb_table_name)
