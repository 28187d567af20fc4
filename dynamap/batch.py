"""Grouping of save/delete calls into deferred batches.

A batch is not a transaction. It only reduces the number of calls made to
DynamoDB: operations queue up inside a `with coordinator.in_batch():` block and
are written on exit.

    with coordinator.in_batch():
        coordinator.save_model(person1)
        coordinator.save_model(person2)

Each thread and each asyncio task has its own stack of open batches, kept in a
context variable. A batch is only visible to the thread/task that opened it, so
tasks spawned inside a batch block write directly instead of joining it.
"""

from __future__ import annotations

import asyncio
import enum
import threading
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Iterator, Mapping

from .db.persistence import ExecutionResult, Operation, PersistenceExecutor, get_main_executor
from .errors import BatchStateError, Rollback
from .observability.context import batch_id_var
from .observability.logging import get_logger

log = get_logger("dynamap.batch")


def _current_owner() -> tuple[int, int | None]:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    return (threading.get_ident(), id(task) if task is not None else None)


class BatchState(str, enum.Enum):
    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass(slots=True)
class Batch:
    batch_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operations: list[Operation] = field(default_factory=list)
    state: BatchState = BatchState.OPEN
    result: ExecutionResult | None = None
    owner: tuple[int, int | None] = field(default_factory=_current_owner, repr=False)

    def add(self, operation: Operation) -> None:
        if self.state is not BatchState.OPEN:
            raise BatchStateError(
                message=f"Can't add to a {self.state.value} batch",
                batch_id=self.batch_id,
            )
        self.operations.append(operation)
        log.info("batch_item_added", batch_id=self.batch_id, kind=operation.kind.value)

    def commit(self, executor: PersistenceExecutor) -> ExecutionResult:
        if self.state is not BatchState.OPEN:
            raise BatchStateError(
                message=f"Can't commit a {self.state.value} batch",
                batch_id=self.batch_id,
            )
        self.state = BatchState.COMMITTED
        ops, self.operations = self.operations, []
        self.result = executor.perform_requests(ops)
        log.info(
            "batch_committed",
            batch_id=self.batch_id,
            operation_count=len(ops),
            call_count=self.result.call_count,
            consumed_capacity=self.result.consumed_capacity,
        )
        return self.result

    def abort(self) -> None:
        dropped = len(self.operations)
        self.operations = []
        self.state = BatchState.ABORTED
        log.info("batch_aborted", batch_id=self.batch_id, dropped=dropped)


class BatchCoordinator:
    """Routes save/delete calls into the current batch, or straight to the executor."""

    def __init__(
        self,
        executor: PersistenceExecutor | None = None,
        *,
        executor_factory: Callable[[], PersistenceExecutor] = get_main_executor,
    ):
        self._executor = executor
        self._executor_factory = executor_factory
        self._stack: ContextVar[tuple[Batch, ...]] = ContextVar(
            f"dynamap_batch_stack_{id(self):x}", default=()
        )

    @property
    def executor(self) -> PersistenceExecutor:
        if self._executor is None:
            self._executor = self._executor_factory()
        return self._executor

    # --- stack ---

    def current_batch(self) -> Batch | None:
        stack = self._stack.get()
        if not stack or stack[-1].owner != _current_owner():
            return None
        return stack[-1]

    def begin_batch(self) -> Batch:
        batch = Batch()
        self._stack.set(self._stack.get() + (batch,))
        batch_id_var.set(batch.batch_id)
        log.info("batch_started", batch_id=batch.batch_id)
        return batch

    def _pop(self) -> Batch:
        batch = self.current_batch()
        if batch is None:
            raise BatchStateError(message="No batch in progress")
        stack = self._stack.get()[:-1]
        self._stack.set(stack)
        batch_id_var.set(stack[-1].batch_id if stack else None)
        return batch

    def commit_current_batch(self) -> ExecutionResult:
        return self._pop().commit(self.executor)

    def abort_current_batch(self) -> None:
        self._pop().abort()

    @contextmanager
    def in_batch(self) -> Iterator[Batch]:
        """
        Run the block in a new batch.

        Normal exit commits the queued operations. Raising `Rollback` drops them
        quietly. Any other exception drops them and is re-raised unchanged.
        """
        batch = self.begin_batch()
        try:
            yield batch
        except Rollback:
            self.abort_current_batch()
        except BaseException:
            self.abort_current_batch()
            raise
        else:
            self.commit_current_batch()

    # --- routing ---

    def save_model(self, item: Mapping[str, Any]) -> bool:
        batch = self.current_batch()
        if batch is not None:
            batch.add(Operation.put(item))
            return True
        return self.executor.save_model(item)

    def save_model_or_raise(self, item: Mapping[str, Any]) -> None:
        batch = self.current_batch()
        if batch is not None:
            batch.add(Operation.put(item))
            return
        self.executor.save_model_or_raise(item)

    def delete_model(self, key: Mapping[str, Any]) -> bool:
        batch = self.current_batch()
        if batch is not None:
            batch.add(Operation.delete(key))
            return True
        return self.executor.delete_model(key)

    def delete_model_or_raise(self, key: Mapping[str, Any]) -> None:
        batch = self.current_batch()
        if batch is not None:
            batch.add(Operation.delete(key))
            return
        self.executor.delete_model_or_raise(key)


@lru_cache(maxsize=1)
def get_coordinator() -> BatchCoordinator:
    return BatchCoordinator()
