from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class DynamapError(Exception):
    """Base error for value marshaling and batched persistence."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class FormatError(DynamapError):
    """A value can't be converted to or from the DynamoDB attribute format."""

    pass


@dataclass(slots=True)
class HeterogeneousSetError(FormatError):
    """A set mixes element kinds that no single DynamoDB set type can hold."""

    kinds: tuple[str, ...] = ()


@dataclass(slots=True)
class DecodeError(DynamapError):
    """An opaque model identifier could not be parsed."""

    pass


@dataclass(slots=True)
class PersistenceError(DynamapError):
    operation: str | None = None
    cause: Exception | None = None


@dataclass(slots=True)
class BatchStateError(DynamapError):
    batch_id: str | None = None


class Rollback(Exception):
    """
    Raise inside `BatchCoordinator.in_batch()` to quietly drop the batch.

    All queued operations are discarded and the scope exits without an error.
    """
