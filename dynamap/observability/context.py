from __future__ import annotations

from contextvars import ContextVar

# Id of the innermost open batch in the current thread/task, for log lines.
batch_id_var: ContextVar[str | None] = ContextVar("dynamap_batch_id", default=None)


def get_batch_id() -> str | None:
    return batch_id_var.get()
