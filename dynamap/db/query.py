from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..codec.attributes import flatten_item, format_item
from ..observability.logging import get_logger
from .capacity import sum_consumed_capacity
from .client import StoreClient

log = get_logger("dynamap.query")


@dataclass(slots=True)
class QueryResult:
    items: list[dict[str, Any]] = field(default_factory=list)
    consumed_capacity: float = 0.0


class Query:
    def __init__(self, client: StoreClient, table_name: str):
        self.client = client
        self.table_name = str(table_name)

    def get_item(self, key: Mapping[str, Any]) -> QueryResult | None:
        """Fetch one item by its full primary key; None when it doesn't exist."""
        wire_key = {k: v.to_wire() for k, v in format_item(key).items()}
        raw, report = self.client.get_item(self.table_name, wire_key)
        cc = sum_consumed_capacity(report, self.table_name)
        log.info("get_item", table_name=self.table_name, found=raw is not None, consumed_capacity=cc)

        if raw is None:
            return None
        return QueryResult(items=[flatten_item(raw)], consumed_capacity=cc)
