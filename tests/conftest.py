from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure the repo root is on sys.path so `import dynamap` works without installing.
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))


class FakeStoreClient:
    """In-memory StoreClient that records every call."""

    def __init__(self, *, capacity_per_call: float = 1.0, table_name: str = "dynamap_test"):
        self.capacity_per_call = capacity_per_call
        self.table_name = table_name
        self.batch_calls: list[tuple[str, list[dict[str, Any]]]] = []
        self.get_calls: list[tuple[str, dict[str, Any]]] = []
        self.items: dict[str, dict[str, Any]] = {}
        self.fail_with: Exception | None = None

    def batch_write(self, table_name: str, requests: list[dict[str, Any]]):
        if self.fail_with is not None:
            raise self.fail_with
        self.batch_calls.append((table_name, requests))
        for req in requests:
            if "PutRequest" in req:
                item = req["PutRequest"]["Item"]
                self.items[item["pk"]["S"]] = item
            else:
                self.items.pop(req["DeleteRequest"]["Key"]["pk"]["S"], None)
        return [{"TableName": table_name, "CapacityUnits": self.capacity_per_call}]

    def get_item(self, table_name: str, key: dict[str, Any]):
        self.get_calls.append((table_name, key))
        item = self.items.get(key["pk"]["S"])
        return item, {"TableName": table_name, "CapacityUnits": 0.5}

    @property
    def request_count(self) -> int:
        return sum(len(reqs) for _, reqs in self.batch_calls)


@pytest.fixture
def store() -> FakeStoreClient:
    return FakeStoreClient()


@pytest.fixture
def executor(store):
    from dynamap.db.persistence import PersistenceExecutor

    return PersistenceExecutor(store, "dynamap_test")


@pytest.fixture
def coordinator(executor):
    from dynamap.batch import BatchCoordinator

    return BatchCoordinator(executor)
