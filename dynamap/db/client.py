from __future__ import annotations

from functools import lru_cache
from typing import Any, Mapping, Protocol

import boto3
from botocore.config import Config

from ..observability.logging import get_logger
from ..settings import settings
from .capacity import ConsumedCapacityReport
from .errors import DdbThrottled
from .retry import RetryPolicy, _sleep_backoff, ddb_call

log = get_logger("dynamap.client")


class StoreClient(Protocol):
    """The two DynamoDB calls this package needs.

    Implementations raise `DdbError` subclasses on failure.
    """

    def batch_write(self, table_name: str, requests: list[dict[str, Any]]) -> ConsumedCapacityReport:
        ...

    def get_item(
        self, table_name: str, key: dict[str, Any]
    ) -> tuple[dict[str, Any] | None, ConsumedCapacityReport]:
        ...


@lru_cache(maxsize=1)
def botocore_config() -> Config:
    # Keep botocore retries enabled (adaptive is best-effort); ddb_call adds an
    # app-layer retry for throttling.
    return Config(
        retries={"max_attempts": 10, "mode": "adaptive"},
        connect_timeout=2,
        read_timeout=10,
    )


@lru_cache(maxsize=1)
def dynamodb_client():
    kwargs: dict[str, Any] = {
        "region_name": settings.aws_region,
        "config": botocore_config(),
    }
    if settings.ddb_endpoint_url:
        kwargs["endpoint_url"] = settings.ddb_endpoint_url
    return boto3.client("dynamodb", **kwargs)


class Boto3StoreClient:
    """`StoreClient` over the boto3 low-level DynamoDB client."""

    def __init__(self, client: Any = None, *, retry_policy: RetryPolicy | None = None):
        self._client = client
        self._retry_policy = retry_policy

    @property
    def client(self):
        if self._client is None:
            self._client = dynamodb_client()
        return self._client

    def batch_write(self, table_name: str, requests: list[dict[str, Any]]) -> ConsumedCapacityReport:
        """
        Write one group of requests, resending whatever DynamoDB leaves unprocessed.

        Raises `DdbThrottled` when requests are still unprocessed after the last
        attempt, so a partial write is never reported as a success.
        """
        policy = self._retry_policy or RetryPolicy()
        attempts = max(1, int(policy.max_attempts))
        pending = requests
        reports: list[Mapping[str, Any]] = []

        for attempt in range(1, attempts + 1):
            def _op(items=pending):
                return self.client.batch_write_item(
                    RequestItems={table_name: items},
                    ReturnConsumedCapacity="TOTAL",
                    ReturnItemCollectionMetrics="SIZE",
                )

            resp = ddb_call("BatchWriteItem", _op, table_name=table_name, retry_policy=self._retry_policy)

            report = resp.get("ConsumedCapacity")
            if isinstance(report, Mapping):
                reports.append(report)
            elif report:
                reports.extend(report)

            pending = (resp.get("UnprocessedItems") or {}).get(table_name) or []
            if not pending:
                return reports

            log.warning(
                "batch_write_unprocessed_items",
                table_name=table_name,
                count=len(pending),
                requested=len(requests),
                attempt=attempt,
            )
            if attempt < attempts:
                _sleep_backoff(policy, attempt)

        raise DdbThrottled(
            message=f"DynamoDB left {len(pending)} of {len(requests)} write requests unprocessed",
            operation="BatchWriteItem",
            table_name=table_name,
            retryable=True,
        )

    def get_item(
        self, table_name: str, key: dict[str, Any]
    ) -> tuple[dict[str, Any] | None, ConsumedCapacityReport]:
        def _op():
            return self.client.get_item(
                TableName=table_name,
                Key=key,
                ReturnConsumedCapacity="TOTAL",
            )

        resp = ddb_call("GetItem", _op, table_name=table_name, key=key, retry_policy=self._retry_policy)
        return resp.get("Item"), resp.get("ConsumedCapacity")


@lru_cache(maxsize=1)
def shared_store_client() -> Boto3StoreClient:
    return Boto3StoreClient()
