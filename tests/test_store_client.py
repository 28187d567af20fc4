from __future__ import annotations

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import Stubber

from dynamap.db import retry as retry_mod
from dynamap.db.client import Boto3StoreClient
from dynamap.db.errors import DdbInternal, DdbThrottled, DdbUnavailable, DdbValidation
from dynamap.db.persistence import Operation, PersistenceExecutor
from dynamap.db.retry import RetryPolicy, ddb_call, map_botocore_error
from dynamap.errors import PersistenceError


@pytest.fixture
def ddb(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    client = boto3.client("dynamodb", region_name="us-east-1")
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"RequestId": "req-1"}}, "Op")


def test_batch_write_sends_grouped_requests(ddb):
    client, stubber = ddb
    op = Operation.put({"pk": "p1", "n": 1})
    stubber.add_response(
        "batch_write_item",
        {"ConsumedCapacity": [{"TableName": "people", "CapacityUnits": 1.0}], "UnprocessedItems": {}},
        {
            "RequestItems": {"people": [op.to_request()]},
            "ReturnConsumedCapacity": "TOTAL",
            "ReturnItemCollectionMetrics": "SIZE",
        },
    )

    result = PersistenceExecutor(Boto3StoreClient(client), "people").perform_requests([op])
    assert result.call_count == 1
    assert result.consumed_capacity == pytest.approx(1.0)


def test_get_item_returns_raw_item_and_report(ddb):
    client, stubber = ddb
    key = {"pk": {"S": "p1"}}
    stubber.add_response(
        "get_item",
        {
            "Item": {"pk": {"S": "p1"}, "name": {"S": "Maddie"}},
            "ConsumedCapacity": {"TableName": "people", "CapacityUnits": 0.5},
        },
        {"TableName": "people", "Key": key, "ReturnConsumedCapacity": "TOTAL"},
    )

    item, report = Boto3StoreClient(client).get_item("people", key)
    assert item == {"pk": {"S": "p1"}, "name": {"S": "Maddie"}}
    assert report == {"TableName": "people", "CapacityUnits": 0.5}


def test_validation_errors_are_not_retried(ddb):
    client, stubber = ddb
    stubber.add_client_error("batch_write_item", service_error_code="ValidationException")

    with pytest.raises(DdbValidation) as exc:
        Boto3StoreClient(client).batch_write("people", [Operation.put({"pk": "p"}).to_request()])
    assert exc.value.operation == "BatchWriteItem"
    assert exc.value.table_name == "people"


def test_throttling_is_retried_then_succeeds(ddb, monkeypatch):
    client, stubber = ddb
    monkeypatch.setattr(retry_mod.time, "sleep", lambda _s: None)
    stubber.add_client_error("batch_write_item", service_error_code="ProvisionedThroughputExceededException")
    stubber.add_response("batch_write_item", {"ConsumedCapacity": [{"TableName": "people", "CapacityUnits": 2.0}]})

    report = Boto3StoreClient(client, retry_policy=RetryPolicy(max_attempts=3)).batch_write(
        "people", [Operation.put({"pk": "p"}).to_request()]
    )
    assert report == [{"TableName": "people", "CapacityUnits": 2.0}]


def test_unprocessed_items_are_resent(ddb, monkeypatch):
    client, stubber = ddb
    monkeypatch.setattr(retry_mod.time, "sleep", lambda _s: None)
    p1 = Operation.put({"pk": "p1"})
    p2 = Operation.put({"pk": "p2"})
    stubber.add_response(
        "batch_write_item",
        {
            "ConsumedCapacity": [{"TableName": "people", "CapacityUnits": 1.0}],
            "UnprocessedItems": {"people": [p2.to_request()]},
        },
        {
            "RequestItems": {"people": [p1.to_request(), p2.to_request()]},
            "ReturnConsumedCapacity": "TOTAL",
            "ReturnItemCollectionMetrics": "SIZE",
        },
    )
    stubber.add_response(
        "batch_write_item",
        {"ConsumedCapacity": [{"TableName": "people", "CapacityUnits": 1.0}], "UnprocessedItems": {}},
        {
            "RequestItems": {"people": [p2.to_request()]},
            "ReturnConsumedCapacity": "TOTAL",
            "ReturnItemCollectionMetrics": "SIZE",
        },
    )

    result = PersistenceExecutor(Boto3StoreClient(client), "people").perform_requests([p1, p2])
    assert result.call_count == 1
    assert result.consumed_capacity == pytest.approx(2.0)


def test_items_left_unprocessed_fail_the_write(ddb, monkeypatch):
    client, stubber = ddb
    monkeypatch.setattr(retry_mod.time, "sleep", lambda _s: None)
    stuck = {"UnprocessedItems": {"people": [Operation.put({"pk": "p1"}).to_request()]}}
    for _ in range(4):
        stubber.add_response("batch_write_item", stuck)

    executor = PersistenceExecutor(Boto3StoreClient(client, retry_policy=RetryPolicy(max_attempts=2)), "people")
    assert executor.save_model({"pk": "p1"}) is False

    with pytest.raises(PersistenceError) as exc:
        executor.save_model_or_raise({"pk": "p1"})
    assert isinstance(exc.value.cause, DdbThrottled)
    assert exc.value.cause.operation == "BatchWriteItem"


def test_ddb_call_gives_up_after_max_attempts(monkeypatch):
    monkeypatch.setattr(retry_mod.time, "sleep", lambda _s: None)
    attempts = []

    def _op():
        attempts.append(1)
        raise _client_error("ThrottlingException")

    with pytest.raises(DdbThrottled) as exc:
        ddb_call("BatchWriteItem", _op, retry_policy=RetryPolicy(max_attempts=3))
    assert len(attempts) == 3
    assert exc.value.aws_request_id == "req-1"
    assert isinstance(exc.value.cause, ClientError)


def test_ddb_call_does_not_wrap_unrelated_errors():
    def _op():
        raise KeyError("boom")

    with pytest.raises(KeyError):
        ddb_call("GetItem", _op)


def test_error_mapping():
    def _map(exc):
        return map_botocore_error(operation="Op", table_name="t", key=None, exc=exc)

    assert isinstance(_map(_client_error("ValidationException")), DdbValidation)
    assert isinstance(_map(_client_error("ResourceNotFoundException")), DdbUnavailable)
    assert isinstance(_map(_client_error("InternalServerError")), DdbThrottled)
    assert isinstance(_map(_client_error("SomethingElse")), DdbInternal)
    assert "SomethingElse" in str(_map(_client_error("SomethingElse")))

    unavailable = _map(EndpointConnectionError(endpoint_url="http://localhost:8000"))
    assert isinstance(unavailable, DdbUnavailable)
    assert unavailable.retryable is True

    already = DdbInternal(message="x")
    assert _map(already) is already
