from __future__ import annotations

from typing import Any, Mapping, Sequence, Union

# A single `{"TableName": ..., "CapacityUnits": ...}` entry or a list of them.
ConsumedCapacityReport = Union[Mapping[str, Any], Sequence[Mapping[str, Any]], None]


def sum_consumed_capacity(report: ConsumedCapacityReport, table_name: str | None) -> float:
    """
    Total the capacity units in a DynamoDB consumed-capacity report.

    When `table_name` is given, entries for other tables are ignored.
    """
    if report is None:
        return 0.0
    entries = [report] if isinstance(report, Mapping) else list(report)

    if table_name:
        entries = [e for e in entries if (e or {}).get("TableName") == table_name]

    return sum((float((e or {}).get("CapacityUnits") or 0.0) for e in entries), 0.0)
