from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..errors import FormatError


@dataclass(frozen=True, slots=True)
class WireValue:
    """
    One DynamoDB attribute value.

    Exactly one field is populated. `null` counts as populated only when True
    and the sets only when non-empty, since DynamoDB has no empty set;
    every other field counts when it is not None (so `s=""` and `boolean=False`
    are valid values).
    """

    null: bool | None = None
    boolean: bool | None = None
    s: str | None = None
    n: str | None = None
    m: dict[str, WireValue] | None = None
    l: list[WireValue] | None = None  # noqa: E741
    ss: tuple[str, ...] | None = None
    ns: tuple[str, ...] | None = None

    # --- constructors ---

    @classmethod
    def of_null(cls) -> WireValue:
        return cls(null=True)

    @classmethod
    def of_bool(cls, value: bool) -> WireValue:
        return cls(boolean=bool(value))

    @classmethod
    def of_str(cls, value: str) -> WireValue:
        return cls(s=value)

    @classmethod
    def of_num(cls, value: str) -> WireValue:
        return cls(n=value)

    @classmethod
    def of_map(cls, value: dict[str, WireValue]) -> WireValue:
        return cls(m=value)

    @classmethod
    def of_list(cls, value: list[WireValue]) -> WireValue:
        return cls(l=value)

    @classmethod
    def of_str_set(cls, values: tuple[str, ...]) -> WireValue:
        return cls(ss=tuple(values))

    @classmethod
    def of_num_set(cls, values: tuple[str, ...]) -> WireValue:
        return cls(ns=tuple(values))

    # --- boto3 low-level client shape ---

    def to_wire(self) -> dict[str, Any]:
        if self.s is not None:
            return {"S": self.s}
        if self.n is not None:
            return {"N": self.n}
        if self.ss:
            return {"SS": list(self.ss)}
        if self.ns:
            return {"NS": list(self.ns)}
        if self.m is not None:
            return {"M": {k: v.to_wire() for k, v in self.m.items()}}
        if self.l is not None:
            return {"L": [v.to_wire() for v in self.l]}
        if self.null is True:
            return {"NULL": True}
        if self.boolean is not None:
            return {"BOOL": self.boolean}
        raise FormatError(message="Unexpected value type")

    @classmethod
    def from_wire(cls, raw: Any) -> WireValue:
        if isinstance(raw, WireValue):
            return raw
        if not isinstance(raw, dict):
            raise FormatError(message="Not an attribute type")

        if "S" in raw:
            return cls(s=str(raw["S"]))
        if "N" in raw:
            return cls(n=str(raw["N"]))
        if raw.get("SS"):
            return cls(ss=tuple(str(v) for v in raw["SS"]))
        if raw.get("NS"):
            return cls(ns=tuple(str(v) for v in raw["NS"]))
        if "M" in raw:
            m = raw["M"] or {}
            return cls(m={str(k): cls.from_wire(v) for k, v in m.items()})
        if "L" in raw:
            return cls(l=[cls.from_wire(v) for v in (raw["L"] or [])])
        if raw.get("NULL") is True:
            return cls(null=True)
        if "BOOL" in raw and raw["BOOL"] is not None:
            return cls(boolean=bool(raw["BOOL"]))
        # Unknown or binary shapes come back empty; flatten() rejects them.
        return cls()
