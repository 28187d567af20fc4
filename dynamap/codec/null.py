from __future__ import annotations


class NullValue:
    """Placeholder for an explicit DynamoDB NULL attribute."""

    _instance: NullValue | None = None

    def __new__(cls) -> NullValue:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NULL"

    def __reduce__(self):
        return (NullValue, ())


NULL = NullValue()
