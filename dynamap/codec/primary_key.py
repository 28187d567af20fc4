from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass

from ..errors import DecodeError


def _presence(value: str | None) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s.strip() else None


def underscore(name: str) -> str:
    """`PersonRecord` -> `person_record`, `HTTPServer` -> `http_server`."""
    s = re.sub(r"([A-Z\d]+)([A-Z][a-z])", r"\1_\2", name)
    s = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s)
    return s.replace("-", "_").lower()


def camelize(name: str) -> str:
    """`person_record` -> `PersonRecord`."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


@dataclass(frozen=True, slots=True)
class PrimaryKey:
    """
    A model's type name plus its key values.

    Serialized as an opaque, URL-safe identifier. Blank key values are stored as
    empty strings and come back as None, so "" and None can't be told apart
    after a round trip. The type name is stored underscored and comes back
    camelized.
    """

    type_name: str
    partition_key: str | None = None
    sort_key: str | None = None

    def encode(self) -> str:
        return encode(self)

    def __str__(self) -> str:
        return encode(self)


def encode(key: PrimaryKey) -> str:
    payload = json.dumps(
        [
            underscore(_presence(key.type_name) or ""),
            _presence(key.partition_key) or "",
            _presence(key.sort_key) or "",
        ],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    raw = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")
    return raw.rstrip("=")


_URLSAFE_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


def decode(identifier: str) -> PrimaryKey:
    if not isinstance(identifier, str) or not _URLSAFE_ALPHABET.fullmatch(identifier):
        raise DecodeError(message="Invalid model identifier")

    padded = identifier + "=" * (-len(identifier) % 4)
    try:
        parts = json.loads(base64.urlsafe_b64decode(padded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise DecodeError(message="Invalid model identifier") from e

    if not isinstance(parts, list) or len(parts) != 3 or not all(isinstance(p, str) for p in parts):
        raise DecodeError(message="Invalid model identifier")

    return PrimaryKey(
        type_name=camelize(parts[0]),
        partition_key=_presence(parts[1]),
        sort_key=_presence(parts[2]),
    )
