"""
Session payload serialization.

Session records are stored as compact JSON with sorted keys, so the same
record always encodes to the same bytes.
"""

import json
from typing import Any

from errors.exceptions import CorruptPayload


SessionRecord = dict[str, Any]


def _check_types(value: Any, path: str, parents: frozenset = frozenset()) -> None:
    if isinstance(value, (dict, list)):
        if id(value) in parents:
            raise ValueError(f"Circular reference detected at {path}")
        parents = parents | {id(value)}
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(
                    f"Session dict keys must be strings, got {type(key).__name__} key {key!r} in {path}"
                )
            _check_types(item, f"{path}[{key!r}]", parents)
    elif isinstance(value, tuple):
        raise TypeError(f"Tuple values are not supported, use a list at {path}")
    elif isinstance(value, list):
        for index, item in enumerate(value):
            _check_types(item, f"{path}[{index}]", parents)


class JSONSessionSerializer:
    """
    Encodes a session record to bytes and back.

    Records may hold any JSON-compatible value: strings, numbers, booleans,
    None, lists and string-keyed dicts nested to any depth. JSON would turn
    tuples into lists and other dict keys into strings, so both are rejected
    and a record always decodes back to an equal record.
    """

    encoding = "utf-8"

    def encode(self, record: SessionRecord) -> bytes:
        """
        Encode a session record.

        Args:
            record: The session data to encode

        Returns:
            The UTF-8 JSON payload

        Raises:
            TypeError: If the record holds a value JSON cannot represent
                (for example an open file or a socket), a tuple, or a dict
                key that is not a string
            ValueError: If the record holds NaN/Infinity or a circular reference
        """
        _check_types(record, "record")
        return json.dumps(
            record,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode(self.encoding)

    def decode(self, payload: bytes) -> SessionRecord:
        """
        Decode a stored payload back into a session record.

        Args:
            payload: Bytes previously produced by encode()

        Returns:
            The decoded session record

        Raises:
            CorruptPayload: If the payload is not UTF-8 JSON or its top-level
                value is not an object.
        """
        try:
            record = json.loads(payload.decode(self.encoding))
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptPayload(
                "Stored session payload could not be decoded",
                details={"reason": type(e).__name__, "size": len(payload)},
            ) from e

        if not isinstance(record, dict):
            raise CorruptPayload(
                "Stored session payload is not an object",
                details={"reason": type(record).__name__, "size": len(payload)},
            )
        return record
