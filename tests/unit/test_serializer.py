"""
Unit tests for session payload serialization.

Tests cover:
- Round trip of arbitrary JSON-compatible records
- Deterministic encoding
- Corrupt payload detection
- Rejection of values that cannot be stored
"""

import socket

import pytest
from hypothesis import given, strategies as st

from errors.codes import ErrorCode
from errors.exceptions import CorruptPayload
from session.serializer import JSONSessionSerializer


json_scalars = (
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2 ** 53), max_value=2 ** 53)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text()
)

json_values = st.recursive(
    json_scalars,
    lambda children: st.lists(children, max_size=5)
    | st.dictionaries(st.text(max_size=10), children, max_size=5),
    max_leaves=20,
)

session_records = st.dictionaries(st.text(max_size=20), json_values, max_size=10)


class TestJSONSessionSerializer:
    """Tests for JSONSessionSerializer."""

    @pytest.fixture
    def serializer(self):
        return JSONSessionSerializer()

    @given(record=session_records)
    def test_decode_inverts_encode(self, record):
        """Any JSON-compatible record survives a round trip unchanged."""
        serializer = JSONSessionSerializer()
        assert serializer.decode(serializer.encode(record)) == record

    @given(record=session_records)
    def test_encoding_is_deterministic(self, record):
        """Equal records encode to identical bytes regardless of insertion order."""
        serializer = JSONSessionSerializer()
        reordered = dict(reversed(list(record.items())))
        assert serializer.encode(record) == serializer.encode(reordered)

    def test_encode_returns_bytes(self, serializer):
        payload = serializer.encode({"user_id": 42, "flash": ["saved"]})

        assert isinstance(payload, bytes)
        assert payload == b'{"flash":["saved"],"user_id":42}'

    def test_empty_record_round_trip(self, serializer):
        assert serializer.decode(serializer.encode({})) == {}

    def test_non_ascii_values_round_trip(self, serializer):
        record = {"name": "Zoë", "city": "東京"}

        assert serializer.decode(serializer.encode(record)) == record

    def test_malformed_payload_raises_corrupt_payload(self, serializer):
        with pytest.raises(CorruptPayload) as exc_info:
            serializer.decode(b"{not json")

        assert exc_info.value.error_code == ErrorCode.CORRUPT_PAYLOAD

    def test_invalid_utf8_raises_corrupt_payload(self, serializer):
        with pytest.raises(CorruptPayload):
            serializer.decode(b"\xff\xfe\x00")

    @pytest.mark.parametrize("payload", [b"[]", b"42", b'"text"', b"null"])
    def test_non_object_payload_raises_corrupt_payload(self, serializer, payload):
        """A session record must decode to a mapping."""
        with pytest.raises(CorruptPayload):
            serializer.decode(payload)

    def test_live_resource_is_rejected(self, serializer):
        """Unserializable content is a caller error, not a CorruptPayload."""
        sock = socket.socket()
        try:
            with pytest.raises(TypeError):
                serializer.encode({"conn": sock})
        finally:
            sock.close()

    def test_nan_is_rejected(self, serializer):
        with pytest.raises(ValueError):
            serializer.encode({"score": float("nan")})

    def test_circular_reference_is_rejected(self, serializer):
        record = {"items": []}
        record["items"].append(record)

        with pytest.raises(ValueError):
            serializer.encode(record)

    def test_shared_nested_value_is_not_a_cycle(self, serializer):
        shared = {"a": 1}

        assert serializer.decode(serializer.encode({"x": shared, "y": [shared]})) == {
            "x": {"a": 1},
            "y": [{"a": 1}],
        }


class TestKeyAndContainerTypes:
    """Values JSON would silently coerce are rejected instead."""

    @pytest.mark.parametrize("record", [
        {"cart": {123: 2}},
        {"cart": {"sku": 1, 2: 3}},
        {"flags": {True: "yes"}},
        {"ratios": {0.5: "half"}},
        {"items": [{"ok": 1}, {None: "nested in a list"}]},
    ])
    def test_non_string_keys_are_rejected(self, record):
        with pytest.raises(TypeError) as exc_info:
            JSONSessionSerializer().encode(record)

        assert "keys must be strings" in str(exc_info.value)

    def test_tuple_values_are_rejected(self):
        with pytest.raises(TypeError):
            JSONSessionSerializer().encode({"point": (1, 2)})

    @given(
        st.dictionaries(
            st.integers() | st.text(max_size=5),
            st.integers(),
            min_size=1,
            max_size=5,
        )
    )
    def test_integer_keys_never_change_type_silently(self, cart):
        """A cart keyed by product id either round-trips exactly or is refused."""
        serializer = JSONSessionSerializer()
        record = {"cart": cart}

        if all(isinstance(key, str) for key in cart):
            assert serializer.decode(serializer.encode(record)) == record
        else:
            with pytest.raises(TypeError):
                serializer.encode(record)
