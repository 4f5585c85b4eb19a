"""
Unit tests for the message codec.
"""

import pytest

from stream_queue.codec import decode, encode
from stream_queue.errors import MalformedRecord
from stream_queue.types.queue import QueueItem


class TestEncode:
    """Tests for encoding items as stream records."""

    def test_field_layout(self):
        """Test the persisted field names and string values."""
        item = QueueItem(payload="critical", priority=1, created_at=1_700_000_000_000_000_000)

        assert encode(item) == {
            "item": "critical",
            "priority": "1",
            "created": "1700000000000000000",
        }

    def test_entry_id_not_persisted(self):
        """Test that the backend-assigned id is not written into the record."""
        item = QueueItem(payload="x", priority=0, created_at=1, entry_id="1-0")

        assert "entry_id" not in encode(item)


class TestDecode:
    """Tests for decoding stream records."""

    @pytest.mark.parametrize("priority", [0, -5, 7])
    def test_round_trip(self, priority: int):
        """Test that decode inverts encode, including zero and negative priorities."""
        item = QueueItem(payload="work", priority=priority, created_at=123456789)

        assert decode(encode(item)) == item

    def test_attaches_entry_id(self):
        """Test that the entry id is carried onto the item."""
        item = QueueItem(payload="work", priority=2, created_at=10)

        decoded = decode(encode(item), entry_id="1700-3")

        assert decoded == QueueItem(payload="work", priority=2, created_at=10, entry_id="1700-3")

    def test_bytes_record(self):
        """Test that undecoded client responses are accepted."""
        record = {b"item": b"low", b"priority": b"4", b"created": b"99"}

        item = decode(record)

        assert item == QueueItem(payload="low", priority=4, created_at=99)

    def test_missing_field(self):
        """Test that a missing field is rejected, not defaulted."""
        with pytest.raises(MalformedRecord) as exc_info:
            decode({"item": "x", "created": "1"}, entry_id="5-0")

        assert "priority" in exc_info.value.reason
        assert exc_info.value.entry_id == "5-0"

    def test_missing_several_fields(self):
        with pytest.raises(MalformedRecord, match="item, priority, created"):
            decode({})

    def test_non_integer_priority(self):
        """Test that an unparsable priority is rejected."""
        with pytest.raises(MalformedRecord, match="priority"):
            decode({"item": "x", "priority": "high", "created": "1"})

    def test_non_integer_created(self):
        with pytest.raises(MalformedRecord, match="created"):
            decode({"item": "x", "priority": "1", "created": "yesterday"})

    @pytest.mark.parametrize("raw", ["1_000", " 7\n", "\u0663", "+", ""])
    def test_loose_integer_forms_rejected(self, raw: str):
        """Test that only plain ASCII decimal integers are accepted."""
        with pytest.raises(MalformedRecord, match="priority"):
            decode({"item": "x", "priority": raw, "created": "1"})

    @pytest.mark.parametrize("raw, expected", [("+3", 3), ("-12", -12), ("007", 7)])
    def test_signed_and_padded_integers(self, raw: str, expected: int):
        assert decode({"item": "x", "priority": raw, "created": "1"}).priority == expected

    def test_deleted_entry(self):
        """Test that an entry without fields is malformed."""
        with pytest.raises(MalformedRecord, match="no fields"):
            decode(None, entry_id="9-0")

    def test_invalid_utf8(self):
        with pytest.raises(MalformedRecord, match="UTF-8"):
            decode({b"item": b"\xff", b"priority": b"1", b"created": b"1"})
