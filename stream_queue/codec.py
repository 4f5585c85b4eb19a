"""
Message codec between queue items and stream records.

A record is a flat mapping of string field names to string values:

    item      the payload
    priority  decimal integer
    created   decimal nanosecond Unix timestamp

These field names are the persisted layout of the stream.
"""

import re
from collections.abc import Mapping

from stream_queue.constants import (
    FIELD_CREATED,
    FIELD_ITEM,
    FIELD_PRIORITY,
    REQUIRED_FIELDS,
)
from stream_queue.errors import MalformedRecord
from stream_queue.types.queue import QueueItem

# ASCII digits only, optional sign, no whitespace or underscores
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def encode(item: QueueItem) -> dict[str, str]:
    """
    Encode a queue item as a stream record.

    Args:
        item: The item to encode. Its entry id is not part of the record.

    Returns:
        The field-value record.
    """
    return {
        FIELD_ITEM: item.payload,
        FIELD_PRIORITY: str(item.priority),
        FIELD_CREATED: str(item.created_at),
    }


def _text(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _normalize(record: Mapping[str | bytes, str | bytes]) -> dict[str, str]:
    return {_text(key): _text(value) for key, value in record.items()}


def _parse_int(fields: dict[str, str], name: str, entry_id: str | None) -> int:
    raw = fields[name]
    if not _INTEGER_PATTERN.fullmatch(raw):
        raise MalformedRecord(
            f"field '{name}' is not an integer: {raw!r}", entry_id=entry_id
        )
    return int(raw)


def decode(
    record: Mapping[str | bytes, str | bytes] | None,
    entry_id: str | None = None,
) -> QueueItem:
    """
    Decode a stream record into a queue item.

    Partial or corrupt records are rejected rather than filled with
    defaults, so priority information is never silently lost.

    Args:
        record: The field-value record. Keys and values may be bytes.
        entry_id: Stream entry id to attach to the item.

    Returns:
        The decoded QueueItem.

    Raises:
        MalformedRecord: If a field is missing or does not parse.
    """
    if record is None:
        raise MalformedRecord("entry has no fields", entry_id=entry_id)

    try:
        fields = _normalize(record)
    except UnicodeDecodeError as e:
        raise MalformedRecord(f"record is not valid UTF-8: {e}", entry_id=entry_id) from e

    missing = [name for name in REQUIRED_FIELDS if name not in fields]
    if missing:
        raise MalformedRecord(
            f"missing required field(s): {', '.join(missing)}", entry_id=entry_id
        )

    return QueueItem(
        payload=fields[FIELD_ITEM],
        priority=_parse_int(fields, FIELD_PRIORITY, entry_id),
        created_at=_parse_int(fields, FIELD_CREATED, entry_id),
        entry_id=entry_id,
    )
