"""
Shaping between log records and Azure Table entities.

A stored row carries PartitionKey, RowKey, level, msg, hostname, pid and
timestamp columns. Metadata is either flattened into sibling columns whose
names carry a trailing underscore (``user`` -> ``user_``) or serialized into a
single ``meta`` JSON column when nested-metadata mode is enabled.
"""

import json
import os
import re
import socket
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from azure.data.tables import EdmType, EntityProperty

LEVEL_COLUMN = "level"
MESSAGE_COLUMN = "msg"
HOSTNAME_COLUMN = "hostname"
PID_COLUMN = "pid"
TIMESTAMP_COLUMN = "timestamp"
META_COLUMN = "meta"
META_SUFFIX = "_"

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1

_row_key_lock = threading.Lock()
_last_row_key_ns = 0


def generate_row_key() -> str:
    """
    Generate a row key that sorts in write order.

    The key is the nanosecond epoch time, zero padded to 20 digits, followed by
    eight random hex characters. The time part is bumped past the previous key
    so that keys from one process are strictly increasing even when the clock
    stalls or steps backwards.

    Returns:
        str: Row key, e.g. ``01760781234567890123_9f2c01ab``
    """
    global _last_row_key_ns

    with _row_key_lock:
        now_ns = max(time.time_ns(), _last_row_key_ns + 1)
        _last_row_key_ns = now_ns

    return f"{now_ns:020d}_{uuid.uuid4().hex[:8]}"


def sanitize_column_name(key: Any) -> str:
    """Map an arbitrary metadata key onto a valid table property name."""
    name = re.sub(r"[^0-9A-Za-z_]", "_", str(key))
    if not name or name[0].isdigit():
        name = "_" + name
    return name


def to_column_value(value: Any) -> Any:
    """
    Convert a metadata value into something the table service can store.

    Returns None for values that should not produce a column.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if _INT32_MIN <= value <= _INT32_MAX:
            return value
        return EntityProperty(value, EdmType.INT64)
    if isinstance(value, (str, float, bytes, datetime, uuid.UUID)):
        return value
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def build_entity(
    partition_key: str,
    level: Optional[str],
    message: Any,
    meta: Optional[Mapping[str, Any]] = None,
    nested_meta: bool = False,
    timestamp: Optional[datetime] = None,
    row_key: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the entity written for one log call.

    Args:
        partition_key: Partition the row is written to
        level: Log level name, omitted from the row when None
        message: Log message, stored as text
        meta: Metadata mapping
        nested_meta: Store metadata as a single JSON column instead of flattening
        timestamp: Time of the log call, defaults to now (UTC)
        row_key: Explicit row key, generated when not given

    Returns:
        Dict ready for TableClient.create_entity

    Raises:
        ValueError: If two flattened metadata keys map to the same column
    """
    meta = dict(meta or {})

    entity = {
        "PartitionKey": partition_key,
        "RowKey": row_key or generate_row_key(),
        MESSAGE_COLUMN: "" if message is None else str(message),
        HOSTNAME_COLUMN: socket.gethostname(),
        PID_COLUMN: os.getpid(),
        TIMESTAMP_COLUMN: timestamp or datetime.now(timezone.utc),
    }
    if level is not None:
        entity[LEVEL_COLUMN] = str(level)

    if nested_meta:
        entity[META_COLUMN] = json.dumps(meta, default=str)
        return entity

    columns = {}
    for key, value in meta.items():
        column_value = to_column_value(value)
        if column_value is None:
            continue
        column = sanitize_column_name(key) + META_SUFFIX
        if column in columns:
            raise ValueError(
                f"metadata keys {columns[column]!r} and {key!r} both map to column '{column}'"
            )
        columns[column] = key
        entity[column] = column_value

    return entity


def decode_entity(
    entity: Mapping[str, Any], fields: Optional[Iterable[str]] = None
) -> Dict[str, Any]:
    """
    Decode a queried entity into a plain dict.

    Typed values are unwrapped and the service Timestamp is lifted out of the
    entity metadata. When fields are given, only those keys are kept.
    """
    row = {}
    for name, value in entity.items():
        if isinstance(value, EntityProperty):
            value = value.value
        row[name] = value

    service_metadata = getattr(entity, "metadata", None) or {}
    service_timestamp = service_metadata.get("timestamp")
    if service_timestamp is not None:
        row.setdefault("Timestamp", service_timestamp)

    if fields:
        row = {name: row[name] for name in fields if name in row}

    return row


def decode_meta(row: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Recover the metadata mapping from a stored or queried row.

    Nested rows are parsed from the ``meta`` JSON column. Flattened rows are
    rebuilt from the underscore-suffixed columns; values that were dicts or
    lists come back as their JSON text.
    """
    if META_COLUMN in row:
        raw = row[META_COLUMN]
        if isinstance(raw, EntityProperty):
            raw = raw.value
        return json.loads(raw) if raw else {}

    meta = {}
    for name, value in row.items():
        if name.endswith(META_SUFFIX) and len(name) > len(META_SUFFIX):
            if isinstance(value, EntityProperty):
                value = value.value
            meta[name[: -len(META_SUFFIX)]] = value
    return meta
