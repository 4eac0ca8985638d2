"""
logging.Handler that stores log entries in Azure Table Storage.

Each log call becomes one entity in the configured table and partition.
Entries written earlier can be read back with ``query``, optionally
restricted to a set of fields.
"""

import logging
import re
import threading
from datetime import datetime, timezone
from itertools import islice
from typing import Any, Callable, Dict, List, Mapping, Optional

import pandas as pd
from azure.core.credentials import AzureNamedKeyCredential
from azure.data.tables import TableServiceClient

from azuretable_log.config import Config
from azuretable_log.entity import build_entity, decode_entity
from azuretable_log.exceptions import ConfigurationError, TransportNotReadyError

logger = logging.getLogger(__name__)

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9]{2,62}$")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime"}

QUERY_ORDERS = ("asc", "desc")


class AzureTableHandler(logging.Handler):
    """
    Logging transport backed by an Azure table.

    The table is created on construction if it does not exist. Writes and
    queries are single round-trips through ``azure-data-tables``; errors are
    handed to the optional completion callback, or raised when no callback
    is given.
    """

    def __init__(
        self,
        account: Optional[str] = None,
        key: Optional[str] = None,
        table_name: Optional[str] = None,
        partition_key: Optional[str] = None,
        use_dev_storage: bool = False,
        nested_meta: bool = False,
        callback: Optional[Callable[[Optional[Exception]], Any]] = None,
        level=logging.NOTSET,
        table_service: Optional[TableServiceClient] = None,
    ):
        """
        Initialize the handler and ensure the table exists.

        Args:
            account: Storage account name
            key: Storage account access key
            table_name: Target table, defaults to Config.TABLE_NAME
            partition_key: Partition for written rows, defaults to Config.PARTITION_KEY
            use_dev_storage: Use the local storage emulator instead of an account
            nested_meta: Store metadata as one JSON column instead of flattening it
            callback: Called with None once the table is ready, or with the error
            level: Handler level
            table_service: Pre-built TableServiceClient to use instead of building one

        Raises:
            ConfigurationError: If credentials are missing or the table name is invalid
        """
        if not use_dev_storage:
            if not account:
                raise ConfigurationError("azure storage account name required.")
            if not key:
                raise ConfigurationError("azure storage account key required.")

        table_name = table_name or Config.TABLE_NAME
        if not TABLE_NAME_PATTERN.match(table_name):
            raise ConfigurationError(
                f"invalid table name '{table_name}': 3-63 alphanumeric characters, "
                "starting with a letter."
            )

        super().__init__(level)

        self.table_name = table_name
        self.partition_key = partition_key or Config.PARTITION_KEY
        self.nested_meta = nested_meta
        self.ready = False
        self.init_error: Optional[Exception] = None
        self.table_client = None
        self._emitting = threading.local()

        if table_service is None:
            if use_dev_storage:
                table_service = TableServiceClient.from_connection_string(
                    Config.get_connection_string(use_dev_storage=True)
                )
            else:
                table_service = TableServiceClient(
                    endpoint=Config.get_table_endpoint(account),
                    credential=AzureNamedKeyCredential(account, key),
                )
        self.table_service = table_service

        self._ensure_table(callback)

    @classmethod
    def from_config(cls, **overrides) -> "AzureTableHandler":
        """
        Build a handler from environment configuration.

        Args:
            **overrides: Constructor keywords that take precedence over Config

        Returns:
            AzureTableHandler
        """
        settings = {
            "account": Config.AZURE_STORAGE_ACCOUNT or None,
            "key": Config.AZURE_STORAGE_ACCESS_KEY or None,
            "table_name": Config.TABLE_NAME,
            "partition_key": Config.PARTITION_KEY,
            "use_dev_storage": Config.USE_DEV_STORAGE,
            "nested_meta": Config.NESTED_META,
            "level": Config.LOG_LEVEL,
        }
        settings.update({k: v for k, v in overrides.items() if v is not None})
        if isinstance(settings["level"], str):
            settings["level"] = settings["level"].upper()
        return cls(**settings)

    def _ensure_table(self, callback) -> None:
        """Create the table if it is missing and mark the handler ready."""
        try:
            self.table_client = self.table_service.create_table_if_not_exists(
                self.table_name
            )
        except Exception as e:
            logger.error(f"Failed to ensure table {self.table_name}: {e}")
            self.init_error = e
            if callback is None:
                raise
            callback(e)
            return

        self.ready = True
        logger.debug(f"Table {self.table_name} ready (partition {self.partition_key})")
        if callback is not None:
            callback(None)

    def _not_ready(self, callback, *result):
        error = TransportNotReadyError(self.table_name, self.init_error)
        if callback is None:
            raise error
        callback(error, *result)

    def log(
        self,
        level: Optional[str],
        message: Any,
        meta: Optional[Mapping[str, Any]] = None,
        callback: Optional[Callable[[Optional[Exception]], Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> Optional[str]:
        """
        Write one log entry.

        Args:
            level: Level name stored in the ``level`` column
            message: Message stored in the ``msg`` column
            meta: Metadata, flattened or JSON-encoded depending on nested_meta;
                a callable here is taken as the callback when none is given
            callback: Called with None after the write, or with the write error
            timestamp: Time of the log call, defaults to now

        Returns:
            Row key of the written entity, or None when the error went to callback
        """
        if callable(meta) and callback is None:
            meta, callback = None, meta

        if not self.ready:
            self._not_ready(callback)
            return None

        try:
            entity = build_entity(
                self.partition_key,
                level,
                message,
                meta,
                nested_meta=self.nested_meta,
                timestamp=timestamp,
            )
            self.table_client.create_entity(entity=entity)
        except Exception as e:
            logger.error(f"Failed to write log entry to {self.table_name}: {e}")
            if callback is None:
                raise
            callback(e)
            return None

        logger.debug(f"Wrote {entity['RowKey']} to {self.table_name}")
        if callback is not None:
            callback(None)
        return entity["RowKey"]

    def query(
        self,
        options: Optional[Mapping[str, Any]] = None,
        callback: Optional[Callable[[Optional[Exception], Any], Any]] = None,
    ) -> Optional[List[Dict[str, Any]]]:
        """
        Read log entries back from the configured partition.

        Args:
            options: Query options
                fields: column names to keep (all columns when empty)
                from / until: datetime bounds on the service Timestamp
                limit: maximum number of rows
                order: "asc" (default) or "desc" by row key
            callback: Called as callback(error, rows)

        Returns:
            List of plain dicts in row key order, or None when the error went to callback
        """
        options = dict(options or {})
        order = options.get("order") or "asc"
        if order not in QUERY_ORDERS:
            raise ValueError(f"Unknown order: {order}")

        if not self.ready:
            self._not_ready(callback, None)
            return None

        fields = list(options.get("fields") or [])
        limit = options.get("limit")

        filters = ["PartitionKey eq @pk"]
        parameters = {"pk": self.partition_key}
        if options.get("from") is not None:
            filters.append("Timestamp ge @from_time")
            parameters["from_time"] = options["from"]
        if options.get("until") is not None:
            filters.append("Timestamp le @until_time")
            parameters["until_time"] = options["until"]

        try:
            entities = self.table_client.query_entities(
                " and ".join(filters),
                parameters=parameters,
                select=fields or None,
            )
            # Service order is ascending by RowKey within the partition
            if order == "asc" and limit is not None:
                entities = islice(entities, limit)
            rows = [decode_entity(entity, fields) for entity in entities]
        except Exception as e:
            logger.error(f"Failed to query {self.table_name}: {e}")
            if callback is None:
                raise
            callback(e, None)
            return None

        if order == "desc":
            rows.reverse()
            if limit is not None:
                rows = rows[:limit]

        logger.debug(f"Queried {len(rows)} rows from {self.table_name}")
        if callback is not None:
            callback(None, rows)
        return rows

    def query_frame(self, options: Optional[Mapping[str, Any]] = None) -> pd.DataFrame:
        """
        Query log entries as a pandas DataFrame.

        Args:
            options: Same options as ``query``

        Returns:
            DataFrame with one row per entry
        """
        rows = self.query(options)
        fields = list((options or {}).get("fields") or [])
        return pd.DataFrame(rows, columns=fields or None)

    def record_meta(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Collect the metadata stored for a LogRecord."""
        meta = {
            name: value
            for name, value in vars(record).items()
            if name not in _RESERVED_RECORD_ATTRS and not name.startswith("_")
        }
        meta.setdefault("logger", record.name)

        if record.exc_info:
            formatter = self.formatter or logging.Formatter()
            meta["exc_text"] = formatter.formatException(record.exc_info)
        if record.stack_info:
            meta["stack_info"] = record.stack_info
        return meta

    def emit(self, record: logging.LogRecord) -> None:
        # Drop records raised while writing (SDK HTTP logging, our own debug lines)
        if getattr(self._emitting, "active", False):
            return

        self._emitting.active = True
        try:
            self.log(
                record.levelname.lower(),
                record.getMessage(),
                self.record_meta(record),
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
            )
        except Exception:
            self.handleError(record)
        finally:
            self._emitting.active = False

    def close(self) -> None:
        """Close the table clients and release the handler."""
        try:
            if self.table_client is not None:
                self.table_client.close()
            self.table_service.close()
        finally:
            super().close()
