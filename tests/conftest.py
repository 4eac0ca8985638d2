"""
Shared fixtures: an in-memory stand-in for the Azure table service.
"""

import copy
from datetime import datetime, timezone

import pytest

from azuretable_log.handler import AzureTableHandler


class StoredEntity(dict):
    """Dict with service metadata, shaped like azure.data.tables.TableEntity."""

    def __init__(self, *args, metadata=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.metadata = metadata or {}


class FakeTableClient:
    """Keeps entities in memory and answers partition / timestamp queries."""

    def __init__(self, table_name):
        self.table_name = table_name
        self.entities = []
        self.queries = []
        self.write_error = None
        self.query_error = None
        self.closed = False

    def create_entity(self, entity):
        if self.write_error is not None:
            raise self.write_error
        stored = StoredEntity(
            copy.deepcopy(entity),
            metadata={"timestamp": datetime.now(timezone.utc), "etag": "W/\"1\""},
        )
        self.entities.append(stored)
        return {"etag": stored.metadata["etag"]}

    def query_entities(self, query_filter, parameters=None, select=None, **kwargs):
        self.queries.append(
            {"filter": query_filter, "parameters": dict(parameters or {}), "select": select}
        )
        if self.query_error is not None:
            raise self.query_error
        return self._iter_matches(parameters or {}, select)

    def _iter_matches(self, parameters, select):
        for entity in sorted(self.entities, key=lambda e: e["RowKey"]):
            if entity["PartitionKey"] != parameters.get("pk"):
                continue
            stamp = entity.metadata["timestamp"]
            if "from_time" in parameters and stamp < parameters["from_time"]:
                continue
            if "until_time" in parameters and stamp > parameters["until_time"]:
                continue
            if select:
                yield StoredEntity(
                    {name: entity[name] for name in select if name in entity},
                    metadata=entity.metadata,
                )
            else:
                yield StoredEntity(entity, metadata=entity.metadata)

    def close(self):
        self.closed = True


class FakeTableService:
    """Minimal TableServiceClient: tables are created on first use."""

    def __init__(self):
        self.tables = {}
        self.create_error = None
        self.closed = False

    def create_table_if_not_exists(self, table_name):
        if self.create_error is not None:
            raise self.create_error
        return self.tables.setdefault(table_name, FakeTableClient(table_name))

    def close(self):
        self.closed = True


@pytest.fixture
def table_service():
    """Fresh in-memory table service."""
    return FakeTableService()


@pytest.fixture
def make_handler(table_service):
    """Factory building handlers against the fake service; closes them afterwards."""
    handlers = []

    def _make(**kwargs):
        settings = {
            "account": "someaccount",
            "key": "c29tZWtleQ==",
            "table_name": "applogtest",
            "partition_key": "testpartition",
            "table_service": table_service,
        }
        settings.update(kwargs)
        handler = AzureTableHandler(**settings)
        handlers.append(handler)
        return handler

    yield _make

    for handler in handlers:
        handler.close()
