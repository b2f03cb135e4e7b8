from unittest.mock import MagicMock

import pytest
from pymongo import IndexModel
from pymongo.errors import BulkWriteError, OperationFailure, ServerSelectionTimeoutError

from errors import ConnectivityError, DropError, IndexCreationError, ListError, ReadError, WriteError
from mongo_driver import MongoDriver


class FailingCursor:
    def __init__(self, docs, error):
        self.docs = docs
        self.error = error
        self.closed = False

    def __iter__(self):
        yield from self.docs
        raise self.error

    def close(self):
        self.closed = True


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def collection(client):
    return client.__getitem__.return_value.__getitem__.return_value


def test_ping_failure_is_a_connectivity_error(client):
    client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

    with pytest.raises(ConnectivityError, match="ping target"):
        MongoDriver(client, "target").ping(1.0)


def test_connectivity_error_is_a_connection_error(client):
    client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

    with pytest.raises(ConnectionError):
        MongoDriver(client).ping(1.0)


def test_list_failures_are_list_errors(client):
    client.list_database_names.side_effect = OperationFailure("not authorized")

    with pytest.raises(ListError):
        MongoDriver(client).list_database_names()


def test_find_all_uses_a_cursor_without_timeout(client, collection):
    collection.find.return_value = MagicMock()
    collection.find.return_value.__iter__.return_value = iter([{"_id": 1}, {"_id": 2}])

    docs = list(MongoDriver(client).find_all("db", "col"))

    assert docs == [{"_id": 1}, {"_id": 2}]
    collection.find.assert_called_once_with({}, no_cursor_timeout=True)
    collection.find.return_value.close.assert_called_once()


def test_cursor_failure_is_a_read_error_and_closes_the_cursor(client, collection):
    cursor = FailingCursor([{"_id": 1}], OperationFailure("cursor killed"))
    collection.find.return_value = cursor
    read = []

    with pytest.raises(ReadError) as exc_info:
        for doc in MongoDriver(client).find_all("db", "col"):
            read.append(doc)

    assert read == [{"_id": 1}]
    assert exc_info.value.namespace == "db.col"
    assert cursor.closed


def test_duplicate_key_is_a_write_error(client, collection):
    collection.insert_many.side_effect = BulkWriteError({
        "nInserted": 1,
        "writeErrors": [{"index": 1, "code": 11000, "errmsg": "E11000 duplicate key error"}],
    })

    with pytest.raises(WriteError, match="E11000") as exc_info:
        MongoDriver(client).insert_many("db", "col", [{"_id": 1}, {"_id": 2}])

    assert "1 of 2 inserted" in str(exc_info.value)


def test_insert_many_is_ordered(client, collection):
    collection.insert_many.return_value.inserted_ids = [1, 2]

    assert MongoDriver(client).insert_many("db", "col", [{"_id": 1}, {"_id": 2}]) == 2
    collection.insert_many.assert_called_once_with([{"_id": 1}, {"_id": 2}], ordered=True)


def test_create_indexes_with_no_models_is_a_no_op(client, collection):
    assert MongoDriver(client).create_indexes("db", "col", []) == []
    collection.create_indexes.assert_not_called()


def test_create_indexes_failure(client, collection):
    collection.create_indexes.side_effect = OperationFailure("index conflict")

    with pytest.raises(IndexCreationError):
        MongoDriver(client).create_indexes("db", "col", [IndexModel([("a", 1)])])


def test_list_indexes_failure(client, collection):
    collection.list_indexes.side_effect = OperationFailure("ns does not exist")

    with pytest.raises(ListError):
        MongoDriver(client).list_indexes("db", "col")


def test_drop_failure_is_a_drop_error(client):
    client.drop_database.side_effect = OperationFailure("not authorized")

    with pytest.raises(DropError) as exc_info:
        MongoDriver(client).drop_database("db")

    assert exc_info.value.database == "db"


def test_invalid_port_is_a_connectivity_error():
    with pytest.raises(ConnectivityError, match="target"):
        MongoDriver.connect("mongodb://localhost:notaport", "target")
