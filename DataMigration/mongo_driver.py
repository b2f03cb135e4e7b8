from typing import Any, Dict, Iterator, List, Sequence

import pymongo
from pymongo import IndexModel, MongoClient
from pymongo.errors import BulkWriteError, ConfigurationError, PyMongoError
from bson.errors import BSONError

from errors import (
    ConnectivityError,
    DropError,
    IndexCreationError,
    ListError,
    ReadError,
    WriteError,
)


class MongoDriver:
    """
    The narrow set of MongoDB operations the migration needs.

    Wraps a pymongo MongoClient and translates driver exceptions into the
    migration error types, so nothing above this class handles pymongo errors
    directly. MongoClient is thread-safe; one driver per cluster is shared by
    all worker threads.
    """

    def __init__(self, client: MongoClient, role: str = "source"):
        self.client = client
        self.role = role

    @classmethod
    def connect(cls, uri: str, role: str = "source") -> "MongoDriver":
        """
        Create a driver for the cluster at ``uri``. The connection itself is
        established lazily; use ``ping`` to check reachability.

        :raises ConnectivityError: If the URI is invalid.
        """
        try:
            client = MongoClient(uri)
        except (ConfigurationError, ValueError) as e:
            raise ConnectivityError(f"Failed to connect to {role} database: {e}") from e
        return cls(client, role)

    def close(self) -> None:
        self.client.close()

    def ping(self, timeout: float) -> None:
        """:raises ConnectivityError: If the server does not answer within ``timeout`` seconds."""
        try:
            with pymongo.timeout(timeout):
                self.client.admin.command("ping")
        except PyMongoError as e:
            raise ConnectivityError(f"ping {self.role}: {e}") from e

    def list_database_names(self) -> List[str]:
        try:
            return self.client.list_database_names()
        except PyMongoError as e:
            raise ListError(f"list database names: {e}") from e

    def list_collection_names(self, db_name: str) -> List[str]:
        try:
            return self.client[db_name].list_collection_names()
        except PyMongoError as e:
            raise ListError(f"list collection names: {e}", database=db_name) from e

    def find_all(self, db_name: str, collection_name: str) -> Iterator[Dict[str, Any]]:
        """
        Lazily yield every document of a collection. The cursor never times
        out on the server and is closed when the generator is closed or
        exhausted.

        :raises ReadError: If the query or decoding a document fails.
        """
        try:
            cursor = self.client[db_name][collection_name].find({}, no_cursor_timeout=True)
        except PyMongoError as e:
            raise ReadError(f"find all documents: {e}", db_name, collection_name) from e
        try:
            for document in cursor:
                yield document
        except (PyMongoError, BSONError) as e:
            raise ReadError(f"cursor: {e}", db_name, collection_name) from e
        finally:
            cursor.close()

    def insert_many(self, db_name: str, collection_name: str, documents: Sequence[Dict[str, Any]]) -> int:
        """
        Insert documents in one ordered bulk request. Documents keep their
        ``_id``; an ``_id`` that already exists on the target fails the insert.

        :raises WriteError: If the bulk insert fails.
        """
        try:
            result = self.client[db_name][collection_name].insert_many(list(documents), ordered=True)
        except BulkWriteError as e:
            inserted = e.details.get("nInserted", 0)
            errors = e.details.get("writeErrors", [])
            first = errors[0].get("errmsg", "unknown error") if errors else str(e)
            raise WriteError(
                f"insert documents: {first} ({inserted} of {len(documents)} inserted)",
                db_name, collection_name) from e
        except PyMongoError as e:
            raise WriteError(f"insert documents: {e}", db_name, collection_name) from e
        return len(result.inserted_ids)

    def list_indexes(self, db_name: str, collection_name: str) -> List[Dict[str, Any]]:
        try:
            return list(self.client[db_name][collection_name].list_indexes())
        except PyMongoError as e:
            raise ListError(f"list indexes: {e}", db_name, collection_name) from e

    def create_indexes(self, db_name: str, collection_name: str, models: List[IndexModel]) -> List[str]:
        """:raises IndexCreationError: If the server rejects the indexes."""
        if not models:
            return []
        try:
            return self.client[db_name][collection_name].create_indexes(models)
        except PyMongoError as e:
            raise IndexCreationError(f"create indexes: {e}", db_name, collection_name) from e

    def drop_database(self, db_name: str) -> None:
        try:
            self.client.drop_database(db_name)
        except PyMongoError as e:
            raise DropError(f"drop database: {e}", database=db_name) from e
