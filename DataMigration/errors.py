"""
Error types raised by the data migration tool.

Every failure that can stop a migration is a MigrationError. pymongo errors are
translated into these types at the driver boundary so the copy pipeline never
has to know about the driver's own exception hierarchy.
"""
from typing import Optional


class MigrationError(Exception):
    """Base class for all migration failures."""

    def __init__(self, message: str, database: Optional[str] = None, collection: Optional[str] = None):
        super().__init__(message)
        self.database = database
        self.collection = collection

    @property
    def namespace(self) -> str:
        if self.database and self.collection:
            return f"{self.database}.{self.collection}"
        return self.database or ""


class ConnectivityError(MigrationError, ConnectionError):
    """A source or target endpoint could not be reached."""


class ListError(MigrationError):
    """Databases, collections or indexes could not be enumerated."""


class ReadError(MigrationError):
    """Reading or decoding documents from the source failed."""


class WriteError(MigrationError):
    """A bulk insert into the target failed (including duplicate keys)."""


class IndexCreationError(MigrationError):
    """Creating indexes on the target failed."""


class DropError(MigrationError):
    """Dropping a target database failed."""


class MigrationCancelled(MigrationError):
    """The run was cancelled before the operation could complete."""
