from enum import Enum
from typing import Dict, List, Optional

from cancellation import CancelToken, TaskGroup
from collection_copier import CollectionCopier
from console_utils import print_verbose
from import_config import ImportConfig
from index_translator import IndexTranslator
from mongo_driver import MongoDriver


class DatabaseState(str, Enum):
    """Progress of a single database import."""
    PENDING = "pending"
    DROPPING = "dropping"
    LISTING = "listing"
    COPYING_COLLECTIONS = "copying-collections"
    COPYING_COMPLETE = "copying-complete"
    INDEXING = "indexing"
    DONE = "done"
    FAILED = "failed"


class DatabaseCopier:
    """
    Copies one database from the source to the target cluster.

    The collections are copied concurrently, one thread per collection. When
    any collection fails, the remaining copies are cancelled and the failure
    becomes the database's error. Indexes are created only after every
    collection was copied successfully, one collection at a time.
    """

    def __init__(self, source: MongoDriver, target: MongoDriver, config: ImportConfig, db_name: str):
        self.source = source
        self.target = target
        self.config = config
        self.db_name = db_name
        self.state = DatabaseState.PENDING
        self.collections: List[str] = []
        self.documents_copied: Dict[str, int] = {}
        self.error: Optional[BaseException] = None

    def _set_state(self, state: DatabaseState) -> None:
        self.state = state
        print_verbose(self.config.verbose, f"[{self.db_name}]: {state.value}")

    def copy(self, token: CancelToken) -> None:
        """
        Run the whole database import.

        :raises MigrationError: The first error of any phase.
        """
        try:
            if self.config.drop:
                self._drop(token)
            self._list_collections(token)
            self._copy_collections(token)
            if self.config.create_indexes:
                self._ensure_indexes(token)
            self._set_state(DatabaseState.DONE)
        except BaseException as e:
            self.error = e
            self._set_state(DatabaseState.FAILED)
            raise

    def _drop(self, token: CancelToken) -> None:
        self._set_state(DatabaseState.DROPPING)
        token.raise_if_cancelled()
        print_verbose(self.config.verbose, f"Dropping target database: {self.db_name}")
        self.target.drop_database(self.db_name)

    def _list_collections(self, token: CancelToken) -> None:
        self._set_state(DatabaseState.LISTING)
        print_verbose(self.config.verbose, f"Import database: {self.db_name}")
        token.raise_if_cancelled()
        self.collections = self.source.list_collection_names(self.db_name)
        print_verbose(self.config.verbose, f"[{self.db_name}]: Found collections: {self.collections}")

    def _copy_collections(self, token: CancelToken) -> None:
        self._set_state(DatabaseState.COPYING_COLLECTIONS)
        copier = CollectionCopier(self.source, self.target, self.config.batch_size, self.config.verbose)

        group = TaskGroup(token, max_workers=max(1, len(self.collections)), name=f"copy-{self.db_name}")
        with group:
            for collection_name in self.collections:
                group.submit(copier.copy, self.db_name, collection_name)
        for collection_name, copied in zip(self.collections, group.results):
            self.documents_copied[collection_name] = copied
        self._set_state(DatabaseState.COPYING_COMPLETE)

    def _ensure_indexes(self, token: CancelToken) -> None:
        # Indexing observes the caller's token, not the copy group's.
        self._set_state(DatabaseState.INDEXING)
        print_verbose(self.config.verbose, f"[{self.db_name}]: Ensure indexes: {self.collections}")
        translator = IndexTranslator(self.source, self.target, self.config.verbose)
        for collection_name in self.collections:
            translator.ensure_indexes(token, self.db_name, collection_name)
