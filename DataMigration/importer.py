import queue
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from cancellation import CancelToken, TaskGroup
from console_utils import ask_confirmation, print_success, print_verbose
from database_copier import DatabaseCopier
from database_filter import DatabaseFilter
from errors import MigrationError
from import_config import ImportConfig
from mongo_driver import MongoDriver

CONFIRM_MESSAGE = "Do you really want to import the above databases?"


class ImportStatus(str, Enum):
    """Outcome of an import run that did not raise."""
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class ImportResult:
    status: ImportStatus
    databases: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration(self) -> float:
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()


class Importer:
    """
    Imports databases from a source cluster into a target cluster.

    A run pings both clusters, lists and filters the source databases, asks
    for confirmation and then copies the databases with a fixed number of
    worker threads. Each worker takes the next pending database name from a
    shared queue. The first error stops the run: the workers stop taking new
    databases, in-flight batches finish, and the error is raised to the
    caller. Documents already written to the target are left in place.
    """

    def __init__(self, source: MongoDriver, target: MongoDriver):
        if source is None:
            raise ValueError("source driver is required")
        if target is None:
            raise ValueError("target driver is required")
        self.source = source
        self.target = target

    def ping(self, timeout: float) -> None:
        """:raises ConnectivityError: If either cluster is unreachable."""
        self.source.ping(timeout)
        self.target.ping(timeout)

    def run(
            self,
            config: ImportConfig,
            token: Optional[CancelToken] = None,
            confirm: Optional[Callable[[str], bool]] = None) -> ImportResult:
        """
        Run the import.

        :param config: Import settings.
        :param token: Cancellation token for the whole run, e.g. cancelled by a signal handler.
        :param confirm: Asks the user to confirm; defaults to a terminal prompt.
        :return: COMPLETED once every database was imported, ABORTED if the
                 user declined the confirmation.
        :raises MigrationError: The first error of any database, or
                                MigrationCancelled if the run was cancelled.
        """
        token = token or CancelToken()
        confirm = confirm or ask_confirmation
        result = ImportResult(status=ImportStatus.COMPLETED, started_at=datetime.now())

        token.raise_if_cancelled()
        self.ping(config.ping_timeout)

        token.raise_if_cancelled()
        names = self.source.list_database_names()
        print_verbose(config.verbose, f"Found databases: {names}")
        result.databases = DatabaseFilter(config.filters, config.verbose).apply(names)
        print_success(f"Databases to import: {result.databases}")

        if not config.skip_confirm and not confirm(CONFIRM_MESSAGE):
            result.status = ImportStatus.ABORTED
            result.completed_at = datetime.now()
            return result

        self._import_databases(config, token, result.databases)
        result.completed_at = datetime.now()
        return result

    def _import_databases(self, config: ImportConfig, token: CancelToken, names: List[str]) -> None:
        pending: "queue.Queue[str]" = queue.Queue()
        for name in names:
            pending.put(name)

        group = TaskGroup(token, max_workers=config.parallel, name="import")
        try:
            with group:
                for _ in range(min(config.parallel, max(1, len(names)))):
                    group.submit(self._worker, config, pending)
        finally:
            for error in group.discarded_errors:
                print_verbose(config.verbose, f"Discarded error after cancellation: {error}")

    def _worker(self, token: CancelToken, config: ImportConfig, pending: "queue.Queue[str]") -> None:
        while not token.cancelled:
            try:
                name = pending.get_nowait()
            except queue.Empty:
                return
            self.import_database(token, config, name)
        token.raise_if_cancelled()

    def import_database(self, token: CancelToken, config: ImportConfig, name: str) -> DatabaseCopier:
        """Import a single database; see DatabaseCopier."""
        copier = DatabaseCopier(self.source, self.target, config, name)
        try:
            copier.copy(token)
        except MigrationError as e:
            if e.database is None:
                e.database = name
            raise
        print_success(f"-- Database {name} imported ({sum(copier.documents_copied.values())} documents).")
        return copier
