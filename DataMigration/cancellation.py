"""
Cooperative cancellation and structured fan-out for the copy pipeline.

A CancelToken is a shared stop signal. Components call
``raise_if_cancelled`` before every blocking driver call, so a cancelled run
stops issuing new network operations while calls already in flight are
allowed to finish.

A TaskGroup runs child tasks on a thread pool, joins all of them, keeps the
first error and cancels the remaining siblings when one task fails.
"""
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Any, Callable, List, Optional

from errors import MigrationCancelled

# Upper bound on one blocking wait so that signal handlers get to run on the
# main thread while it is joining workers.
_JOIN_POLL_INTERVAL = 0.5


class CancelToken:
    """A cancellation signal, optionally chained to a parent token."""

    def __init__(self, parent: Optional["CancelToken"] = None):
        self._event = threading.Event()
        self._parent = parent
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self) -> None:
        """:raises MigrationCancelled: If this token or any parent was cancelled."""
        if self.cancelled:
            raise MigrationCancelled(f"operation cancelled: {self._reason()}")

    def child(self) -> "CancelToken":
        return CancelToken(parent=self)

    def _reason(self) -> str:
        if self._event.is_set():
            return self.reason or "cancelled"
        if self._parent is not None:
            return self._parent._reason()
        return "cancelled"


class TaskGroup:
    """
    Run tasks concurrently and join them as one unit.

    Each task is called with the group's token as its first argument. When a
    task raises, the error is stored (only the first one is kept), the group's
    token is cancelled and no further tasks are started. ``join`` waits for
    every started task and re-raises the stored error.

    Usage::

        with TaskGroup(token, max_workers=4, name="db") as group:
            for name in names:
                group.submit(copy, name)
    """

    def __init__(self, parent: CancelToken, max_workers: Optional[int] = None, name: str = "task"):
        self.token = parent.child()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._futures: List[Future] = []
        self._lock = threading.Lock()
        self.error: Optional[BaseException] = None
        self.discarded_errors: List[BaseException] = []
        self.results: List[Any] = []

    def __enter__(self) -> "TaskGroup":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            self.token.cancel(f"{exc_type.__name__}: {exc}")
            self._executor.shutdown(wait=True)
            return
        self.join()

    def submit(self, fn: Callable[..., Any], *args: Any) -> Optional[Future]:
        """Start ``fn(token, *args)`` unless the group is already cancelled."""
        if self.token.cancelled:
            return None
        future = self._executor.submit(self._run, fn, *args)
        self._futures.append(future)
        return future

    def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            self.token.raise_if_cancelled()
            return fn(self.token, *args)
        except BaseException as exc:
            self._record(exc)
            raise

    def _record(self, exc: BaseException) -> None:
        with self._lock:
            if self.error is None:
                self.error = exc
                self.token.cancel(str(exc))
            else:
                self.discarded_errors.append(exc)

    def join(self) -> List[Any]:
        """
        Wait for all started tasks and return their results in submission order.

        :raises BaseException: The first error raised by any task.
        """
        try:
            pending = set(self._futures)
            while pending:
                _, pending = wait(pending, timeout=_JOIN_POLL_INTERVAL, return_when=FIRST_EXCEPTION)
        finally:
            self._executor.shutdown(wait=True)
        if self.error is not None:
            raise self.error
        # Tasks skipped because a parent token was cancelled leave no error.
        self.token.raise_if_cancelled()
        self.results = [f.result() for f in self._futures]
        return self.results
