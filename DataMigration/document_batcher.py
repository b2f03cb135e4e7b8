from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from cancellation import CancelToken
from console_utils import print_verbose

Document = Dict[str, Any]


class DocumentBatcher:
    """
    Groups a stream of documents into fixed-size chunks and writes each chunk
    with a single bulk insert.

    Chunks are flushed in read order and documents keep their order inside a
    chunk. The trailing partial chunk is flushed at the end of the stream; an
    empty chunk is never written. A failed insert is neither retried nor
    rolled back: whatever the server accepted stays on the target.
    """

    def __init__(
            self,
            insert_many: Callable[[Sequence[Document]], Any],
            batch_size: int,
            label: str = "",
            token: Optional[CancelToken] = None,
            verbose: bool = False):
        """
        :param insert_many: Called with each chunk; raises on failure.
        :param batch_size: Maximum number of documents per chunk (at least 1).
        :param label: Prefix for log lines, usually ``db/collection``.
        :param token: Cancellation token checked while reading and before each flush.
        :param verbose: Enable verbose output for every chunk.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.insert_many = insert_many
        self.batch_size = batch_size
        self.label = label
        self.token = token or CancelToken()
        self.verbose = verbose
        self.total_inserted = 0
        self.batches_flushed = 0

    def run(self, documents: Iterable[Document]) -> int:
        """
        Consume ``documents`` and flush them in chunks.

        :return: The number of documents inserted.
        """
        buffer: List[Document] = []
        for document in documents:
            self.token.raise_if_cancelled()
            buffer.append(document)
            if len(buffer) >= self.batch_size:
                self.flush(buffer)
                buffer = []
        self.flush(buffer)
        return self.total_inserted

    def flush(self, chunk: List[Document]) -> None:
        if not chunk:
            return
        self.token.raise_if_cancelled()

        start = self.batches_flushed * self.batch_size
        end = start + len(chunk) - 1
        print_verbose(self.verbose, f"[{self.label}]: Inserting documents ({start} - {end})...")
        self.insert_many(chunk)
        self.batches_flushed += 1
        self.total_inserted += len(chunk)
        print_verbose(self.verbose, f"[{self.label}]: Inserted documents ({start} - {end}). Total: {self.total_inserted}")
