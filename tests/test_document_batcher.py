import pytest

from cancellation import CancelToken
from document_batcher import DocumentBatcher
from errors import MigrationCancelled, WriteError
from fake_driver import documents


class Recorder:
    def __init__(self, fail_on_call=None):
        self.chunks = []
        self.fail_on_call = fail_on_call

    def __call__(self, chunk):
        if self.fail_on_call is not None and len(self.chunks) + 1 == self.fail_on_call:
            raise WriteError("insert documents: boom")
        self.chunks.append(list(chunk))


def test_250_documents_in_batches_of_100():
    recorder = Recorder()
    docs = documents(250)

    total = DocumentBatcher(recorder, 100).run(iter(docs))

    assert total == 250
    assert [len(c) for c in recorder.chunks] == [100, 100, 50]
    assert [d for chunk in recorder.chunks for d in chunk] == docs


@pytest.mark.parametrize("count,batch_size,expected", [
    (0, 3, []),
    (1, 1, [1]),
    (6, 3, [3, 3]),
    (7, 3, [3, 3, 1]),
    (5, 10, [5]),
])
def test_chunk_sizes(count, batch_size, expected):
    recorder = Recorder()
    batcher = DocumentBatcher(recorder, batch_size)

    batcher.run(documents(count))

    assert [len(c) for c in recorder.chunks] == expected
    assert batcher.batches_flushed == len(expected)
    assert batcher.total_inserted == count


def test_documents_are_read_lazily():
    consumed = []

    def stream():
        for doc in documents(10):
            consumed.append(doc["_id"])
            yield doc

    seen_at_flush = []
    batcher = DocumentBatcher(lambda chunk: seen_at_flush.append(len(consumed)), 4)
    batcher.run(stream())

    assert seen_at_flush == [4, 8, 10]


def test_failed_insert_stops_the_copy():
    recorder = Recorder(fail_on_call=2)
    batcher = DocumentBatcher(recorder, 10)

    with pytest.raises(WriteError):
        batcher.run(documents(35))

    assert len(recorder.chunks) == 1
    assert batcher.total_inserted == 10


def test_cancelled_token_prevents_writes():
    token = CancelToken()
    token.cancel("stop")
    recorder = Recorder()

    with pytest.raises(MigrationCancelled):
        DocumentBatcher(recorder, 10, token=token).run(documents(5))

    assert recorder.chunks == []


def test_cancel_during_stream_keeps_flushed_batches():
    token = CancelToken()
    recorder = Recorder()

    def stream():
        for doc in documents(30):
            if doc["_id"] == 15:
                token.cancel("interrupt")
            yield doc

    with pytest.raises(MigrationCancelled):
        DocumentBatcher(recorder, 10, token=token).run(stream())

    assert [len(c) for c in recorder.chunks] == [10]


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        DocumentBatcher(Recorder(), 0)


def test_verbose_output_reports_boundaries(capsys):
    DocumentBatcher(Recorder(), 2, label="db/col", verbose=True).run(documents(3))

    out = capsys.readouterr().out
    assert "[db/col]: Inserting documents (0 - 1)..." in out
    assert "[db/col]: Inserted documents (2 - 2). Total: 3" in out
