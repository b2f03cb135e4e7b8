from cancellation import CancelToken
from console_utils import print_verbose
from document_batcher import DocumentBatcher
from mongo_driver import MongoDriver


class CollectionCopier:
    """
    Copies every document of one source collection into the collection of the
    same name in the same database on the target.
    """

    def __init__(self, source: MongoDriver, target: MongoDriver, batch_size: int, verbose: bool = False):
        self.source = source
        self.target = target
        self.batch_size = batch_size
        self.verbose = verbose

    def copy(self, token: CancelToken, db_name: str, collection_name: str) -> int:
        """
        Stream the source collection into the target in batches.

        :return: The number of documents copied.
        :raises ReadError: If reading from the source fails; the copy is abandoned.
        :raises WriteError: If a bulk insert fails.
        :raises MigrationCancelled: If the token is cancelled.
        """
        label = f"{db_name}/{collection_name}"
        print_verbose(self.verbose, f"[{db_name}]: Import collection: {collection_name}")

        token.raise_if_cancelled()
        batcher = DocumentBatcher(
            lambda chunk: self.target.insert_many(db_name, collection_name, chunk),
            self.batch_size,
            label=label,
            token=token,
            verbose=self.verbose)

        documents = self.source.find_all(db_name, collection_name)
        try:
            copied = batcher.run(documents)
        finally:
            documents.close()

        print_verbose(self.verbose, f"[{label}]: Import done ({copied} documents).")
        return copied
