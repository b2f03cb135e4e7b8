from typing import Any, Dict, Iterable, List, Tuple

from pymongo import IndexModel

from cancellation import CancelToken
from console_utils import print_verbose
from mongo_driver import MongoDriver

# Key fields starting with this prefix are server-managed (e.g. "_id") and are
# never recreated on the target.
RESERVED_KEY_PREFIX = "_"


def index_keys(descriptor: Dict[str, Any]) -> List[Tuple[str, Any]]:
    """
    Return the key fields of an index descriptor in their original order,
    without reserved-prefixed fields. Direction/type tokens (1, -1, "text",
    "2dsphere", "hashed", ...) are passed through unchanged.
    """
    return [(field, direction) for field, direction in descriptor.get("key", {}).items()
            if not field.startswith(RESERVED_KEY_PREFIX)]


def translate_indexes(descriptors: Iterable[Dict[str, Any]]) -> List[IndexModel]:
    """
    Convert source index descriptors into index models for the target.

    Only key shape, name and the unique flag are carried over. Descriptors
    whose key is empty once reserved fields are stripped (such as the default
    ``_id_`` index, which every collection already has) are dropped.
    """
    models = []
    for descriptor in descriptors:
        keys = index_keys(descriptor)
        if not keys:
            continue
        options = {"unique": bool(descriptor.get("unique", False))}
        if descriptor.get("name"):
            options["name"] = descriptor["name"]
        models.append(IndexModel(keys, **options))
    return models


class IndexTranslator:
    """
    Recreates the indexes of source collections on the target cluster.

    Each collection gets at most one create-indexes request holding every
    translated index. Recreating an identical, identically named index is a
    no-op on the server, so running this twice is harmless.
    """

    def __init__(self, source: MongoDriver, target: MongoDriver, verbose: bool = False):
        self.source = source
        self.target = target
        self.verbose = verbose

    def ensure_indexes(self, token: CancelToken, db_name: str, collection_name: str) -> List[str]:
        """
        :return: Names of the indexes requested on the target.
        :raises ListError: If the source indexes cannot be listed.
        :raises IndexCreationError: If the target rejects the request.
        """
        label = f"{db_name}/{collection_name}"
        print_verbose(self.verbose, f"[{label}]: Ensure collection indexes...")

        token.raise_if_cancelled()
        descriptors = self.source.list_indexes(db_name, collection_name)
        print_verbose(self.verbose, f"[{label}]: Found indexes: {descriptors}")

        models = translate_indexes(descriptors)
        if not models:
            print_verbose(self.verbose, f"[{label}]: No indexes to create.")
            return []

        token.raise_if_cancelled()
        self.target.create_indexes(db_name, collection_name, models)
        names = [model.document["name"] for model in models]
        print_verbose(self.verbose, f"[{label}]: Indexes created: {names}")
        return names
