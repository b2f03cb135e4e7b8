import re
from typing import Callable, Iterable, List, Sequence, Tuple, Union

from console_utils import print_verbose

DatabasePredicate = Callable[[str], bool]


def has_prefix(prefix: str) -> DatabasePredicate:
    """
    Return a predicate that accepts database names starting with ``prefix``.
    """
    def predicate(name: str) -> bool:
        return name.startswith(prefix)

    predicate.description = f"prefix {prefix!r}"
    return predicate


def exclude(*patterns: Union[str, "re.Pattern"]) -> DatabasePredicate:
    """
    Return a predicate that rejects database names matched by any of the given
    regular expressions. Strings are compiled; a name is kept only if none of
    the patterns match anywhere in it.

    :raises re.error: If a pattern string is not a valid regular expression.
    """
    expressions = [re.compile(p) if isinstance(p, str) else p for p in patterns]

    def predicate(name: str) -> bool:
        return not any(expr.search(name) for expr in expressions)

    predicate.description = "exclude " + ", ".join(repr(e.pattern) for e in expressions)
    return predicate


def _describe(predicate: DatabasePredicate) -> str:
    return getattr(predicate, "description", getattr(predicate, "__name__", repr(predicate)))


class DatabaseFilter:
    """
    Decides which database names take part in an import.

    A name passes only if every predicate accepts it. Names rejected by the
    last call to ``apply`` are kept in ``excluded`` together with the
    predicate that rejected them.
    """

    def __init__(self, filters: Iterable[DatabasePredicate] = (), verbose: bool = False):
        self.filters = list(filters)
        self.verbose = verbose
        self.excluded: List[Tuple[str, str]] = []

    def apply(self, names: Sequence[str]) -> List[str]:
        self.excluded = []
        if not self.filters:
            return list(names)

        filtered = []
        for name in names:
            rejected_by = next((f for f in self.filters if not f(name)), None)
            if rejected_by is None:
                filtered.append(name)
                continue
            reason = _describe(rejected_by)
            self.excluded.append((name, reason))
            print_verbose(self.verbose, f"Database {name!r} excluded from import ({reason}).")
        return filtered


def filter_databases(names: Sequence[str], filters: Iterable[DatabasePredicate] = (), verbose: bool = False) -> List[str]:
    """Return the names accepted by every filter, in their original order."""
    return DatabaseFilter(filters, verbose).apply(names)
