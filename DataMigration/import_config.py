import os
from dataclasses import dataclass, field
from typing import Tuple

from database_filter import DatabasePredicate

DEFAULT_BATCH_SIZE = 100
DEFAULT_PING_TIMEOUT = 5.0


def default_parallelism() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class ImportConfig:
    """
    Settings for a single import run.

    The object is built once before the run starts and handed to every
    component; nothing changes it afterwards. ``batch_size`` and ``parallel``
    are clamped to at least 1.
    """
    filters: Tuple[DatabasePredicate, ...] = field(default_factory=tuple)
    drop: bool = False
    skip_confirm: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    parallel: int = field(default_factory=default_parallelism)
    create_indexes: bool = True
    ping_timeout: float = DEFAULT_PING_TIMEOUT
    verbose: bool = False

    def __post_init__(self):
        object.__setattr__(self, "filters", tuple(self.filters))
        object.__setattr__(self, "batch_size", max(1, int(self.batch_size)))
        object.__setattr__(self, "parallel", max(1, int(self.parallel)))
        if self.ping_timeout <= 0:
            raise ValueError(f"ping_timeout must be positive, got {self.ping_timeout}")
