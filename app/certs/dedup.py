"""Per-pass record identifier deduplication.

A Deduplicator lives for exactly one aggregation pass and is then
discarded. It is not a cache: nothing is evicted and nothing survives
across passes.
"""

from typing import Set


class Deduplicator:
    """Admits each record identifier at most once."""

    def __init__(self):
        self._seen: Set[str] = set()
        self._rejected: int = 0

    def admit(self, record_id: str) -> bool:
        """Record record_id and return True the first time it is seen.

        Every later call with the same identifier returns False.
        """
        if record_id in self._seen:
            self._rejected += 1
            return False
        self._seen.add(record_id)
        return True

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    @property
    def duplicates(self) -> int:
        """Number of admit() calls that were rejected."""
        return self._rejected
