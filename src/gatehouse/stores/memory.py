"""BucketStore implementation held in process memory."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable

Operation = Callable[[], None]


class MemoryStore:
    """Dict-of-sets store for tests and single-process use.

    A transaction is a list of deferred operations; ``end()`` runs them in
    the order they were queued. Values are snapshotted when queued.
    """

    def __init__(self) -> None:
        self._buckets: defaultdict[str, dict[str, set[str]]] = defaultdict(dict)

    # -- BucketStore protocol --------------------------------------------------

    def get(self, bucket: str, key: str) -> set[str]:
        return set(self._buckets.get(bucket, {}).get(str(key), ()))

    def union(self, bucket: str, keys: Iterable[str]) -> set[str]:
        entries = self._buckets.get(bucket, {})
        result: set[str] = set()
        for key in keys:
            result |= entries.get(str(key), set())
        return result

    def unions(self, buckets: Iterable[str], keys: Iterable[str]) -> dict[str, set[str]]:
        keys = list(keys)
        return {bucket: self.union(bucket, keys) for bucket in buckets}

    def begin(self) -> list[Operation]:
        return []

    def add(self, transaction: list[Operation], bucket: str, key: str, values: Iterable[str]) -> None:
        key, values = str(key), {str(v) for v in values}

        def _add() -> None:
            if values:
                self._buckets[bucket].setdefault(key, set()).update(values)

        transaction.append(_add)

    def remove(self, transaction: list[Operation], bucket: str, key: str, values: Iterable[str]) -> None:
        key, values = str(key), {str(v) for v in values}

        def _remove() -> None:
            entries = self._buckets.get(bucket)
            if entries is None or key not in entries:
                return
            entries[key] -= values
            if not entries[key]:
                del entries[key]

        transaction.append(_remove)

    def delete(self, transaction: list[Operation], bucket: str, keys: Iterable[str]) -> None:
        keys = {str(k) for k in keys}

        def _delete() -> None:
            entries = self._buckets.get(bucket)
            if entries is None:
                return
            for key in keys:
                entries.pop(key, None)

        transaction.append(_delete)

    def end(self, transaction: list[Operation]) -> None:
        for operation in transaction:
            operation()

    def clean(self) -> None:
        self._buckets.clear()

    # -- extras ----------------------------------------------------------------

    def stats(self) -> dict[str, int]:
        """Count keys per non-empty bucket."""
        return {name: len(entries) for name, entries in sorted(self._buckets.items()) if entries}
