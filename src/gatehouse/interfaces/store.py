"""Bucket store plugin interface."""

from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable

# Opaque batch handle. Each store decides what it holds.
Transaction = Any


@runtime_checkable
class BucketStore(Protocol):
    """Multi-valued set store keyed by (bucket, key).

    Reads of an absent key return an empty set. Mutations are queued on a
    transaction and run by ``end()``; a store may apply a prefix of the
    queued operations and then fail, so callers must not assume rollback.
    """

    def get(self, bucket: str, key: str) -> set[str]: ...

    def union(self, bucket: str, keys: Iterable[str]) -> set[str]: ...

    def begin(self) -> Transaction: ...

    def add(self, transaction: Transaction, bucket: str, key: str, values: Iterable[str]) -> None: ...

    def remove(self, transaction: Transaction, bucket: str, key: str, values: Iterable[str]) -> None: ...

    def delete(self, transaction: Transaction, bucket: str, keys: Iterable[str]) -> None: ...

    def end(self, transaction: Transaction) -> None: ...

    def clean(self) -> None: ...


@runtime_checkable
class UnionsCapable(Protocol):
    """Optional capability: union the same keys across several buckets at once."""

    def unions(self, buckets: Iterable[str], keys: Iterable[str]) -> dict[str, set[str]]: ...
