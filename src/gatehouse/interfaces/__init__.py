"""Plugin interfaces for Gatehouse storage backends."""

from gatehouse.interfaces.store import BucketStore, Transaction, UnionsCapable

__all__ = [
    "BucketStore",
    "Transaction",
    "UnionsCapable",
]
