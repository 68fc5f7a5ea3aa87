"""Gatehouse - role-based access control over a pluggable bucket store."""

from gatehouse.acl import Acl, AllowRule, InvalidArgumentError, Verdict
from gatehouse.buckets import Bucket, BucketNames
from gatehouse.config import GatehouseConfig, load_config
from gatehouse.interfaces import BucketStore, UnionsCapable
from gatehouse.plugins import PluginNotFoundError, create_store
from gatehouse.stores import MemoryStore, SQLiteStore

__version__ = "0.1.0"

__all__ = [
    "Acl",
    "AllowRule",
    "Bucket",
    "BucketNames",
    "BucketStore",
    "GatehouseConfig",
    "InvalidArgumentError",
    "MemoryStore",
    "PluginNotFoundError",
    "SQLiteStore",
    "UnionsCapable",
    "Verdict",
    "create_store",
    "load_config",
]
