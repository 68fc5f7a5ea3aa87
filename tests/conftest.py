"""Shared test fixtures for Gatehouse."""

import pytest

from gatehouse.acl import Acl
from gatehouse.config.models import GatehouseConfig
from gatehouse.stores.memory import MemoryStore
from gatehouse.stores.sqlite_store import SQLiteStore


class RecordingStore(MemoryStore):
    """MemoryStore that records every read it serves."""

    def __init__(self) -> None:
        super().__init__()
        self.reads: list[tuple[str, str, tuple[str, ...]]] = []

    def get(self, bucket, key):
        self.reads.append(("get", bucket, (str(key),)))
        return super().get(bucket, key)

    def union(self, bucket, keys):
        keys = sorted(str(k) for k in keys)
        self.reads.append(("union", bucket, tuple(keys)))
        return super().union(bucket, keys)


class NoUnionsStore(MemoryStore):
    """MemoryStore without the batched ``unions`` capability."""

    unions = None  # type: ignore[assignment]


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteStore(db_path=str(tmp_path / "acl.db"))
    yield store
    store.close()


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture(params=["memory", "sqlite", "no-unions"])
def store(request, tmp_path):
    """Every built-in backend, plus one that lacks ``unions``."""
    if request.param == "sqlite":
        s = SQLiteStore(db_path=str(tmp_path / "acl.db"))
        yield s
        s.close()
    elif request.param == "no-unions":
        yield NoUnionsStore()
    else:
        yield MemoryStore()


@pytest.fixture
def acl(store):
    return Acl(store)


@pytest.fixture
def sample_config():
    return GatehouseConfig()
