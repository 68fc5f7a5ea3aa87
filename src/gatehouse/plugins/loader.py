"""Dynamic store discovery and loading via entry points."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING

from gatehouse.interfaces.store import BucketStore

if TYPE_CHECKING:
    from gatehouse.config.models import GatehouseConfig

logger = logging.getLogger(__name__)


class PluginNotFoundError(Exception):
    """Raised when a requested store plugin cannot be found."""

    def __init__(self, plugin_type: str, name: str | None = None):
        self.plugin_type = plugin_type
        self.name = name
        msg = f"No {plugin_type} plugin found"
        if name:
            msg += f" with name '{name}'"
        super().__init__(msg)


class PluginLoader:
    """Discovers and loads bucket store classes via entry points or config."""

    GROUP = "gatehouse.stores"

    # Built-in stores (lazy import paths), used when no entry point matches
    BUILTINS = {
        "memory": ("gatehouse.stores.memory", "MemoryStore"),
        "sqlite": ("gatehouse.stores.sqlite_store", "SQLiteStore"),
    }

    def __init__(self, config: GatehouseConfig):
        self._config = config

    def discover(self) -> list[str]:
        """Names of every store registered under the entry point group."""
        eps = importlib.metadata.entry_points(group=self.GROUP)
        return sorted({ep.name for ep in eps} | set(self.BUILTINS))

    def _load_from_entry_point(self, name: str) -> type | None:
        for ep in importlib.metadata.entry_points(group=self.GROUP):
            if ep.name == name:
                return ep.load()
        return None

    def _load_builtin(self, name: str) -> type | None:
        if name not in self.BUILTINS:
            return None
        module_path, class_name = self.BUILTINS[name]
        try:
            module = __import__(module_path, fromlist=[class_name])
            return getattr(module, class_name)
        except (ImportError, AttributeError):
            return None

    def load_store(self, name: str | None = None) -> type:
        """Resolve a store class: explicit name > config > entry points > built-ins."""
        resolved = name if name is not None else self._config.store.provider
        store_cls = self._load_from_entry_point(resolved) or self._load_builtin(resolved)
        if store_cls is None:
            raise PluginNotFoundError("store", resolved)
        return store_cls


def create_store(config: GatehouseConfig, name: str | None = None) -> BucketStore:
    """Instantiate the configured store, passing ``store.options`` as keyword arguments."""
    store_cls = PluginLoader(config).load_store(name)
    store = store_cls(**config.store.options)
    logger.info("Using %s bucket store", store_cls.__name__)
    return store
