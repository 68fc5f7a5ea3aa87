"""Dynamic store discovery and loading."""

from gatehouse.plugins.loader import PluginLoader, PluginNotFoundError, create_store

__all__ = ["PluginLoader", "PluginNotFoundError", "create_store"]
