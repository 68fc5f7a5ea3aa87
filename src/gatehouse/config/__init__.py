from .loader import load_config
from .models import (
    EngineConfig,
    GatehouseConfig,
    StoreConfig,
)

__all__ = [
    "EngineConfig",
    "GatehouseConfig",
    "StoreConfig",
    "load_config",
]
