from typing import Any, Literal

from pydantic import BaseModel, Field

from gatehouse.buckets import BucketNames


class StoreConfig(BaseModel):
    provider: str = "sqlite"
    options: dict[str, Any] = Field(default_factory=dict)


class EngineConfig(BaseModel):
    use_unions: bool = True
    reserved_keys: list[str] = Field(default_factory=lambda: ["key"])


class GatehouseConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    buckets: BucketNames = Field(default_factory=BucketNames)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
