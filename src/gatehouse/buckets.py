"""Logical buckets and their physical names."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Keys inside the meta bucket.
META_ROLES = "roles"
META_USERS = "users"


class Bucket(str, Enum):
    """The closed set of logical buckets the engine reads and writes."""

    users = "users"
    roles = "roles"
    parents = "parents"
    resources = "resources"
    meta = "meta"
    allows = "allows"


class BucketNames(BaseModel):
    """Maps logical buckets to the names a store sees.

    ``allows`` is a prefix: every resource gets its own bucket named
    ``<allows_prefix><resource>``.
    """

    model_config = ConfigDict(frozen=True)

    meta: str = "meta"
    parents: str = "parents"
    resources: str = "resources"
    roles: str = "roles"
    users: str = "users"
    allows_prefix: str = Field(default="allows_", min_length=1)

    def name(self, bucket: Bucket) -> str:
        if bucket is Bucket.allows:
            raise ValueError("allows is per-resource; use BucketNames.allows(resource)")
        return getattr(self, bucket.value)

    def allows(self, resource: str) -> str:
        """Physical bucket holding the grants on *resource*."""
        return f"{self.allows_prefix}{resource}"

    def resource_of(self, bucket: str) -> str:
        """Inverse of :meth:`allows`."""
        return bucket.removeprefix(self.allows_prefix)
