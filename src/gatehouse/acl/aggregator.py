"""Inherited permission and resource aggregation."""

from __future__ import annotations

from collections.abc import Iterable

from gatehouse.acl.hierarchy import HierarchyResolver
from gatehouse.buckets import Bucket, BucketNames
from gatehouse.interfaces.store import BucketStore


class PermissionAggregator:
    """Collects everything a set of roles holds, directly or by inheritance.

    ``*`` is returned as an ordinary permission; callers decide what a
    wildcard means for them.
    """

    def __init__(
        self, store: BucketStore, names: BucketNames, resolver: HierarchyResolver
    ) -> None:
        self._store = store
        self._names = names
        self._resolver = resolver

    def permissions_of(self, roles: Iterable[str], resource: str) -> set[str]:
        """Union of the grants on *resource* held by *roles* and their ancestors.

        Walks up one parent generation per step.
        """
        generation = set(roles)
        visited = set(generation)
        bucket = self._names.allows(resource)
        permissions: set[str] = set()
        while generation:
            permissions |= self._store.union(bucket, generation)
            generation = self._resolver.parents_of(generation) - visited
            visited |= generation
        return permissions

    def resources_of(self, roles: Iterable[str]) -> set[str]:
        """Resources any role in the hierarchy of *roles* has a direct grant on."""
        roles = set(roles)
        if not roles:
            return set()
        ancestors = self._resolver.ancestors_of(roles)
        return self._store.union(self._names.name(Bucket.resources), ancestors)
