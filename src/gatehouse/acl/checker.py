"""Early-exit permission checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from gatehouse.acl.hierarchy import HierarchyResolver
from gatehouse.acl.models import WILDCARD, Verdict
from gatehouse.buckets import BucketNames
from gatehouse.interfaces.store import BucketStore

logger = logging.getLogger(__name__)


class PermissionChecker:
    """Answers "do these roles hold all of these permissions?" without
    materializing the full inherited permission set.

    Each step reads the grants of the current generation of roles, strikes
    them off the outstanding permissions, and only climbs to the parents
    while something is still missing. A wildcard grant ends the walk.
    """

    def __init__(
        self, store: BucketStore, names: BucketNames, resolver: HierarchyResolver
    ) -> None:
        self._store = store
        self._names = names
        self._resolver = resolver

    def check(self, roles: Iterable[str], resource: str, permissions: Iterable[str]) -> Verdict:
        current = set(roles)
        if not current:
            return Verdict.denied

        bucket = self._names.allows(resource)
        remaining = set(permissions)
        visited = set(current)
        while True:
            granted = self._store.union(bucket, current)
            if WILDCARD in granted:
                return Verdict.allowed
            remaining -= granted
            if not remaining:
                return Verdict.allowed
            current = self._resolver.parents_of(current) - visited
            if not current:
                logger.debug("Denied on %r: missing %s", resource, sorted(remaining))
                return Verdict.denied
            visited |= current
