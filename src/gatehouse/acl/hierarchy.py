"""Role hierarchy traversal."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from gatehouse.buckets import Bucket, BucketNames
from gatehouse.interfaces.store import BucketStore

logger = logging.getLogger(__name__)


class HierarchyResolver:
    """Walks ``parents`` edges one generation per store round trip."""

    def __init__(self, store: BucketStore, names: BucketNames) -> None:
        self._store = store
        self._parents = names.name(Bucket.parents)

    def parents_of(self, roles: Iterable[str]) -> set[str]:
        """Direct parents of any of *roles*."""
        roles = set(roles)
        if not roles:
            return set()
        return self._store.union(self._parents, roles)

    def ancestors_of(self, roles: Iterable[str]) -> set[str]:
        """*roles* plus every role reachable through parent edges.

        Roles already visited are never expanded twice, so a cyclic graph
        terminates with the closure found so far.
        """
        visited = set(roles)
        frontier = set(visited)
        while frontier:
            parents = self.parents_of(frontier)
            revisited = parents & visited
            if revisited:
                logger.debug("Not expanding already visited roles %s", sorted(revisited))
            frontier = parents - visited
            visited |= frontier
        return visited
