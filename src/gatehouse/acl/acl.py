"""Public access-control API."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from gatehouse.acl.aggregator import PermissionAggregator
from gatehouse.acl.checker import PermissionChecker
from gatehouse.acl.hierarchy import HierarchyResolver
from gatehouse.acl.models import Names, Verdict, as_set
from gatehouse.acl.mutations import MutationEngine
from gatehouse.buckets import Bucket, BucketNames
from gatehouse.interfaces.store import BucketStore, UnionsCapable

if TYPE_CHECKING:
    from gatehouse.config.models import GatehouseConfig


class Acl(MutationEngine):
    """Role-based access control over a :class:`BucketStore`.

    Mutations come from :class:`MutationEngine`; this class adds the read
    side. Every argument that names a set of things accepts a single
    identifier or any collection of them.
    """

    def __init__(
        self,
        store: BucketStore,
        names: BucketNames | None = None,
        reserved_keys: Iterable[str] = ("key",),
        use_unions: bool = True,
    ) -> None:
        super().__init__(store, names, reserved_keys)
        self.use_unions = use_unions
        self.resolver = HierarchyResolver(self.store, self.names)
        self.aggregator = PermissionAggregator(self.store, self.names, self.resolver)
        self.checker = PermissionChecker(self.store, self.names, self.resolver)

    @classmethod
    def from_config(cls, store: BucketStore, config: GatehouseConfig) -> Acl:
        """Build an Acl using the bucket names and engine settings of *config*."""
        return cls(
            store,
            names=config.buckets,
            reserved_keys=config.engine.reserved_keys,
            use_unions=config.engine.use_unions,
        )

    # -- membership ------------------------------------------------------------

    def user_roles(self, user_id: str | int) -> set[str]:
        """Roles assigned directly to *user_id*."""
        return self.store.get(self._bucket(Bucket.users), str(user_id))

    def role_users(self, role: str) -> set[str]:
        """Users assigned directly to *role*."""
        return self.store.get(self._bucket(Bucket.roles), str(role))

    def has_role(self, user_id: str | int, role: str) -> bool:
        return str(role) in self.user_roles(user_id)

    # -- checks ----------------------------------------------------------------

    def is_allowed(self, user_id: str | int, resource: str, permissions: Names) -> bool:
        """True if the user's roles, with inheritance, hold every permission."""
        roles = self.user_roles(user_id)
        if not roles:
            return False
        return self.are_any_roles_allowed(roles, resource, permissions)

    def are_any_roles_allowed(self, roles: Names, resource: str, permissions: Names) -> bool:
        roles = as_set(roles)
        if not roles:
            return False
        verdict = self.checker.check(roles, str(resource), as_set(permissions))
        return verdict is Verdict.allowed

    # -- aggregate queries -----------------------------------------------------

    def allowed_permissions(self, user_id: str | int | None, resources: Names) -> dict[str, set[str]]:
        """Map each resource to every permission the user holds on it."""
        if user_id is None or user_id == "":
            return {}
        if self.use_unions and isinstance(self.store, UnionsCapable):
            return self.optimized_allowed_permissions(user_id, resources)

        resources = as_set(resources)
        roles = self.user_roles(user_id)
        return {r: self.aggregator.permissions_of(roles, r) for r in resources}

    def optimized_allowed_permissions(
        self, user_id: str | int | None, resources: Names
    ) -> dict[str, set[str]]:
        """Same result as :meth:`allowed_permissions` using one ``unions`` call.

        Resolves the user's full ancestor closure first, then reads every
        resource's grants for that closure in a single batched query.
        """
        if user_id is None or user_id == "":
            return {}
        if not isinstance(self.store, UnionsCapable):
            raise TypeError(f"{type(self.store).__name__} does not support unions()")

        resources = as_set(resources)
        roles = self.user_roles(user_id)
        if not roles:
            return {r: set() for r in resources}

        ancestors = self.resolver.ancestors_of(roles)
        buckets = {self.names.allows(r): r for r in resources}
        response = self.store.unions(buckets, ancestors)
        return {resource: set(response.get(bucket, ())) for bucket, resource in buckets.items()}

    def what_resources(
        self, roles: Names, permissions: Names | None = None
    ) -> dict[str, set[str]] | set[str]:
        """Resources reachable by *roles* through the hierarchy.

        Without *permissions*, maps each resource to the inherited permission
        set. With *permissions*, returns the resources where at least one of
        them is granted.
        """
        roles = as_set(roles)
        wanted = None if permissions is None else as_set(permissions)
        resources = self.aggregator.resources_of(roles)

        if wanted is None:
            return {r: self.aggregator.permissions_of(roles, r) for r in resources}
        return {r for r in resources if wanted & self.aggregator.permissions_of(roles, r)}
