"""Grant, revoke, and structural edits as batches against a bucket store."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager

from gatehouse.acl.models import (
    AllowRule,
    InvalidArgumentError,
    Names,
    as_set,
    validate_names,
)
from gatehouse.buckets import META_ROLES, META_USERS, Bucket, BucketNames
from gatehouse.interfaces.store import BucketStore, Transaction

logger = logging.getLogger(__name__)


class MutationEngine:
    """Shapes the user/role/permission graph.

    Every call is one ``begin()``/``end()`` batch, except the permission
    removal cleanup which deliberately runs a second batch. Nothing here is
    atomic across batches, and a store failure leaves whatever partial
    state the store produced.
    """

    def __init__(
        self,
        store: BucketStore,
        names: BucketNames | None = None,
        reserved_keys: Iterable[str] = ("key",),
    ) -> None:
        self.store = store
        self.names = names or BucketNames()
        self.reserved_keys = frozenset(reserved_keys)

    # -- helpers ---------------------------------------------------------------

    @contextmanager
    def _batch(self) -> Iterator[Transaction]:
        transaction = self.store.begin()
        yield transaction
        self.store.end(transaction)

    def _bucket(self, bucket: Bucket) -> str:
        return self.names.name(bucket)

    def _one(self, argument: str, value: str | int | None) -> str:
        if value is None:
            raise InvalidArgumentError(argument, value, "identifier is required")
        name = str(value)
        validate_names(argument, [name], self.reserved_keys)
        return name

    def _many(self, argument: str, value: Names | None) -> set[str]:
        names = as_set(value)
        validate_names(argument, names, self.reserved_keys)
        return names

    # -- user membership -------------------------------------------------------

    def add_user_roles(self, user_id: str | int, roles: Names) -> None:
        """Give *user_id* the given roles and register the user."""
        user = self._one("user_id", user_id)
        roles = self._many("roles", roles)

        with self._batch() as tx:
            self.store.add(tx, self._bucket(Bucket.meta), META_USERS, {user})
            self.store.add(tx, self._bucket(Bucket.users), user, roles)
            for role in roles:
                self.store.add(tx, self._bucket(Bucket.roles), role, {user})
        logger.debug("Added roles %s to user %r", sorted(roles), user)

    def remove_user_roles(self, user_id: str | int, roles: Names) -> None:
        """Take roles away from *user_id*. The user stays registered."""
        user = self._one("user_id", user_id)
        roles = as_set(roles)

        with self._batch() as tx:
            self.store.remove(tx, self._bucket(Bucket.users), user, roles)
            for role in roles:
                self.store.remove(tx, self._bucket(Bucket.roles), role, {user})
        logger.debug("Removed roles %s from user %r", sorted(roles), user)

    # -- hierarchy -------------------------------------------------------------

    def add_role_parents(self, role: str, parents: Names) -> None:
        """Make *role* inherit from *parents*. Cycles are not rejected."""
        role = self._one("role", role)
        parents = self._many("parents", parents)

        with self._batch() as tx:
            self.store.add(tx, self._bucket(Bucket.meta), META_ROLES, {role})
            self.store.add(tx, self._bucket(Bucket.parents), role, parents)
        logger.debug("Role %r now inherits from %s", role, sorted(parents))

    def remove_role_parents(self, role: str, parents: Names | None = None) -> None:
        """Remove the given parents of *role*, or all of them when omitted."""
        role = self._one("role", role)

        with self._batch() as tx:
            if parents is None:
                self.store.delete(tx, self._bucket(Bucket.parents), {role})
            else:
                self.store.remove(tx, self._bucket(Bucket.parents), role, as_set(parents))

    # -- grants ----------------------------------------------------------------

    def allow(self, roles: Names, resources: Names, permissions: Names) -> None:
        """Grant *permissions* to every role over every resource.

        Additive: existing grants are never narrowed.
        """
        roles = self._many("roles", roles)
        resources = self._many("resources", resources)
        permissions = self._many("permissions", permissions)
        if not permissions:
            # resources[role] may only list resources with a non-empty grant
            raise InvalidArgumentError("permissions", permissions, "at least one permission is required")

        with self._batch() as tx:
            self.store.add(tx, self._bucket(Bucket.meta), META_ROLES, roles)
            for resource in resources:
                bucket = self.names.allows(resource)
                for role in roles:
                    self.store.add(tx, bucket, role, permissions)
            for role in roles:
                self.store.add(tx, self._bucket(Bucket.resources), role, resources)
        logger.debug(
            "Allowed %s on %s for roles %s", sorted(permissions), sorted(resources), sorted(roles)
        )

    def allow_rules(self, rules: AllowRule | Mapping | Iterable[AllowRule | Mapping]) -> None:
        """Compact form of :meth:`allow`.

        Each rule looks like ``{"roles": ..., "allows": [{"resources": ...,
        "permissions": ...}]}`` and is applied as one ``allow`` call per grant,
        in order.
        """
        if isinstance(rules, (AllowRule, Mapping)):
            rules = [rules]
        parsed = [AllowRule.model_validate(r) if isinstance(r, Mapping) else r for r in rules]
        for rule in parsed:
            for grant in rule.allows:
                self.allow(rule.roles, grant.resources, grant.permissions)

    def remove_allow(
        self, role: str, resources: Names, permissions: Names | None = None
    ) -> None:
        """Revoke *permissions* (or every grant) of *role* on *resources*."""
        self.remove_permissions(role, resources, permissions)

    def remove_permissions(
        self, role: str, resources: Names, permissions: Names | None = None
    ) -> None:
        """Revoke grants, then drop resources left without grants from the index.

        The index cleanup is a second batch that re-reads each grant after
        the first one has been applied. An ``allow`` for the same role and
        resource landing between the two batches can be wiped from
        ``resources[role]`` even though the grant exists, or a stale index
        entry can survive. Queries tolerate both.
        """
        role = self._one("role", role)
        resources = as_set(resources)
        permissions = None if permissions is None else as_set(permissions)
        index = self._bucket(Bucket.resources)

        with self._batch() as tx:
            for resource in resources:
                bucket = self.names.allows(resource)
                if permissions is not None:
                    self.store.remove(tx, bucket, role, permissions)
                else:
                    self.store.delete(tx, bucket, {role})
                    self.store.remove(tx, index, role, {resource})

        emptied = {r for r in resources if not self.store.get(self.names.allows(r), role)}
        with self._batch() as tx:
            for resource in emptied:
                self.store.remove(tx, index, role, {resource})
        logger.debug(
            "Revoked %s from role %r on %s",
            "all permissions" if permissions is None else sorted(permissions),
            role,
            sorted(resources),
        )

    # -- structural removal ----------------------------------------------------

    def remove_role(self, role: str) -> None:
        """Delete *role*'s grants, parents, index and membership list.

        ``users[...]`` sets are left alone: a user may keep listing the
        removed role. The resource index is read before the batch opens, so a
        grant added to the role in between is left orphaned.
        """
        role = self._one("role", role)
        resources = self.store.get(self._bucket(Bucket.resources), role)

        with self._batch() as tx:
            for resource in resources:
                self.store.delete(tx, self.names.allows(resource), {role})
            self.store.delete(tx, self._bucket(Bucket.resources), {role})
            self.store.delete(tx, self._bucket(Bucket.parents), {role})
            self.store.delete(tx, self._bucket(Bucket.roles), {role})
            self.store.remove(tx, self._bucket(Bucket.meta), META_ROLES, {role})
        logger.debug("Removed role %r (%d resources)", role, len(resources))

    def remove_resource(self, resource: str) -> None:
        """Delete every grant on *resource* by sweeping all known roles."""
        resource = self._one("resource", resource)
        roles = self.store.get(self._bucket(Bucket.meta), META_ROLES)

        with self._batch() as tx:
            self.store.delete(tx, self.names.allows(resource), roles)
            for role in roles:
                self.store.remove(tx, self._bucket(Bucket.resources), role, {resource})
        logger.debug("Removed resource %r from %d roles", resource, len(roles))
