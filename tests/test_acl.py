"""End-to-end tests for the Acl query API, run against every backend."""

from __future__ import annotations

import pytest

from gatehouse.acl import Acl
from gatehouse.config.models import EngineConfig, GatehouseConfig
from gatehouse.stores.memory import MemoryStore


@pytest.fixture
def seeded(acl: Acl) -> Acl:
    """The blogs/forums fixture world used throughout these tests."""
    acl.allow("guest", "blogs", "view")
    acl.allow("guest", "forums", "view")
    acl.allow("member", "blogs", ["edit", "view", "delete"])

    acl.add_user_roles("joed", "guest")
    acl.add_user_roles("jsmith", "member")
    acl.add_user_roles("harry", "admin")
    acl.add_user_roles("test@test.com", "member")
    acl.add_user_roles(0, "guest")
    acl.add_user_roles(1, "member")
    acl.add_user_roles(2, "admin")

    acl.allow("admin", "users", ["add", "edit", "view", "delete"])
    acl.allow("foo", "blogs", ["edit", "view"])
    acl.allow("bar", "blogs", ["view", "delete"])
    acl.add_role_parents("baz", ["foo", "bar"])
    acl.add_user_roles("james", "baz")
    acl.add_user_roles(3, "baz")

    acl.allow("admin", ["blogs", "forums"], "*")

    acl.allow_rules([
        {
            "roles": "fumanchu",
            "allows": [
                {"resources": "blogs", "permissions": "get"},
                {"resources": ["forums", "news"], "permissions": ["get", "put", "delete"]},
                {
                    "resources": ["/path/file/file1.txt", "/path/file/file2.txt"],
                    "permissions": ["get", "put", "delete"],
                },
            ],
        },
    ])
    acl.add_user_roles("suzanne", "fumanchu")
    acl.add_user_roles(4, "fumanchu")
    return acl


# -- Membership ----------------------------------------------------------------


class TestMembership:
    def test_user_roles(self, seeded):
        assert seeded.user_roles("harry") == {"admin"}

    def test_has_role(self, seeded):
        assert seeded.has_role("harry", "admin") is True
        assert seeded.has_role("harry", "no role") is False

    def test_role_users(self, seeded):
        assert seeded.role_users("admin") == {"harry", "2"}
        assert "invalid User" not in seeded.role_users("admin")

    def test_unknown_user_has_no_roles(self, seeded):
        assert seeded.user_roles("nobody") == set()


# -- is_allowed ----------------------------------------------------------------


class TestIsAllowed:
    @pytest.mark.parametrize(
        "user, resource, permissions, expected",
        [
            ("joed", "blogs", "view", True),
            (0, "blogs", "view", True),
            ("joed", "forums", "view", True),
            ("joed", "forums", "edit", False),
            (0, "forums", "edit", False),
            ("jsmith", "forums", "edit", False),
            ("jsmith", "blogs", "edit", True),
            ("test@test.com", "blogs", "edit", True),
            (1, "blogs", "edit", True),
            ("jsmith", "blogs", ["edit", "view", "clone"], False),
            ("jsmith", "blogs", ["edit", "clone"], False),
            ("james", "blogs", "add", False),
            (3, "blogs", "add", False),
            ("james", "blogs", ["edit", "delete"], True),
            ("suzanne", "blogs", "add", False),
            ("suzanne", "blogs", "get", True),
            (4, "blogs", "get", True),
            ("suzanne", "news", ["put", "delete"], True),
            ("suzanne", "forums", ["put", "delete"], True),
            ("suzanne", "/path/file/file1.txt", "put", True),
            ("nobody", "blogs", "view", False),
            ("nobody", "nothing", "view", False),
        ],
    )
    def test_queries(self, seeded, user, resource, permissions, expected):
        assert seeded.is_allowed(user, resource, permissions) is expected

    def test_wildcard_grants_any_permission(self, seeded):
        assert seeded.is_allowed("harry", "blogs", "delete") is True
        assert seeded.is_allowed("harry", "forums", ["anything", "else"]) is True

    def test_wildcard_is_per_resource(self, seeded):
        assert seeded.is_allowed("harry", "unknownResource", "delete") is False

    def test_user_without_roles_reads_nothing_else(self, recording_store):
        acl = Acl(recording_store)
        assert acl.is_allowed("ghost", "blogs", "view") is False
        assert recording_store.reads == [("get", "users", ("ghost",))]

    def test_hierarchy_inheritance(self, acl):
        acl.add_role_parents("child", "parent")
        acl.allow("parent", "res", "p")
        acl.add_user_roles("u", "child")
        assert acl.is_allowed("u", "res", "p") is True


class TestAreAnyRolesAllowed:
    def test_any_role_suffices(self, seeded):
        assert seeded.are_any_roles_allowed(["guest", "member"], "blogs", "edit") is True

    def test_empty_roles(self, seeded):
        assert seeded.are_any_roles_allowed([], "blogs", "view") is False

    def test_scalar_role(self, seeded):
        assert seeded.are_any_roles_allowed("guest", "forums", "view") is True


# -- allowed_permissions -------------------------------------------------------


class TestAllowedPermissions:
    def test_inherited(self, seeded):
        perms = seeded.allowed_permissions("james", ["blogs", "forums"])
        assert perms == {"blogs": {"edit", "view", "delete"}, "forums": set()}

    def test_numeric_user(self, seeded):
        perms = seeded.allowed_permissions(3, ["blogs", "forums"])
        assert perms["blogs"] == {"edit", "view", "delete"}
        assert perms["forums"] == set()

    def test_unknown_user(self, seeded):
        assert seeded.allowed_permissions("nonsense", ["blogs", "forums"]) == {
            "blogs": set(),
            "forums": set(),
        }

    def test_scalar_resource(self, seeded):
        assert seeded.allowed_permissions("suzanne", "news") == {"news": {"get", "put", "delete"}}

    def test_wildcard_returned_verbatim(self, seeded):
        assert seeded.allowed_permissions("harry", "blogs") == {"blogs": {"*"}}

    def test_missing_user_id(self, seeded):
        assert seeded.allowed_permissions(None, "blogs") == {}
        assert seeded.allowed_permissions("", "blogs") == {}


class TestAllowedPermissionsStrategies:
    def _build(self, use_unions: bool) -> Acl:
        acl = Acl(MemoryStore(), use_unions=use_unions)
        acl.allow("foo", "blogs", ["edit", "view"])
        acl.allow("bar", "blogs", ["view", "delete"])
        acl.allow("root", "forums", "*")
        acl.add_role_parents("baz", ["foo", "bar"])
        acl.add_role_parents("bar", "root")
        acl.add_user_roles("james", "baz")
        return acl

    def test_both_strategies_agree(self):
        resources = ["blogs", "forums", "news"]
        batched = self._build(use_unions=True).allowed_permissions("james", resources)
        portable = self._build(use_unions=False).allowed_permissions("james", resources)
        assert batched == portable == {
            "blogs": {"edit", "view", "delete"},
            "forums": {"*"},
            "news": set(),
        }

    def test_batched_path_uses_unions(self, monkeypatch):
        acl = self._build(use_unions=True)
        calls = []
        original = acl.store.unions
        monkeypatch.setattr(
            acl.store, "unions", lambda b, k: calls.append((set(b), set(k))) or original(b, k)
        )
        acl.allowed_permissions("james", ["blogs", "forums"])
        assert calls == [({"allows_blogs", "allows_forums"}, {"baz", "foo", "bar", "root"})]

    def test_portable_path_skips_unions(self, monkeypatch):
        acl = self._build(use_unions=False)
        monkeypatch.setattr(acl.store, "unions", lambda b, k: pytest.fail("unions called"))
        acl.allowed_permissions("james", ["blogs"])

    def test_optimized_requires_capability(self, acl):
        if hasattr(acl.store, "unions") and acl.store.unions is not None:
            pytest.skip("store supports unions")
        with pytest.raises(TypeError):
            acl.optimized_allowed_permissions("james", "blogs")

    def test_optimized_user_without_roles(self, memory_store):
        acl = Acl(memory_store)
        assert acl.optimized_allowed_permissions("ghost", ["a", "b"]) == {"a": set(), "b": set()}

    def test_from_config(self, memory_store):
        config = GatehouseConfig(engine=EngineConfig(use_unions=False, reserved_keys=["_id"]))
        acl = Acl.from_config(memory_store, config)
        assert acl.use_unions is False
        assert acl.reserved_keys == frozenset({"_id"})


# -- what_resources ------------------------------------------------------------


class TestWhatResources:
    def test_map_form(self, seeded):
        resources = seeded.what_resources("bar")
        assert resources == {"blogs": {"view", "delete"}}

    def test_filtered_form(self, seeded):
        assert seeded.what_resources("bar", "view") == {"blogs"}
        assert seeded.what_resources("bar", "edit") == set()

    def test_compact_grants(self, seeded):
        resources = seeded.what_resources("fumanchu")
        assert resources["blogs"] == {"get"}
        assert resources["forums"] == {"get", "put", "delete"}
        assert resources["news"] == {"get", "put", "delete"}
        assert resources["/path/file/file1.txt"] == {"get", "put", "delete"}
        assert resources["/path/file/file2.txt"] == {"get", "put", "delete"}

    def test_inherited(self, seeded):
        assert seeded.what_resources("baz") == {"blogs": {"view", "delete", "edit"}}

    def test_filtered_intersection_any(self, seeded):
        assert seeded.what_resources("fumanchu", ["put", "nope"]) == {
            "forums",
            "news",
            "/path/file/file1.txt",
            "/path/file/file2.txt",
        }


# -- Mutations observed through queries ----------------------------------------


class TestRevocation:
    def test_remove_allow_then_query(self, seeded):
        seeded.remove_allow("fumanchu", ["blogs", "forums"], "get")
        seeded.remove_allow("fumanchu", "news", "delete")
        seeded.remove_allow("bar", "blogs", "view")

        resources = seeded.what_resources("fumanchu")
        assert "blogs" not in resources
        assert resources["news"] == {"get", "put"}
        assert resources["forums"] == {"delete", "put"}
        assert seeded.what_resources("bar") == {"blogs": {"delete"}}

    def test_revoke_one_keeps_other(self, acl):
        acl.add_user_roles("u", "r")
        acl.allow("r", "res", ["p", "q"])
        acl.remove_allow("r", "res", "p")
        assert acl.is_allowed("u", "res", "p") is False
        assert acl.is_allowed("u", "res", "q") is True


class TestRoleRemoval:
    def test_removed_roles_lose_everything(self, seeded):
        for role in ("fumanchu", "member", "foo"):
            seeded.remove_role(role)

        assert seeded.what_resources("fumanchu") == {}
        assert seeded.what_resources("member") == {}
        perms = seeded.allowed_permissions("jsmith", ["blogs", "forums"])
        assert perms == {"blogs": set(), "forums": set()}
        assert seeded.allowed_permissions("james", "blogs") == {"blogs": {"view", "delete"}}

    def test_membership_survives(self, seeded):
        seeded.remove_role("member")
        assert "member" in seeded.user_roles("jsmith")
        assert seeded.is_allowed("jsmith", "blogs", "view") is False

    def test_unrelated_roles_intact(self, acl):
        acl.allow(["role1", "role2", "role3"], ["res1", "res2", "res3"], ["perm1", "perm2", "perm3"])
        acl.add_user_roles("user1", "role1")
        acl.add_role_parents("role1", "parentRole1")

        acl.remove_role("role1")
        acl.remove_role("role1")

        assert acl.what_resources("role1") == {}
        assert acl.what_resources("role2")["res1"] == {"perm1", "perm2", "perm3"}


class TestRoleParentRemoval:
    @pytest.fixture
    def family(self, acl: Acl) -> Acl:
        for i in range(1, 6):
            acl.allow(f"parent{i}", "x", f"read{i}")
        acl.add_role_parents("child", [f"parent{i}" for i in range(1, 6)])
        return acl

    def test_environment(self, family):
        assert family.what_resources("child")["x"] == {f"read{i}" for i in range(1, 6)}

    def test_unknown_parent_changes_nothing(self, family):
        family.remove_role_parents("child", "parentX")
        assert len(family.what_resources("child")["x"]) == 5

    def test_remove_some(self, family):
        family.remove_role_parents("child", "parent1")
        family.remove_role_parents("child", ["parent2", "parent3"])
        assert family.what_resources("child")["x"] == {"read4", "read5"}

    def test_remove_all_idempotent(self, family):
        family.remove_role_parents("child")
        assert "x" not in family.what_resources("child")
        family.remove_role_parents("child")
        assert "x" not in family.what_resources("child")
        family.remove_role_parents("child", "parent1")
        assert "x" not in family.what_resources("child")


class TestResourceRemoval:
    def test_remove_resources(self, seeded):
        seeded.remove_resource("blogs")
        seeded.remove_resource("users")

        assert seeded.allowed_permissions("james", "blogs") == {"blogs": set()}
        assert seeded.allowed_permissions(4, "blogs") == {"blogs": set()}
        assert seeded.what_resources("baz") == {}
        admin = seeded.what_resources("admin")
        assert "users" not in admin
        assert "blogs" not in admin
        assert admin == {"forums": {"*"}}


class TestUserRoleRemoval:
    def test_remove_user_roles(self, seeded):
        seeded.remove_user_roles("joed", "guest")
        seeded.remove_user_roles(0, "guest")
        seeded.remove_user_roles("harry", "admin")
        seeded.remove_user_roles(2, "admin")

        assert seeded.allowed_permissions("harry", ["forums", "blogs"]) == {
            "forums": set(),
            "blogs": set(),
        }
        assert seeded.allowed_permissions(2, ["forums", "blogs"])["forums"] == set()
        assert seeded.role_users("admin") == set()


class TestCycles:
    def test_queries_terminate_on_cyclic_hierarchy(self, acl):
        acl.allow("a", "x", "p1")
        acl.allow("b", "x", "p2")
        acl.add_role_parents("a", "b")
        acl.add_role_parents("b", "a")
        acl.add_user_roles("u", "a")

        assert acl.is_allowed("u", "x", ["p1", "p2"]) is True
        assert acl.is_allowed("u", "x", "p3") is False
        assert acl.allowed_permissions("u", "x") == {"x": {"p1", "p2"}}
        assert acl.what_resources("a") == {"x": {"p1", "p2"}}
