"""
Consistency checks for the static permission catalog and role defaults.
"""

import pytest

from sitecontrol.services.permission_catalog import (
    ADMIN_SUPERSEDING_PERMISSIONS,
    ALL_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_CATEGORIES,
    category_of,
    get_permission,
    get_permissions_by_category,
    get_permissions_count,
    get_role_defaults,
    get_role_description,
    known_roles,
    permission_ids,
)


class TestCatalog:

    def test_keys_are_unique(self):
        keys = [p.key for p in ALL_PERMISSIONS]
        assert len(keys) == len(set(keys))

    def test_category_is_first_segment(self):
        category_names = {c.name for c in PERMISSION_CATEGORIES}
        for perm in ALL_PERMISSIONS:
            assert perm.category == category_of(perm.key)
            assert perm.category in category_names

    def test_action_is_last_segment(self):
        assert get_permission("settings.holidays.create").action == "create"
        assert get_permission("hr.attendance.check_in_out").action == "check_in_out"

    def test_every_category_has_permissions(self):
        for category in PERMISSION_CATEGORIES:
            assert get_permissions_by_category(category.name)

    def test_definitions_are_frozen(self):
        with pytest.raises(Exception):
            ALL_PERMISSIONS[0].key = "changed"
        assert type(ALL_PERMISSIONS[0]).model_config["frozen"] is True
        assert type(PERMISSION_CATEGORIES[0]).model_config["frozen"] is True

    def test_unknown_key(self):
        assert get_permission("nope.view") is None


class TestRoleDefaults:

    @pytest.mark.parametrize("role", ["admin", "manager", "engineer", "viewer"])
    def test_defaults_are_catalog_keys(self, role):
        assert set(DEFAULT_ROLE_PERMISSIONS[role]) <= permission_ids()

    @pytest.mark.parametrize("role", ["admin", "manager", "engineer", "viewer"])
    def test_no_duplicate_defaults(self, role):
        defaults = DEFAULT_ROLE_PERMISSIONS[role]
        assert len(defaults) == len(set(defaults))

    def test_admin_holds_everything(self):
        assert set(DEFAULT_ROLE_PERMISSIONS["admin"]) == permission_ids()
        assert ADMIN_SUPERSEDING_PERMISSIONS <= permission_ids()

    def test_roles_are_nested(self):
        viewer = set(DEFAULT_ROLE_PERMISSIONS["viewer"])
        engineer = set(DEFAULT_ROLE_PERMISSIONS["engineer"])
        manager = set(DEFAULT_ROLE_PERMISSIONS["manager"])
        assert viewer < engineer < manager

    def test_site_modules_are_admin_only(self):
        site_modules = ("cost_control", "hr", "commercial", "procurement")
        for role in ("manager", "engineer", "viewer"):
            assert not [p for p in DEFAULT_ROLE_PERMISSIONS[role] if category_of(p) in site_modules]

    def test_only_admin_manages_users(self):
        for role in ("manager", "engineer", "viewer"):
            assert not ADMIN_SUPERSEDING_PERMISSIONS & set(DEFAULT_ROLE_PERMISSIONS[role])

    def test_mapping_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_ROLE_PERMISSIONS["viewer"] = ()

    def test_unknown_role(self):
        assert get_role_defaults("contractor") == DEFAULT_ROLE_PERMISSIONS["viewer"]
        assert get_role_defaults(None) == DEFAULT_ROLE_PERMISSIONS["viewer"]
        assert get_role_description("contractor") == "Unknown role"
        assert get_permissions_count("contractor") == 0

    def test_known_roles(self):
        assert known_roles() == ("admin", "manager", "engineer", "viewer")
        assert get_permissions_count("viewer") == len(DEFAULT_ROLE_PERMISSIONS["viewer"])
