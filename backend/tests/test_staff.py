"""Staff directory tests."""

import pytest

from floorops.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailed
from floorops.core.rbac import StaffRole, has_permission
from floorops.services.staff_service import StaffService


@pytest.fixture
def staff(db_session):
    return StaffService(db_session)


class TestCreateProfile:

    def test_role_defaults_applied(self, staff, admin):
        profile = staff.create_profile(admin, email="Ana@Floor.test", role="kitchen", full_name="Ana")
        assert profile.email == "ana@floor.test"
        assert profile.role == StaffRole.KITCHEN
        assert profile.permissions == {"orders": True}

    def test_explicit_permissions(self, staff, admin):
        profile = staff.create_profile(admin, email="bo@floor.test", role="waiter", permissions={"stock": True})
        assert profile.permissions == {"stock": True}
        assert has_permission(profile, "stock")
        assert not has_permission(profile, "orders")

    def test_unknown_capability_rejected(self, staff, admin):
        with pytest.raises(ValidationFailed):
            staff.create_profile(admin, email="cy@floor.test", permissions={"teleport": True})

    def test_unknown_role_rejected(self, staff, admin):
        with pytest.raises(ValidationFailed):
            staff.create_profile(admin, email="cy@floor.test", role="sommelier")

    def test_duplicate_email(self, staff, admin):
        staff.create_profile(admin, email="dup@floor.test")
        with pytest.raises(ConflictError):
            staff.create_profile(admin, email="DUP@floor.test")

    def test_needs_users_capability(self, staff, manager):
        with pytest.raises(PermissionDeniedError):
            staff.create_profile(manager, email="x@floor.test")

    def test_only_master_creates_master(self, staff, admin, master):
        with pytest.raises(PermissionDeniedError):
            staff.create_profile(admin, email="boss@floor.test", role="master")
        assert staff.create_profile(master, email="boss@floor.test", role="master").role == StaffRole.MASTER


class TestUpdateProfile:

    def test_update_permissions(self, staff, admin, waiter):
        profile = staff.update_permissions(admin, waiter.id, {"orders": True, "tables": False, "stock": True})
        assert has_permission(profile, "stock")
        assert not has_permission(profile, "tables")

    def test_admin_cannot_touch_master(self, staff, admin, master):
        with pytest.raises(PermissionDeniedError):
            staff.update_permissions(admin, master.id, {})
        with pytest.raises(PermissionDeniedError):
            staff.set_active(admin, master.id, False)

    def test_admin_cannot_promote_to_master(self, staff, admin, waiter):
        with pytest.raises(PermissionDeniedError):
            staff.set_role(admin, waiter.id, "master")

    def test_set_role_with_reset(self, staff, admin, waiter):
        profile = staff.set_role(admin, waiter.id, "cashier", reset_permissions=True)
        assert profile.role == StaffRole.CASHIER
        assert profile.permissions == {"payments": True, "reports": True}

    def test_set_role_keeps_map_by_default(self, staff, admin, waiter):
        profile = staff.set_role(admin, waiter.id, "kitchen")
        assert profile.permissions == {"orders": True, "tables": True}

    def test_deactivate(self, staff, admin, waiter):
        assert staff.set_active(admin, waiter.id, False).is_active is False

    def test_cannot_deactivate_self(self, staff, admin):
        with pytest.raises(ConflictError):
            staff.set_active(admin, admin.id, False)

    def test_unknown_profile(self, staff, admin):
        with pytest.raises(NotFoundError):
            staff.set_active(admin, 404, True)

    def test_list_filters(self, staff, admin, waiter, kitchen):
        staff.set_active(admin, kitchen.id, False)
        assert [p.id for p in staff.list_profiles(role="waiter")] == [waiter.id]
        assert kitchen.id not in [p.id for p in staff.list_profiles(active_only=True)]
