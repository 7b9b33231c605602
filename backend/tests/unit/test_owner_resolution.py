"""Unit tests for owner resolution and delegation rules"""

import pytest
from uuid import uuid4

from auth.roles import (
    Requester,
    UserRole,
    OwnerAuthorizationError,
    resolve_owner_id,
)


class TestResolveOwnerId:
    """Test resolve_owner_id"""

    def test_defaults_to_requester(self):
        user_id = uuid4()
        requester = Requester(user_id=user_id, roles=frozenset({UserRole.MERCHANT}))
        assert resolve_owner_id(requester) == user_id

    def test_same_owner_requested(self):
        user_id = uuid4()
        requester = Requester(user_id=user_id, roles=frozenset({UserRole.MERCHANT}))
        assert resolve_owner_id(requester, user_id) == user_id

    def test_merchant_cannot_act_for_other_owner(self):
        requester = Requester(user_id=uuid4(), roles=frozenset({UserRole.MERCHANT}))
        with pytest.raises(OwnerAuthorizationError):
            resolve_owner_id(requester, uuid4())

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.SUPER_ADMIN])
    def test_privileged_roles_may_delegate(self, role):
        other = uuid4()
        requester = Requester(user_id=uuid4(), roles=frozenset({role}))
        assert resolve_owner_id(requester, other) == other

    def test_anonymous_without_owner_rejected(self):
        with pytest.raises(OwnerAuthorizationError):
            resolve_owner_id(Requester(user_id=None))

    def test_anonymous_cannot_name_owner(self):
        with pytest.raises(OwnerAuthorizationError):
            resolve_owner_id(Requester(user_id=None), uuid4())

    def test_role_values(self):
        assert UserRole.SUPER_ADMIN.value == "super_admin"
        assert UserRole.ADMIN.value == "admin"
        assert UserRole.MERCHANT.value == "merchant"
