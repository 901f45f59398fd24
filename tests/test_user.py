"""
Tests for the User model: password hashing, role resolution and login lockout.
"""
from datetime import datetime, timedelta

from extensions import db
from models.groups import GroupMember
from utils.permissions import (
    Role, primary_role, has_capability, capabilities_for,
    MANAGE_LOANS, COMMENT, VIEW_ALL_GROUPS, POST_ANNOUNCEMENTS,
)


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_correct_password_accepted(self, admin_user):
        assert admin_user.check_password('TestPass1!') is True

    def test_wrong_password_rejected(self, admin_user):
        assert admin_user.check_password('WrongPass99!') is False

    def test_password_is_hashed(self, admin_user):
        assert admin_user.password_hash != 'TestPass1!', \
            "password_hash must store a hash, not the plain-text password"


# ---------------------------------------------------------------------------
# Roles and capabilities
# ---------------------------------------------------------------------------

class TestRoles:
    def test_group_admin(self, group, admin_user):
        assert admin_user.get_roles() == {Role.GROUP_ADMIN}
        assert primary_role(admin_user) == Role.GROUP_ADMIN
        assert has_capability(admin_user, MANAGE_LOANS) is True

    def test_member(self, group, member_user):
        assert member_user.get_roles() == {Role.MEMBER}
        assert has_capability(member_user, COMMENT) is True
        assert has_capability(member_user, MANAGE_LOANS) is False, \
            "Plain members must not manage loans"

    def test_super_admin_has_platform_capabilities_only(self, super_admin_user):
        assert super_admin_user.get_roles() == {Role.SUPER_ADMIN}
        assert has_capability(super_admin_user, VIEW_ALL_GROUPS) is True
        assert has_capability(super_admin_user, POST_ANNOUNCEMENTS) is False

    def test_user_without_group_has_no_role(self, make_user):
        loner = make_user('loner@example.com')
        assert loner.get_roles() == set()
        assert primary_role(loner) is None

    def test_removed_member_loses_role(self, group, member_user, member):
        member.status = GroupMember.STATUS_REMOVED
        db.session.commit()
        assert member_user.get_group_membership() is None
        assert member_user.get_roles() == set()

    def test_capabilities_union(self):
        caps = capabilities_for({Role.MEMBER, Role.SUPER_ADMIN})
        assert COMMENT in caps and VIEW_ALL_GROUPS in caps
        assert MANAGE_LOANS not in caps


# ---------------------------------------------------------------------------
# Login lockout
# ---------------------------------------------------------------------------

class TestLoginLockout:
    def test_not_locked_by_default(self, admin_user):
        assert admin_user.is_locked() is False

    def test_locks_after_max_attempts(self, app, admin_user):
        max_attempts = app.config['MAX_LOGIN_ATTEMPTS']
        for _ in range(max_attempts):
            admin_user.record_failed_login()
        assert admin_user.failed_login_attempts == max_attempts
        assert admin_user.is_locked() is True

    def test_reset_clears_lock(self, admin_user):
        admin_user.failed_login_attempts = 3
        admin_user.locked_until = datetime.utcnow() + timedelta(minutes=10)
        db.session.commit()

        admin_user.reset_failed_logins()

        assert admin_user.failed_login_attempts == 0
        assert admin_user.is_locked() is False

    def test_expired_lock_is_not_locked(self, admin_user):
        admin_user.locked_until = datetime.utcnow() - timedelta(seconds=1)
        db.session.commit()
        assert admin_user.is_locked() is False
