"""
Role and capability checks.

Every user resolves to one or more roles:

    role          source
    ────────────  ──────────────────────────────────────────────
    super_admin   ``User.is_super_admin``
    group_admin   active ``GroupMember`` row with ``is_admin=True``
    member        active ``GroupMember`` row with ``is_admin=False``

Each role grants a fixed set of capabilities.  Routes declare the capability
they need with ``@capability_required(...)`` instead of branching on roles,
so the three dashboards share one permission layer.

Group screens also need an *active* group: ``@group_required`` resolves the
caller's membership once per request, rejects disabled or unapproved groups,
and leaves ``g.membership`` / ``g.group`` for the view to pass on explicitly
to the service layer.
"""
from enum import Enum
from functools import wraps

from flask import abort, g
from flask_login import current_user


class Role(str, Enum):
    SUPER_ADMIN = 'super_admin'
    GROUP_ADMIN = 'group_admin'
    MEMBER = 'member'


# ── Capability registry ──────────────────────────────────────────────────────

VIEW_GROUP = 'view_group'
COMMENT = 'comment'
MANAGE_MEMBERS = 'manage_members'
RECORD_CONTRIBUTIONS = 'record_contributions'
MANAGE_LOANS = 'manage_loans'
POST_ANNOUNCEMENTS = 'post_announcements'
VIEW_REPORTS = 'view_reports'
EDIT_GROUP_SETTINGS = 'edit_group_settings'
VIEW_ALL_GROUPS = 'view_all_groups'
MANAGE_GROUPS = 'manage_groups'
POST_SYSTEM_NOTICES = 'post_system_notices'

CAPABILITIES = {
    Role.MEMBER: frozenset({
        VIEW_GROUP,
        COMMENT,
    }),
    Role.GROUP_ADMIN: frozenset({
        VIEW_GROUP,
        COMMENT,
        MANAGE_MEMBERS,
        RECORD_CONTRIBUTIONS,
        MANAGE_LOANS,
        POST_ANNOUNCEMENTS,
        VIEW_REPORTS,
        EDIT_GROUP_SETTINGS,
    }),
    Role.SUPER_ADMIN: frozenset({
        VIEW_ALL_GROUPS,
        MANAGE_GROUPS,
        POST_SYSTEM_NOTICES,
    }),
}


def capabilities_for(roles):
    """Union of the capabilities granted by *roles*."""
    granted = set()
    for role in roles:
        granted |= CAPABILITIES.get(role, frozenset())
    return granted


def has_capability(user, capability):
    """Return True if *user* holds *capability* through any of their roles."""
    if user is None or not user.is_authenticated:
        return False
    return capability in capabilities_for(user.get_roles())


def primary_role(user):
    """The role that decides which dashboard the user lands on."""
    roles = user.get_roles()
    for role in (Role.SUPER_ADMIN, Role.GROUP_ADMIN, Role.MEMBER):
        if role in roles:
            return role
    return None


# ── Decorators ───────────────────────────────────────────────────────────────

def capability_required(capability):
    """Abort 403 unless the logged-in user holds *capability*."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not has_capability(current_user, capability):
                abort(403, description=f'Missing permission: {capability}')
            return view(*args, **kwargs)
        return wrapped
    return decorator


def group_required(view):
    """Resolve the caller's active membership and require an active group.

    Sets ``g.membership`` and ``g.group``.  403 when the user has no active
    membership, or when the group is disabled / awaiting approval.
    """
    @wraps(view)
    def wrapped(*args, **kwargs):
        membership = current_user.get_group_membership()
        if membership is None:
            abort(403, description='not_a_member')
        group = membership.group
        if group.status != group.STATUS_ACTIVE:
            abort(403, description=f'group_{group.status}')
        g.membership = membership
        g.group = group
        return view(*args, **kwargs)
    return wrapped
