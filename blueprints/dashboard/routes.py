from flask import jsonify
from flask_login import current_user

from . import dashboard_bp
from services.announcement_service import AnnouncementService
from services.dashboard_service import DashboardService
from services.group_service import GroupService
from utils.permissions import Role, primary_role


@dashboard_bp.route('/')
@dashboard_bp.route('/dashboard')
def index():
    """One dashboard per role: super admin, group admin or member.

    Users without an active group get ``role: null`` plus any groups they
    used to belong to, so the client can offer onboarding.
    """
    role = primary_role(current_user)

    if role == Role.SUPER_ADMIN:
        data = DashboardService.get_platform_overview()
    elif role in (Role.GROUP_ADMIN, Role.MEMBER):
        membership = current_user.get_group_membership()
        if not membership.group.is_active:
            return jsonify({
                'role': role.value,
                'group': membership.group.to_dict(),
                'message': 'Your group is not active yet.',
            })
        if role == Role.GROUP_ADMIN:
            data = DashboardService.get_admin_dashboard(membership.group)
        else:
            data = DashboardService.get_member_dashboard(membership)
    else:
        return jsonify({'role': None, 'previous_groups': GroupService.previous_groups(current_user)})

    data['role'] = role.value
    data['system_notices'] = AnnouncementService.list_system_notices(
        is_super_admin=role == Role.SUPER_ADMIN,
        is_group_admin=role == Role.GROUP_ADMIN,
        limit=3,
    )
    return jsonify(data)
