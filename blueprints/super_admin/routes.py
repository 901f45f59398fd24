"""
Super-admin console routes.

  GET  /super-admin/                          – platform overview
  GET  /super-admin/groups                    – every group with stats (?status=&search=)
  GET  /super-admin/groups/<id>               – one group in detail
  POST /super-admin/groups/<id>/toggle        – enable / disable
  POST /super-admin/groups/<id>/approve       – confirm growth-plan payment
  POST /super-admin/groups/<id>/delete        – delete the group and its data
  GET  /super-admin/admins                    – all group admins
  GET  /super-admin/notices                   – system notices
  POST /super-admin/notices                   – post a system notice
  POST /super-admin/notices/<id>/delete       – remove a system notice
"""
from flask import jsonify, request
from flask_login import current_user

from blueprints.super_admin import super_admin_bp
from extensions import db
from models.announcements import SystemAnnouncement
from models.groups import IkiminaGroup
from services.announcement_service import AnnouncementService
from services.dashboard_service import DashboardService
from services.super_admin_service import SuperAdminService
from utils.permissions import capability_required, MANAGE_GROUPS, POST_SYSTEM_NOTICES
from utils.request_data import get_payload


@super_admin_bp.route('/')
def index():
    return jsonify(DashboardService.get_platform_overview())


@super_admin_bp.route('/groups')
def groups():
    results = SuperAdminService.list_groups(
        status=request.args.get('status'),
        search=request.args.get('search'),
    )
    return jsonify({'groups': results, 'count': len(results)})


@super_admin_bp.route('/groups/<int:group_id>')
def group_detail(group_id):
    group = db.get_or_404(IkiminaGroup, group_id)
    return jsonify(DashboardService.get_group_overview(group))


@super_admin_bp.route('/groups/<int:group_id>/toggle', methods=['POST'])
@capability_required(MANAGE_GROUPS)
def toggle_group(group_id):
    group = db.get_or_404(IkiminaGroup, group_id)
    SuperAdminService.toggle_group_status(group, current_user)
    return jsonify({'success': True, 'group': group.to_dict()})


@super_admin_bp.route('/groups/<int:group_id>/approve', methods=['POST'])
@capability_required(MANAGE_GROUPS)
def approve_group(group_id):
    group = db.get_or_404(IkiminaGroup, group_id)
    SuperAdminService.approve_group(group, current_user)
    return jsonify({'success': True, 'group': group.to_dict()})


@super_admin_bp.route('/groups/<int:group_id>/delete', methods=['POST'])
@capability_required(MANAGE_GROUPS)
def delete_group(group_id):
    group = db.get_or_404(IkiminaGroup, group_id)
    SuperAdminService.delete_group(group, current_user)
    return jsonify({'success': True})


@super_admin_bp.route('/admins')
def admins():
    return jsonify({'admins': SuperAdminService.list_group_admins()})


@super_admin_bp.route('/notices')
def notices():
    return jsonify({'notices': AnnouncementService.list_system_notices(is_super_admin=True)})


@super_admin_bp.route('/notices', methods=['POST'])
@capability_required(POST_SYSTEM_NOTICES)
def post_notice():
    data = get_payload()
    notice = AnnouncementService.post_system_notice(
        current_user,
        data.get('title'),
        data.get('content'),
        audience=data.get('audience') or SystemAnnouncement.AUDIENCE_ALL,
    )
    return jsonify({'success': True, 'notice': notice.to_dict()}), 201


@super_admin_bp.route('/notices/<int:notice_id>/delete', methods=['POST'])
@capability_required(POST_SYSTEM_NOTICES)
def delete_notice(notice_id):
    notice = db.get_or_404(SystemAnnouncement, notice_id)
    AnnouncementService.delete_system_notice(notice, current_user)
    return jsonify({'success': True})
