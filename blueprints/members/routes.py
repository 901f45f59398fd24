"""
Member management routes (group admin only, apart from the roster).

  GET  /members/                      – roster (?status=&search=)
  POST /members/<id>/toggle-admin     – grant / revoke admin rights
  POST /members/<id>/remove           – mark a member removed
  POST /members/<id>/approve-rejoin   – re-admit a member who asked to rejoin
"""
from flask import jsonify, g, request
from flask_login import current_user

from blueprints.members import members_bp
from models.groups import GroupMember
from services.group_service import GroupService
from utils.db_helpers import group_get_or_404
from utils.permissions import group_required, capability_required, MANAGE_MEMBERS


@members_bp.route('/')
@group_required
def index():
    members = GroupService.list_members(
        g.group.id,
        status=request.args.get('status'),
        search=request.args.get('search'),
    )
    return jsonify({'members': members, 'count': len(members)})


@members_bp.route('/<int:member_id>/toggle-admin', methods=['POST'])
@group_required
@capability_required(MANAGE_MEMBERS)
def toggle_admin(member_id):
    member = group_get_or_404(GroupMember, g.group.id, member_id)
    GroupService.toggle_admin(member, current_user)
    return jsonify({'success': True, 'member': member.to_dict()})


@members_bp.route('/<int:member_id>/remove', methods=['POST'])
@group_required
@capability_required(MANAGE_MEMBERS)
def remove(member_id):
    member = group_get_or_404(GroupMember, g.group.id, member_id)
    GroupService.remove_member(member, current_user)
    return jsonify({'success': True, 'message': f'{member.full_name} was removed.', 'member': member.to_dict()})


@members_bp.route('/<int:member_id>/approve-rejoin', methods=['POST'])
@group_required
@capability_required(MANAGE_MEMBERS)
def approve_rejoin(member_id):
    member = group_get_or_404(GroupMember, g.group.id, member_id)
    GroupService.approve_rejoin(member, current_user)
    return jsonify({'success': True, 'member': member.to_dict()})
