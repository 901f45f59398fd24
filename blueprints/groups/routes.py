"""
Group onboarding and settings routes.

  POST /groups/                 – create a group (caller becomes its admin)
  POST /groups/join             – join a group by its 8-character code
  GET  /groups/previous         – groups the caller used to belong to
  POST /groups/<id>/rejoin      – ask to be re-admitted to a former group
  GET  /groups/current          – the caller's active group and membership
  GET  /groups/settings         – editable settings (group admin)
  POST /groups/settings         – update settings (group admin)
"""
from flask import jsonify, g
from flask_login import current_user

from blueprints.groups import groups_bp
from models.groups import IkiminaGroup
from services.group_service import GroupService
from utils.permissions import group_required, capability_required, EDIT_GROUP_SETTINGS
from utils.request_data import get_payload


@groups_bp.route('/', methods=['POST'])
def create():
    data = get_payload()
    group = GroupService.create_group(
        current_user,
        name=data.get('name'),
        description=data.get('description'),
        contribution_amount=data.get('contribution_amount') or 0,
        contribution_frequency=data.get('contribution_frequency'),
        interest_rate=data.get('interest_rate'),
        plan=data.get('plan') or IkiminaGroup.PLAN_STARTER,
    )
    message = ('Group created.' if group.is_active
               else 'Group created. It will be available once payment is confirmed.')
    return jsonify({'success': True, 'message': message, 'group': group.to_dict()}), 201


@groups_bp.route('/join', methods=['POST'])
def join():
    data = get_payload()
    membership = GroupService.join_group(current_user, data.get('group_code') or data.get('code'))
    return jsonify({
        'success': True,
        'message': f'You have joined {membership.group.name}.',
        'membership': membership.to_dict(),
    })


@groups_bp.route('/previous')
def previous():
    return jsonify({'groups': GroupService.previous_groups(current_user)})


@groups_bp.route('/<int:group_id>/rejoin', methods=['POST'])
def rejoin(group_id):
    membership = GroupService.request_rejoin(current_user, group_id)
    return jsonify({
        'success': True,
        'message': 'Your request to rejoin has been sent to the group admins.',
        'membership': membership.to_dict(),
    })


@groups_bp.route('/current')
@group_required
def current():
    return jsonify({'group': g.group.to_dict(), 'membership': g.membership.to_dict()})


@groups_bp.route('/settings', methods=['GET'])
@group_required
@capability_required(EDIT_GROUP_SETTINGS)
def settings():
    return jsonify({'group': g.group.to_dict()})


@groups_bp.route('/settings', methods=['POST'])
@group_required
@capability_required(EDIT_GROUP_SETTINGS)
def update_settings():
    data = get_payload()
    group = GroupService.update_settings(
        g.group,
        current_user,
        name=data.get('name'),
        description=data.get('description'),
        contribution_amount=data.get('contribution_amount'),
        contribution_frequency=data.get('contribution_frequency'),
        interest_rate=data.get('interest_rate'),
        constitution=data.get('constitution'),
    )
    return jsonify({'success': True, 'message': 'Settings saved.', 'group': group.to_dict()})
