"""
Contribution routes.

Members see only their own contributions; admins see the whole group and
record / update them.
"""
from flask import jsonify, g, request
from flask_login import current_user

from blueprints.contributions import contributions_bp
from models.contributions import Contribution
from services.contribution_service import ContributionService
from utils.db_helpers import group_get_or_404
from utils.permissions import group_required, capability_required, has_capability, RECORD_CONTRIBUTIONS
from utils.request_data import get_payload, parse_date, parse_int


@contributions_bp.route('/')
@group_required
def index():
    """List contributions (?status=&search=&member_id=)"""
    if has_capability(current_user, RECORD_CONTRIBUTIONS):
        member_id = parse_int(request.args.get('member_id'), 'member_id')
    else:
        member_id = g.membership.id

    contributions = ContributionService.list_contributions(
        g.group.id,
        status=request.args.get('status'),
        member_id=member_id,
        search=request.args.get('search'),
    )
    return jsonify({'contributions': contributions, 'count': len(contributions)})


@contributions_bp.route('/stats')
@group_required
@capability_required(RECORD_CONTRIBUTIONS)
def stats():
    return jsonify(ContributionService.get_contribution_statistics(g.group.id))


@contributions_bp.route('/', methods=['POST'])
@group_required
@capability_required(RECORD_CONTRIBUTIONS)
def record():
    data = get_payload()
    contribution = ContributionService.record_contribution(
        g.group,
        current_user,
        member_id=parse_int(data.get('member_id'), 'member_id'),
        due_date=parse_date(data.get('due_date'), 'due_date', required=True),
        amount=data.get('amount'),
        notes=data.get('notes'),
    )
    return jsonify({'success': True, 'contribution': contribution.to_dict()}), 201


@contributions_bp.route('/<int:contribution_id>/pay', methods=['POST'])
@group_required
@capability_required(RECORD_CONTRIBUTIONS)
def mark_paid(contribution_id):
    contribution = group_get_or_404(Contribution, g.group.id, contribution_id)
    ContributionService.mark_paid(contribution, current_user)
    return jsonify({'success': True, 'contribution': contribution.to_dict()})


@contributions_bp.route('/<int:contribution_id>/status', methods=['POST'])
@group_required
@capability_required(RECORD_CONTRIBUTIONS)
def set_status(contribution_id):
    contribution = group_get_or_404(Contribution, g.group.id, contribution_id)
    ContributionService.set_status(contribution, current_user, get_payload().get('status'))
    return jsonify({'success': True, 'contribution': contribution.to_dict()})
