"""
Super Admin Service
===================
Platform operations across every group: listing, enabling and disabling,
confirming growth-plan payment, and deleting groups.
"""
import logging
from datetime import datetime

from extensions import db
from models.activity_logs import ActivityLog
from models.contributions import Contribution
from models.groups import IkiminaGroup, GroupMember
from models.loans import Loan
from services import aggregation
from utils.errors import InvalidStateError

logger = logging.getLogger(__name__)


class SuperAdminService:

    @staticmethod
    def list_groups(status=None, search=None):
        """All groups with their headline stats, newest first."""
        query = IkiminaGroup.query
        if status and status != 'all':
            query = query.filter_by(status=status)
        if search:
            query = query.filter(IkiminaGroup.name.ilike(f'%{search.strip()}%'))

        results = []
        for group in query.order_by(IkiminaGroup.created_at.desc(), IkiminaGroup.id.desc()).all():
            contributions = Contribution.query.filter_by(group_id=group.id).all()
            loans = Loan.query.filter_by(group_id=group.id).all()
            members = GroupMember.query.filter_by(group_id=group.id, status=GroupMember.STATUS_ACTIVE).count()
            data = group.to_dict()
            data['stats'] = aggregation.group_stats(contributions, loans, members)
            data['created_at'] = group.created_at.isoformat()
            results.append(data)
        return results

    @staticmethod
    def list_group_admins():
        rows = GroupMember.query.filter_by(is_admin=True, status=GroupMember.STATUS_ACTIVE)\
            .order_by(GroupMember.joined_at).all()
        return [dict(m.to_dict(), group_name=m.group.name) for m in rows]

    @staticmethod
    def set_group_status(group, actor, status):
        """Enable or disable a group."""
        if status not in (IkiminaGroup.STATUS_ACTIVE, IkiminaGroup.STATUS_DISABLED):
            raise InvalidStateError(f'Cannot set group status to {status}')
        previous = group.status
        group.status = status
        ActivityLog.record('group_status_changed', group_id=group.id, user_id=actor.id,
                           previous=previous, status=status)
        db.session.commit()

        logger.info('Group %s status %s -> %s by user %s', group.id, previous, status, actor.id)
        return group

    @staticmethod
    def toggle_group_status(group, actor):
        if group.status == IkiminaGroup.STATUS_PENDING_APPROVAL:
            raise InvalidStateError('Pending groups must be approved first')
        target = (IkiminaGroup.STATUS_DISABLED if group.is_active
                  else IkiminaGroup.STATUS_ACTIVE)
        return SuperAdminService.set_group_status(group, actor, target)

    @staticmethod
    def approve_group(group, actor):
        """Confirm a growth-plan payment and activate the group."""
        if group.status != IkiminaGroup.STATUS_PENDING_APPROVAL:
            raise InvalidStateError('Only groups awaiting approval can be approved')
        group.status = IkiminaGroup.STATUS_ACTIVE
        group.payment_confirmed_at = datetime.utcnow()
        group.payment_confirmed_by = actor.id
        ActivityLog.record('group_approved', group_id=group.id, user_id=actor.id)
        db.session.commit()

        logger.info('Group %s approved by user %s', group.id, actor.id)
        return group

    @staticmethod
    def delete_group(group, actor):
        """Delete a group and everything it owns."""
        group_id, name = group.id, group.name
        db.session.delete(group)
        db.session.commit()
        logger.warning('Group %s (%s) deleted by user %s', group_id, name, actor.id)
