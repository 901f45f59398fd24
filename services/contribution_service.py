"""
Contribution Service
====================
Bookkeeping for members' savings payments.

A contribution is recorded as ``pending`` with a due date and an expected
amount.  An admin later marks it ``paid`` (stamping ``paid_date``) or flags
it ``late`` / ``missed``.  Nothing here moves a contribution between
statuses automatically.
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from extensions import db
from models.activity_logs import ActivityLog
from models.contributions import Contribution
from models.groups import GroupMember
from utils.db_helpers import group_query, group_get
from utils.errors import ValidationError, InvalidStateError
from utils.money import money

logger = logging.getLogger(__name__)


class ContributionService:

    @staticmethod
    def record_contribution(group, actor, member_id, due_date, amount=None, notes=None):
        """
        Record an expected contribution for one member (status ``pending``).

        *amount* defaults to the group's standard contribution amount.
        """
        member = group_get(GroupMember, group.id, member_id) if member_id else None
        if member is None or not member.is_active:
            raise ValidationError('Member must be an active member of this group', field='member_id')
        if not isinstance(due_date, date):
            raise ValidationError('Due date is required', field='due_date')

        if amount is None or amount == '':
            amount = group.contribution_amount
        try:
            amount = money(Decimal(str(amount)))
        except (InvalidOperation, ValueError):
            raise ValidationError('Amount must be a number', field='amount')
        if amount <= 0:
            raise ValidationError('Amount must be greater than zero', field='amount')

        contribution = Contribution(
            group_id=group.id,
            member_id=member.id,
            amount=amount,
            due_date=due_date,
            status=Contribution.STATUS_PENDING,
            notes=notes or None,
            recorded_by=actor.id,
        )
        db.session.add(contribution)
        db.session.flush()
        ActivityLog.record('contribution_recorded', group_id=group.id, user_id=actor.id,
                           contribution_id=contribution.id, member_id=member.id, amount=str(amount))
        db.session.commit()

        logger.info('Contribution %s recorded for member %s in group %s: %s due %s',
                    contribution.id, member.id, group.id, amount, due_date)
        return contribution

    @staticmethod
    def mark_paid(contribution, actor, today=None):
        """Set status ``paid`` and stamp ``paid_date`` with today's date."""
        if contribution.status == Contribution.STATUS_PAID:
            raise InvalidStateError('Contribution is already marked as paid')

        contribution.status = Contribution.STATUS_PAID
        contribution.paid_date = today or date.today()
        ActivityLog.record('contribution_paid', group_id=contribution.group_id, user_id=actor.id,
                           contribution_id=contribution.id, amount=str(contribution.amount))
        db.session.commit()

        logger.info('Contribution %s marked paid on %s', contribution.id, contribution.paid_date)
        return contribution

    @staticmethod
    def set_status(contribution, actor, status):
        """
        Explicit admin transition to ``pending``, ``late`` or ``missed``.

        ``paid`` must go through ``mark_paid`` so the paid date is stamped;
        moving a paid contribution back clears its paid date.
        """
        if status not in Contribution.STATUSES:
            raise ValidationError(f'Unknown contribution status: {status}', field='status')
        if status == Contribution.STATUS_PAID:
            return ContributionService.mark_paid(contribution, actor)

        previous = contribution.status
        contribution.status = status
        contribution.paid_date = None
        ActivityLog.record('contribution_status_changed', group_id=contribution.group_id,
                           user_id=actor.id, contribution_id=contribution.id,
                           previous=previous, status=status)
        db.session.commit()

        logger.info('Contribution %s status %s -> %s', contribution.id, previous, status)
        return contribution

    @staticmethod
    def list_contributions(group_id, status=None, member_id=None, search=None):
        """Contributions of a group, latest due date first, as dicts."""
        query = group_query(Contribution, group_id)
        if member_id is not None:
            query = query.filter_by(member_id=member_id)
        if status and status != 'all':
            query = query.filter_by(status=status)
        rows = query.order_by(Contribution.due_date.desc(), Contribution.id.desc()).all()

        items = [c.to_dict() for c in rows]
        if search:
            needle = search.strip().lower()
            items = [c for c in items if needle in c['member_name'].lower()]
        return items

    @staticmethod
    def get_contribution_statistics(group_id):
        rows = group_query(Contribution, group_id).all()
        paid = [c for c in rows if c.status == Contribution.STATUS_PAID]
        return {
            'total_count': len(rows),
            'paid_count': len(paid),
            'pending_count': sum(1 for c in rows if c.status == Contribution.STATUS_PENDING),
            'late_count': sum(1 for c in rows if c.status == Contribution.STATUS_LATE),
            'missed_count': sum(1 for c in rows if c.status == Contribution.STATUS_MISSED),
            'total_collected': float(sum((Decimal(str(c.amount)) for c in paid), Decimal('0'))),
        }
