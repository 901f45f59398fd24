"""
Group Service
=============
Group onboarding, membership management and group settings.

A user holds at most one *active* membership.  Removing a member only flips
its status to ``removed``; the row (and the member's contribution and loan
history) stays.  A removed member may ask to rejoin, which an admin approves.
"""
import logging
import re
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import func

from extensions import db
from models.activity_logs import ActivityLog
from models.groups import IkiminaGroup, GroupMember
from services.loan_service import interest_rate_value
from utils.errors import ValidationError, InvalidStateError
from utils.money import money

logger = logging.getLogger(__name__)

GROUP_CODE_RE = re.compile(r'^[0-9A-F]{8}$')


def _amount(value, field, label):
    try:
        amount = money(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{label} must be a number', field=field)
    if amount < 0:
        raise ValidationError(f'{label} cannot be negative', field=field)
    return amount


class GroupService:

    # ------------------------------------------------------------------
    # Onboarding
    # ------------------------------------------------------------------

    @staticmethod
    def create_group(user, name, contribution_amount=0, contribution_frequency=None,
                     interest_rate=None, plan=IkiminaGroup.PLAN_STARTER, description=None):
        """
        Create a group with *user* as its first (admin) member.

        Starter groups are usable immediately; growth groups wait for a super
        admin to confirm payment.
        """
        if user.get_group_membership() is not None:
            raise InvalidStateError('You already belong to an active group')

        name = (name or '').strip()
        if not name:
            raise ValidationError('Group name is required', field='name')
        if plan not in IkiminaGroup.PLANS:
            raise ValidationError(f'Unknown plan: {plan}', field='plan')

        frequency = contribution_frequency or current_app.config.get('DEFAULT_CONTRIBUTION_FREQUENCY', 'monthly')
        if frequency not in IkiminaGroup.FREQUENCIES:
            raise ValidationError(f'Unknown contribution frequency: {frequency}',
                                  field='contribution_frequency')
        if interest_rate is None or interest_rate == '':
            interest_rate = current_app.config.get('DEFAULT_INTEREST_RATE', Decimal('5.00'))

        group = IkiminaGroup(
            name=name,
            description=description or None,
            contribution_amount=_amount(contribution_amount or 0, 'contribution_amount', 'Contribution amount'),
            contribution_frequency=frequency,
            interest_rate=interest_rate_value(interest_rate),
            plan=plan,
            status=(IkiminaGroup.STATUS_PENDING_APPROVAL if plan == IkiminaGroup.PLAN_GROWTH
                    else IkiminaGroup.STATUS_ACTIVE),
            created_by=user.id,
        )
        db.session.add(group)
        db.session.flush()

        db.session.add(GroupMember(user_id=user.id, group_id=group.id, is_admin=True,
                                   status=GroupMember.STATUS_ACTIVE))
        ActivityLog.record('group_created', group_id=group.id, user_id=user.id, plan=plan)
        db.session.commit()

        logger.info('Group %s (%s) created by user %s, status=%s', group.id, group.name, user.id, group.status)
        return group

    @staticmethod
    def find_by_code(code):
        """Look a group up by its 8-character join code (case-insensitive)."""
        code = (code or '').strip().upper()
        if not GROUP_CODE_RE.match(code):
            return None
        return IkiminaGroup.query.filter(
            func.upper(func.substr(IkiminaGroup.public_id, 1, 8)) == code
        ).first()

    @staticmethod
    def join_group(user, code):
        """Join a group by code as a regular active member."""
        group = GroupService.find_by_code(code)
        if group is None:
            raise ValidationError('Group not found. Please check the code and try again.', field='group_code')
        if group.status != IkiminaGroup.STATUS_ACTIVE:
            raise InvalidStateError('This group is not accepting members right now. Ask its admin to contact support.')

        existing = GroupMember.query.filter_by(group_id=group.id, user_id=user.id).first()
        if existing is not None:
            if existing.status == GroupMember.STATUS_REMOVED:
                raise InvalidStateError('You were removed from this group; request to rejoin instead')
            raise InvalidStateError('You are already a member of this group')
        if user.get_group_membership() is not None:
            raise InvalidStateError('You already belong to an active group')

        membership = GroupMember(user_id=user.id, group_id=group.id, is_admin=False,
                                 status=GroupMember.STATUS_ACTIVE)
        db.session.add(membership)
        ActivityLog.record('member_joined', group_id=group.id, user_id=user.id)
        db.session.commit()

        logger.info('User %s joined group %s', user.id, group.id)
        return membership

    @staticmethod
    def previous_groups(user):
        """Memberships of *user* that are no longer active."""
        rows = user.memberships.filter(GroupMember.status != GroupMember.STATUS_ACTIVE).all()
        return [{
            'group_id': m.group_id,
            'group_name': m.group.name,
            'group_code': m.group.group_code,
            'is_admin': m.is_admin,
            'status': m.status,
            'joined_at': m.joined_at.date().isoformat(),
        } for m in rows]

    @staticmethod
    def request_rejoin(user, group_id):
        """A removed member asks to be let back in (status → pending_rejoin)."""
        membership = GroupMember.query.filter_by(group_id=group_id, user_id=user.id).first()
        if membership is None or membership.status != GroupMember.STATUS_REMOVED:
            raise InvalidStateError('Only removed members can request to rejoin')
        if user.get_group_membership() is not None:
            raise InvalidStateError('You already belong to an active group')

        membership.status = GroupMember.STATUS_PENDING_REJOIN
        ActivityLog.record('rejoin_requested', group_id=group_id, user_id=user.id)
        db.session.commit()
        return membership

    # ------------------------------------------------------------------
    # Member management (group admin)
    # ------------------------------------------------------------------

    @staticmethod
    def list_members(group_id, status=None, search=None):
        query = GroupMember.query.filter_by(group_id=group_id)
        if status and status != 'all':
            query = query.filter_by(status=status)
        members = [m.to_dict() for m in query.order_by(GroupMember.joined_at).all()]
        if search:
            needle = search.strip().lower()
            members = [m for m in members
                       if needle in m['full_name'].lower() or needle in m['email'].lower()]
        return members

    @staticmethod
    def approve_rejoin(member, actor):
        if member.status != GroupMember.STATUS_PENDING_REJOIN:
            raise InvalidStateError('Member has not requested to rejoin')
        if member.user.get_group_membership() is not None:
            raise InvalidStateError('Member already belongs to another active group')

        member.status = GroupMember.STATUS_ACTIVE
        ActivityLog.record('rejoin_approved', group_id=member.group_id, user_id=actor.id, member_id=member.id)
        db.session.commit()

        logger.info('Member %s re-admitted to group %s by user %s', member.id, member.group_id, actor.id)
        return member

    @staticmethod
    def toggle_admin(member, actor):
        """Grant or revoke group admin rights."""
        if member.user_id == actor.id:
            raise InvalidStateError('You cannot change your own admin status')
        if not member.is_active:
            raise InvalidStateError('Only active members can be made admins')

        member.is_admin = not member.is_admin
        ActivityLog.record('admin_toggled', group_id=member.group_id, user_id=actor.id,
                           member_id=member.id, is_admin=member.is_admin)
        db.session.commit()
        return member

    @staticmethod
    def remove_member(member, actor):
        """Mark a member ``removed``; their history stays in the group."""
        if member.user_id == actor.id:
            raise InvalidStateError('You cannot remove yourself from the group')
        if member.status == GroupMember.STATUS_REMOVED:
            raise InvalidStateError('Member has already been removed')

        member.status = GroupMember.STATUS_REMOVED
        member.is_admin = False
        ActivityLog.record('member_removed', group_id=member.group_id, user_id=actor.id, member_id=member.id)
        db.session.commit()

        logger.info('Member %s removed from group %s by user %s', member.id, member.group_id, actor.id)
        return member

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @staticmethod
    def update_settings(group, actor, name=None, description=None, contribution_amount=None,
                        contribution_frequency=None, interest_rate=None, constitution=None):
        """Update the group's editable settings.  ``None`` leaves a field unchanged."""
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError('Group name is required', field='name')
            group.name = name
        if description is not None:
            group.description = description
        if constitution is not None:
            group.constitution = constitution
        if contribution_amount is not None:
            group.contribution_amount = _amount(contribution_amount, 'contribution_amount',
                                                'Contribution amount')
        if contribution_frequency is not None:
            if contribution_frequency not in IkiminaGroup.FREQUENCIES:
                raise ValidationError(f'Unknown contribution frequency: {contribution_frequency}',
                                      field='contribution_frequency')
            group.contribution_frequency = contribution_frequency
        if interest_rate is not None:
            group.interest_rate = interest_rate_value(interest_rate)

        ActivityLog.record('group_settings_updated', group_id=group.id, user_id=actor.id)
        db.session.commit()
        return group
