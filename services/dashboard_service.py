"""
Dashboard Service
=================
View models for the three dashboards.

  get_admin_dashboard()    - group admin: headline stats, recent contributions,
                             active loans with remaining balances
  get_member_dashboard()   - member: own contributions, own loans, latest
                             group announcements
  get_group_overview()     - super admin: one group's stats (group detail page)
  get_platform_overview()  - super admin: system-wide counts

All money figures are summed from rows on every call; nothing is cached.
"""
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from extensions import db
from models.announcements import Announcement
from models.contributions import Contribution
from models.groups import IkiminaGroup, GroupMember
from models.loans import Loan
from models.users import User
from services import aggregation
from services.loan_service import LoanService
from utils.db_helpers import group_query


def format_relative_date(value, today=None):
    """'Today', 'Yesterday', 'N days ago', or 'Mon D' for older dates."""
    today = today or date.today()
    diff = (today - value).days
    if diff == 0:
        return 'Today'
    if diff == 1:
        return 'Yesterday'
    if 1 < diff < 7:
        return f'{diff} days ago'
    return f'{value.strftime("%b")} {value.day}'


class DashboardService:

    @staticmethod
    def _recent_contributions(group_id, limit, today):
        rows = group_query(Contribution, group_id)\
            .order_by(Contribution.created_at.desc(), Contribution.id.desc())\
            .limit(limit).all()
        return [{
            'id': c.id,
            'member_name': c.member.full_name if c.member else 'Unknown',
            'amount': float(c.amount),
            'date': format_relative_date(c.paid_date or c.due_date, today),
            'status': c.status,
        } for c in rows]

    @staticmethod
    def get_admin_dashboard(group, today=None, limit=None):
        """Everything the group admin's dashboard shows."""
        today = today or date.today()
        limit = limit or current_app.config.get('RECENT_ITEMS_LIMIT', 5)

        contributions = group_query(Contribution, group.id).all()
        loans = group_query(Loan, group.id).order_by(Loan.created_at.desc(), Loan.id.desc()).all()
        active_members = GroupMember.query.filter_by(
            group_id=group.id, status=GroupMember.STATUS_ACTIVE
        ).count()

        stats = aggregation.group_stats(contributions, loans, active_members)
        stats['available_funds'] = float(LoanService.available_funds(group.id))

        active = aggregation.active_loans(loans)[:limit]
        return {
            'group': group.to_dict(),
            'stats': stats,
            'recent_contributions': DashboardService._recent_contributions(group.id, limit, today),
            'active_loans': LoanService.summarize(active, today),
            'pending_contributions_count': stats['pending_contributions'],
        }

    @staticmethod
    def get_member_dashboard(membership, today=None, limit=None):
        """A member's own view of their group, contributions and loans."""
        today = today or date.today()
        limit = limit or current_app.config.get('RECENT_ITEMS_LIMIT', 5)
        group = membership.group

        contributions = group_query(Contribution, group.id)\
            .filter_by(member_id=membership.id)\
            .order_by(Contribution.due_date.desc(), Contribution.id.desc()).all()
        loans = group_query(Loan, group.id)\
            .filter_by(borrower_id=membership.id)\
            .order_by(Loan.created_at.desc(), Loan.id.desc()).all()
        loan_views = LoanService.summarize(loans, today)

        outstanding = sum(
            (Decimal(str(v['remaining'])) for v in loan_views
             if v['stored_status'] in Loan.REPAYING_STATUSES),
            Decimal('0'),
        )
        announcements = group_query(Announcement, group.id)\
            .order_by(Announcement.created_at.desc()).limit(limit).all()

        return {
            'group': group.to_dict(),
            'membership': membership.to_dict(),
            'stats': {
                'total_contributed': float(aggregation.total_savings(contributions)),
                'contribution_count': len(contributions),
                'pending_contributions': sum(
                    1 for c in contributions if c.status == Contribution.STATUS_PENDING
                ),
                'active_loans': len(aggregation.active_loans(loans)),
                'outstanding_balance': float(outstanding),
            },
            'contributions': [c.to_dict() for c in contributions[:limit]],
            'loans': loan_views,
            'announcements': [a.to_dict() for a in announcements],
        }

    @staticmethod
    def get_group_overview(group, today=None):
        """Stats plus member, contribution and loan lists for one group."""
        today = today or date.today()
        limit = current_app.config.get('GROUP_DETAIL_ITEMS_LIMIT', 10)

        contributions = group_query(Contribution, group.id)\
            .order_by(Contribution.due_date.desc()).all()
        loans = group_query(Loan, group.id).order_by(Loan.created_at.desc()).all()
        members = group.members.all()
        active_members = sum(1 for m in members if m.is_active)

        return {
            'group': group.to_dict(),
            'stats': aggregation.group_stats(contributions, loans, active_members),
            'members': [m.to_dict() for m in members],
            'contributions': [c.to_dict() for c in contributions[:limit]],
            'loans': LoanService.summarize(loans, today),
        }

    @staticmethod
    def get_platform_overview():
        """System-wide counts for the super-admin landing page."""
        total_savings = db.session.query(func.coalesce(func.sum(Contribution.amount), 0))\
            .filter(Contribution.status == Contribution.STATUS_PAID).scalar()
        total_loans = db.session.query(func.coalesce(func.sum(Loan.total_payable), 0))\
            .filter(Loan.status.in_(Loan.REPAYING_STATUSES)).scalar()

        return {
            'total_groups': IkiminaGroup.query.count(),
            'active_groups': IkiminaGroup.query.filter_by(status=IkiminaGroup.STATUS_ACTIVE).count(),
            'pending_groups': IkiminaGroup.query.filter_by(
                status=IkiminaGroup.STATUS_PENDING_APPROVAL).count(),
            'disabled_groups': IkiminaGroup.query.filter_by(status=IkiminaGroup.STATUS_DISABLED).count(),
            'total_users': User.query.count(),
            'active_members': GroupMember.query.filter_by(status=GroupMember.STATUS_ACTIVE).count(),
            'total_savings': float(total_savings),
            'total_active_loans': float(total_loans),
        }
