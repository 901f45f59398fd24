"""
Report Service
==============
Period reports for one group and their CSV export.

A report covers the last N months (``REPORT_PERIODS``) up to today and
buckets money flows by calendar month:

  contributions     paid contributions, by paid date (created date if unset)
  loans disbursed   loan principal, by creation date
  repayments        repayment amounts, by payment date

Rows are selected by creation time on or after the period start, then
bucketed; a row whose bucket date falls outside the period is ignored.
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from flask import current_app

from models.contributions import Contribution
from models.groups import GroupMember
from models.loans import Loan
from models.repayments import Repayment
from services import aggregation
from utils.db_helpers import group_query
from utils.errors import ValidationError
from utils.money import money


def period_start(period, today=None):
    """First day of the earliest month covered by *period*."""
    periods = current_app.config['REPORT_PERIODS']
    if period not in periods:
        raise ValidationError(f'Unknown report period: {period}', field='period')
    today = today or date.today()
    return today.replace(day=1) - relativedelta(months=periods[period] - 1)


def month_label(value):
    """'Jan 24' style label."""
    return value.strftime('%b %y')


def _month_keys(start, today):
    keys = []
    cursor = start
    while cursor <= today:
        keys.append((cursor.year, cursor.month))
        cursor += relativedelta(months=1)
    return keys


def _as_date(value):
    return value.date() if isinstance(value, datetime) else value


class ReportService:

    @staticmethod
    def build_report(group, period=None, today=None):
        """
        Summary, monthly series and status breakdowns for *group*.

        Returns a dict of plain floats and strings ready for ``jsonify``.
        """
        today = today or date.today()
        period = period or current_app.config.get('DEFAULT_REPORT_PERIOD', '6months')
        start = period_start(period, today)
        start_dt = datetime.combine(start, datetime.min.time())

        contributions = group_query(Contribution, group.id)\
            .filter(Contribution.created_at >= start_dt).all()
        loans = group_query(Loan, group.id)\
            .filter(Loan.created_at >= start_dt).all()
        repayments = Repayment.query.join(Loan, Repayment.loan_id == Loan.id)\
            .filter(Loan.group_id == group.id, Repayment.created_at >= start_dt).all()

        keys = _month_keys(start, today)
        buckets = {k: {'contributions': Decimal('0'), 'loans': Decimal('0'), 'repayments': Decimal('0')}
                   for k in keys}

        def add(day, column, amount):
            bucket = buckets.get((day.year, day.month))
            if bucket is not None:
                bucket[column] += Decimal(str(amount))

        for c in contributions:
            if c.status == Contribution.STATUS_PAID:
                add(_as_date(c.paid_date or c.created_at), 'contributions', c.amount)
        for loan in loans:
            add(_as_date(loan.created_at), 'loans', loan.principal_amount)
        for r in repayments:
            add(r.payment_date, 'repayments', r.amount)

        monthly = [{
            'month': month_label(date(year, month, 1)),
            'contributions': float(money(buckets[(year, month)]['contributions'])),
            'loans': float(money(buckets[(year, month)]['loans'])),
            'repayments': float(money(buckets[(year, month)]['repayments'])),
        } for year, month in keys]

        total_contributions = aggregation.total_savings(contributions)
        total_loans = money(sum((Decimal(str(l.principal_amount)) for l in loans), Decimal('0')))
        total_repayments = money(sum((Decimal(str(r.amount)) for r in repayments), Decimal('0')))
        active_members = GroupMember.query.filter_by(
            group_id=group.id, status=GroupMember.STATUS_ACTIVE
        ).count()

        return {
            'period': period,
            'start_date': start.isoformat(),
            'end_date': today.isoformat(),
            'currency': current_app.config.get('CURRENCY', 'RWF'),
            'summary': {
                'total_contributions': float(total_contributions),
                'total_loans': float(total_loans),
                'total_repayments': float(total_repayments),
                'profit_earned': float(aggregation.profit_earned(loans)),
                'active_members': active_members,
                'collection_rate': round(aggregation.collection_rate(contributions) * 100, 1),
                'average_loan_size': float(money(total_loans / len(loans))) if loans else 0.0,
                'contribution_count': len(contributions),
                'loan_count': len(loans),
                'repayment_count': len(repayments),
                'average_contribution_per_member': (
                    float(money(total_contributions / active_members)) if active_members else 0.0
                ),
                # Paid savings less principal lent out in the period
                'net_position': float(total_contributions - total_loans),
            },
            'monthly': monthly,
            'contribution_status': aggregation.count_by_status(contributions, 'amount'),
            'loan_status': aggregation.count_by_status(loans, 'total_payable'),
        }

    @staticmethod
    def export_csv(report, group_name=None):
        """Render a report from ``build_report`` as CSV text."""
        currency = report.get('currency', 'RWF')
        summary = report['summary']

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')

        writer.writerow(['eKimina Financial Report'])
        if group_name:
            writer.writerow(['Group', group_name])
        writer.writerow(['Period', f"{report['start_date']} to {report['end_date']}"])
        writer.writerow([])
        writer.writerow(['Summary'])
        writer.writerow(['Total Contributions', f"{currency} {summary['total_contributions']:,.0f}"])
        writer.writerow(['Total Loans', f"{currency} {summary['total_loans']:,.0f}"])
        writer.writerow(['Total Repayments', f"{currency} {summary['total_repayments']:,.0f}"])
        writer.writerow(['Profit Earned', f"{currency} {summary['profit_earned']:,.0f}"])
        writer.writerow(['Active Members', summary['active_members']])
        writer.writerow(['Collection Rate', f"{summary['collection_rate']:.1f}%"])
        writer.writerow([])
        writer.writerow(['Monthly Data'])
        writer.writerow(['Month', 'Contributions', 'Loans Disbursed', 'Repayments'])
        for row in report['monthly']:
            writer.writerow([row['month'], f"{row['contributions']:.2f}",
                             f"{row['loans']:.2f}", f"{row['repayments']:.2f}"])

        return buffer.getvalue()

    @staticmethod
    def export_filename(today=None):
        return f'ekimina-report-{(today or date.today()).isoformat()}.csv'
