"""
Tests for ReportService: monthly buckets, summary figures and CSV export.
"""
import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from models.contributions import Contribution
from extensions import db
from services.loan_service import LoanService
from services.report_service import ReportService, period_start, month_label
from utils.errors import ValidationError


class TestPeriods:
    @pytest.mark.parametrize('period, expected', [
        ('1month', date(2024, 6, 1)),
        ('3months', date(2024, 4, 1)),
        ('6months', date(2024, 1, 1)),
        ('1year', date(2023, 7, 1)),
    ])
    def test_period_start(self, app, period, expected):
        assert period_start(period, today=date(2024, 6, 15)) == expected

    def test_unknown_period(self, app):
        with pytest.raises(ValidationError):
            period_start('5years', today=date(2024, 6, 15))

    def test_month_label(self):
        assert month_label(date(2024, 1, 1)) == 'Jan 24'


class TestBuildReport:
    @pytest.fixture
    def report(self, group, admin_user, member, add_paid_contribution):
        today = date.today()
        add_paid_contribution(group, member, 50000)
        db.session.add(Contribution(group_id=group.id, member_id=member.id, amount=Decimal('10000'),
                                    due_date=today, status=Contribution.STATUS_PENDING))
        db.session.commit()
        loan = LoanService.create_loan(group, admin_user, member.id, 20000, interest_rate=6,
                                       duration_months=12, start_date=today, approve=True)
        LoanService.record_repayment(loan, admin_user, 5000, payment_date=today)
        return ReportService.build_report(group, '6months', today=today)

    def test_monthly_series_covers_period(self, report):
        assert len(report['monthly']) == 6
        assert report['monthly'][-1]['month'] == month_label(date.today())

    def test_current_month_bucket(self, report):
        current = report['monthly'][-1]
        assert current['contributions'] == 50000.0
        assert current['loans'] == 20000.0
        assert current['repayments'] == 5000.0

    def test_summary(self, report):
        summary = report['summary']
        assert summary['total_contributions'] == 50000.0
        assert summary['total_loans'] == 20000.0
        assert summary['total_repayments'] == 5000.0
        assert summary['profit_earned'] == 1200.0
        assert summary['active_members'] == 2
        assert summary['collection_rate'] == 50.0
        assert summary['average_loan_size'] == 20000.0

    def test_counts_and_member_figures(self, report):
        summary = report['summary']
        assert summary['contribution_count'] == 2
        assert summary['loan_count'] == 1
        assert summary['repayment_count'] == 1
        assert summary['average_contribution_per_member'] == 25000.0
        assert summary['net_position'] == 30000.0

    def test_status_breakdowns(self, report):
        by_status = {b['status']: b for b in report['contribution_status']}
        assert by_status['paid']['count'] == 1
        assert by_status['pending']['amount'] == 10000.0
        assert report['loan_status'] == [{'status': 'active', 'count': 1, 'amount': 21200.0}]


class TestCsvExport:
    def _report(self):
        return {
            'currency': 'RWF',
            'start_date': '2024-01-01',
            'end_date': '2024-06-15',
            'summary': {
                'total_contributions': 1250000.0,
                'total_loans': 300000.0,
                'total_repayments': 102500.0,
                'profit_earned': 2500.0,
                'active_members': 12,
                'collection_rate': 87.5,
            },
            'monthly': [
                {'month': 'May 24', 'contributions': 250000.0, 'loans': 0.0, 'repayments': 0.0},
                {'month': 'Jun 24', 'contributions': 100000.0, 'loans': 300000.0, 'repayments': 102500.0},
            ],
        }

    def test_layout(self, app):
        rows = list(csv.reader(io.StringIO(ReportService.export_csv(self._report()))))
        assert rows[0] == ['eKimina Financial Report']
        assert ['Total Contributions', 'RWF 1,250,000'] in rows
        assert ['Collection Rate', '87.5%'] in rows
        header = rows.index(['Month', 'Contributions', 'Loans Disbursed', 'Repayments'])
        assert rows[header - 1] == ['Monthly Data']
        assert rows[header + 2] == ['Jun 24', '100000.00', '300000.00', '102500.00']

    def test_values_with_commas_and_quotes_are_escaped(self, app):
        name = 'Abishyize, "Hamwe"\nKigali'
        text = ReportService.export_csv(self._report(), group_name=name)

        assert '"Abishyize, ""Hamwe""' in text
        assert '"RWF 1,250,000"' in text
        rows = list(csv.reader(io.StringIO(text)))
        assert ['Group', name] in rows, "Group name must survive a CSV round trip intact"

    def test_filename(self):
        assert ReportService.export_filename(date(2024, 6, 15)) == 'ekimina-report-2024-06-15.csv'
