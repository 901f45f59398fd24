"""
Tests for the pure loan-term helpers: interest, total payable, due-date
arithmetic, input validation and the read-time display status.
"""
import random
from datetime import date
from decimal import Decimal

import pytest

from models.loans import Loan
from services.loan_service import add_months, compute_loan_terms, effective_status
from utils.errors import ValidationError


# ---------------------------------------------------------------------------
# Interest formula
# ---------------------------------------------------------------------------

class TestInterestFormula:
    def test_worked_example(self):
        terms = compute_loan_terms(100000, 5, 6, date(2024, 1, 1))
        assert terms.profit == Decimal('2500.00')
        assert terms.total_payable == Decimal('102500.00')
        assert terms.due_date == date(2024, 7, 1)

    def test_random_inputs_follow_simple_interest(self):
        """profit == P * R/100 * D/12 and total == P + profit for arbitrary positive inputs."""
        rng = random.Random(20240101)
        for _ in range(500):
            principal = Decimal(rng.randint(1, 50_000_000)) / 100
            rate = Decimal(rng.randint(1, 5000)) / 100
            months = rng.randint(1, 120)

            terms = compute_loan_terms(principal, rate, months, date(2024, 3, 15))

            expected = float(principal) * float(rate) / 100 * months / 12
            assert abs(float(terms.profit) - expected) <= 0.005 + 1e-9, \
                f"profit off for P={principal} R={rate} D={months}"
            assert terms.total_payable == terms.principal + terms.profit

    def test_money_is_rounded_half_up(self):
        # 1000.01 * 3% * 1/12 = 2.500025 -> 2.50
        assert compute_loan_terms('1000.01', 3, 1, date(2024, 1, 1)).profit == Decimal('2.50')
        # 1.01 * 10% * 6/12 = 0.0505 -> 0.05
        assert compute_loan_terms('1.01', 10, 6, date(2024, 1, 1)).profit == Decimal('0.05')

    def test_accepts_numeric_strings(self):
        terms = compute_loan_terms('50000', '12.5', '12', date(2024, 1, 1))
        assert terms.profit == Decimal('6250.00')
        assert terms.duration_months == 12


# ---------------------------------------------------------------------------
# Due-date arithmetic
# ---------------------------------------------------------------------------

class TestDueDate:
    @pytest.mark.parametrize('start, months, expected', [
        (date(2024, 1, 1), 6, date(2024, 7, 1)),
        (date(2024, 1, 31), 1, date(2024, 2, 29)),    # leap year clamp
        (date(2023, 1, 31), 1, date(2023, 2, 28)),    # non-leap clamp
        (date(2024, 3, 31), 1, date(2024, 4, 30)),
        (date(2024, 8, 31), 6, date(2025, 2, 28)),
        (date(2024, 11, 15), 3, date(2025, 2, 15)),   # year rollover
        (date(2024, 2, 29), 12, date(2025, 2, 28)),
    ])
    def test_calendar_months(self, start, months, expected):
        assert add_months(start, months) == expected
        assert compute_loan_terms(1000, 5, months, start).due_date == expected

    def test_clamped_due_date_does_not_drift(self):
        """Jan 31 + 2 months is Mar 31, not Feb 29 + 1 month."""
        assert add_months(date(2024, 1, 31), 2) == date(2024, 3, 31)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    @pytest.mark.parametrize('principal', [0, -100, '', None, 'abc', 'NaN'])
    def test_principal_must_be_positive(self, principal):
        with pytest.raises(ValidationError) as exc:
            compute_loan_terms(principal, 5, 3, date(2024, 1, 1))
        assert exc.value.field == 'principal_amount'

    @pytest.mark.parametrize('rate', [0, -1, '', None])
    def test_rate_must_be_positive(self, rate):
        with pytest.raises(ValidationError) as exc:
            compute_loan_terms(1000, rate, 3, date(2024, 1, 1))
        assert exc.value.field == 'interest_rate'

    @pytest.mark.parametrize('months', [0, -3, 1.5, '2.5', '', None, True])
    def test_duration_must_be_whole_positive_months(self, months):
        with pytest.raises(ValidationError) as exc:
            compute_loan_terms(1000, 5, months, date(2024, 1, 1))
        assert exc.value.field == 'duration_months'

    @pytest.mark.parametrize('rate', ['5.555', '0.001', Decimal('12.345')])
    def test_rate_limited_to_two_decimal_places(self, rate):
        with pytest.raises(ValidationError) as exc:
            compute_loan_terms(10000, rate, 12, date(2024, 1, 1))
        assert exc.value.field == 'interest_rate'

    def test_rate_ceiling(self):
        assert compute_loan_terms(100, '999.99', 12, date(2024, 1, 1)).interest_rate == Decimal('999.99')
        with pytest.raises(ValidationError) as exc:
            compute_loan_terms(100, 1000, 12, date(2024, 1, 1))
        assert exc.value.field == 'interest_rate'

    def test_rate_with_trailing_zeros_is_accepted(self):
        assert compute_loan_terms(10000, '5.500', 12, date(2024, 1, 1)).profit == Decimal('550.00')

    def test_start_date_required(self):
        with pytest.raises(ValidationError) as exc:
            compute_loan_terms(1000, 5, 3, None)
        assert exc.value.field == 'start_date'


# ---------------------------------------------------------------------------
# Display status
# ---------------------------------------------------------------------------

class TestEffectiveStatus:
    TODAY = date(2024, 6, 1)

    def test_active_past_due_with_balance_reads_overdue(self):
        assert effective_status(Loan.STATUS_ACTIVE, date(2024, 5, 31), Decimal('10'), self.TODAY) == 'overdue'

    def test_active_due_today_is_not_overdue(self):
        assert effective_status(Loan.STATUS_ACTIVE, self.TODAY, Decimal('10'), self.TODAY) == 'active'

    def test_past_due_without_balance_is_not_overdue(self):
        assert effective_status(Loan.STATUS_ACTIVE, date(2024, 1, 1), Decimal('0'), self.TODAY) == 'active'

    def test_stored_overdue_that_is_not_late_reads_active(self):
        assert effective_status(Loan.STATUS_OVERDUE, date(2024, 12, 1), Decimal('10'), self.TODAY) == 'active'

    @pytest.mark.parametrize('status', [Loan.STATUS_PENDING, Loan.STATUS_COMPLETED])
    def test_pending_and_completed_shown_as_stored(self, status):
        assert effective_status(status, date(2020, 1, 1), Decimal('10'), self.TODAY) == status
