"""
Loan Service
============
Loan accounting for an Ikimina group: loan terms, the available-funds gate,
approval, repayments, and the read-path balance and status.

Loan terms
----------
  profit         = principal × (interest_rate / 100) × (duration_months / 12)
  total_payable  = principal + profit
  due_date       = start_date advanced by duration_months calendar months

Simple, non-compounding interest pro-rated from an annual rate.  Month
arithmetic uses ``relativedelta``: a start day that does not exist in the
target month clamps to that month's last day (2024-01-31 + 1 month =
2024-02-29).

Available funds
---------------
  available = Σ paid contributions
            − Σ principal of loans in {active, pending, overdue}
            + Σ repayments on those loans

Never stored; recomputed on demand.  ``create_loan`` takes a row lock on the
group before computing it so two admins cannot both spend the same savings.

Status
------
  pending  → active      approve_loan() (or create_loan(approve=True))
  pending  → (deleted)   reject_loan()
  active   → completed   record_repayment() once Σ repayments ≥ total_payable

``overdue`` is never written here.  It is derived at read time by
``effective_status()`` from the due date and the remaining balance.

Primary entry points
--------------------
  compute_loan_terms()            - pure term computation and validation
  LoanService.available_funds()   - the funds figure used by the gate
  LoanService.create_loan()       - validate, gate, insert
  LoanService.approve_loan()      - pending → active
  LoanService.reject_loan()       - delete a pending request
  LoanService.record_repayment()  - append a repayment, maybe complete the loan
  LoanService.list_loans()        - view models with remaining balance + status
"""
import logging
from collections import namedtuple
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy import func

from extensions import db
from models.activity_logs import ActivityLog
from models.contributions import Contribution
from models.groups import IkiminaGroup, GroupMember
from models.loans import Loan
from models.repayments import Repayment
from services import aggregation
from utils.db_helpers import group_query, group_get
from utils.errors import ValidationError, InsufficientFundsError, InvalidStateError
from utils.money import money, to_float

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
# Largest rate a Numeric(5, 2) column holds
MAX_INTEREST_RATE = Decimal('999.99')

LoanTerms = namedtuple('LoanTerms', [
    'principal', 'interest_rate', 'duration_months',
    'start_date', 'due_date', 'profit', 'total_payable',
])


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def add_months(start_date, months):
    """*start_date* advanced by *months* calendar months (month-end clamped)."""
    return start_date + relativedelta(months=months)


def _positive_decimal(value, field, label):
    if value is None or value == '':
        raise ValidationError(f'{label} is required', field=field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{label} must be a number', field=field)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f'{label} must be greater than zero', field=field)
    return amount


def _positive_months(value):
    if value is None or value == '' or isinstance(value, bool):
        raise ValidationError('Duration is required', field='duration_months')
    try:
        months = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError('Duration must be a whole number of months', field='duration_months')
    if months != months.to_integral_value():
        raise ValidationError('Duration must be a whole number of months', field='duration_months')
    if months < 1:
        raise ValidationError('Duration must be at least one month', field='duration_months')
    return int(months)


def interest_rate_value(value):
    """Annual percent as stored: > 0, at most 999.99, no more than 2 decimal places."""
    rate = _positive_decimal(value, 'interest_rate', 'Interest rate')
    if rate != money(rate):
        raise ValidationError('Interest rate can have at most 2 decimal places', field='interest_rate')
    if rate > MAX_INTEREST_RATE:
        raise ValidationError(f'Interest rate cannot exceed {MAX_INTEREST_RATE}%', field='interest_rate')
    return money(rate)


def compute_loan_terms(principal, interest_rate, duration_months, start_date):
    """
    Validate loan inputs and derive profit, total payable and due date.

    Args:
        principal:        amount lent, > 0
        interest_rate:    annual percent, > 0, at most 999.99, 2 decimal places
        duration_months:  whole months, >= 1
        start_date:       ``date`` the loan starts

    Returns:
        LoanTerms with money values rounded to 2 places (HALF_UP).

    Raises:
        ValidationError for missing, non-numeric, zero or negative inputs,
        and for rates a Numeric(5, 2) column cannot hold exactly.
    """
    principal = money(_positive_decimal(principal, 'principal_amount', 'Principal amount'))
    if principal <= 0:
        raise ValidationError('Principal amount must be greater than zero', field='principal_amount')
    rate = interest_rate_value(interest_rate)
    months = _positive_months(duration_months)
    if not isinstance(start_date, date):
        raise ValidationError('Start date is required', field='start_date')
    if isinstance(start_date, datetime):
        start_date = start_date.date()

    profit = money(principal * rate * Decimal(months) / Decimal('1200'))
    return LoanTerms(
        principal=principal,
        interest_rate=rate,
        duration_months=months,
        start_date=start_date,
        due_date=add_months(start_date, months),
        profit=profit,
        total_payable=principal + profit,
    )


def effective_status(status, due_date, remaining, today=None):
    """
    Status to display for a loan.

    A loan being repaid (stored ``active`` or ``overdue``) reads as
    ``overdue`` when its due date has passed and a balance remains, and as
    ``active`` otherwise.  ``pending`` and ``completed`` are shown as stored.
    """
    if status not in Loan.REPAYING_STATUSES:
        return status
    today = today or date.today()
    if due_date < today and remaining > 0:
        return Loan.STATUS_OVERDUE
    return Loan.STATUS_ACTIVE


class LoanService:
    """
    Loan lifecycle and the group's available-funds figure.

    Every method takes the group (or a loan already scoped to it) and the
    acting user explicitly; nothing is read from the request globals.
    Validation failures raise before any row is written.
    """

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    @staticmethod
    def available_funds(group_id):
        """
        Savings not currently committed to outstanding loan principal.

        Computed with three aggregate queries; clamped at zero.
        """
        paid = db.session.query(func.coalesce(func.sum(Contribution.amount), 0)).filter(
            Contribution.group_id == group_id,
            Contribution.status == Contribution.STATUS_PAID,
        ).scalar()

        outstanding = db.session.query(func.coalesce(func.sum(Loan.principal_amount), 0)).filter(
            Loan.group_id == group_id,
            Loan.status.in_(Loan.OUTSTANDING_STATUSES),
        ).scalar()

        repaid = db.session.query(func.coalesce(func.sum(Repayment.amount), 0)).join(
            Loan, Repayment.loan_id == Loan.id
        ).filter(
            Loan.group_id == group_id,
            Loan.status.in_(Loan.OUTSTANDING_STATUSES),
        ).scalar()

        available = money(paid) - money(outstanding) + money(repaid)
        return max(ZERO, available)

    @staticmethod
    def total_repaid(loan_id):
        """Live Σ of a loan's repayments."""
        total = db.session.query(func.coalesce(func.sum(Repayment.amount), 0)).filter(
            Repayment.loan_id == loan_id
        ).scalar()
        return money(total)

    @staticmethod
    def repaid_by_loan(loan_ids):
        """``{loan_id: Σ repayments}`` for *loan_ids* (one grouped query)."""
        loan_ids = list(loan_ids)
        if not loan_ids:
            return {}
        rows = db.session.query(Repayment.loan_id, func.sum(Repayment.amount)).filter(
            Repayment.loan_id.in_(loan_ids)
        ).group_by(Repayment.loan_id).all()
        return {loan_id: money(total) for loan_id, total in rows}

    @staticmethod
    def loan_summary(loan, total_repaid, today=None):
        """View model for one loan, with remaining balance and display status."""
        total_repaid = money(total_repaid)
        remaining = money(loan.total_payable) - total_repaid
        return {
            'id': loan.id,
            'borrower_id': loan.borrower_id,
            'borrower_name': loan.borrower.full_name if loan.borrower else 'Unknown',
            'principal_amount': to_float(loan.principal_amount),
            'interest_rate': to_float(loan.interest_rate),
            'duration_months': loan.duration_months,
            'start_date': loan.start_date.isoformat(),
            'due_date': loan.due_date.isoformat(),
            'total_payable': to_float(loan.total_payable),
            'profit': to_float(loan.profit),
            'stored_status': loan.status,
            'status': effective_status(loan.status, loan.due_date, remaining, today),
            'total_repaid': float(total_repaid),
            'remaining': float(remaining),
            'notes': loan.notes,
            'approved_at': loan.approved_at.isoformat() if loan.approved_at else None,
        }

    @staticmethod
    def summarize(loans, today=None):
        """``loan_summary`` for each loan, fetching repayment totals in one query."""
        loans = list(loans)
        repaid = LoanService.repaid_by_loan(loan.id for loan in loans)
        return [LoanService.loan_summary(loan, repaid.get(loan.id, ZERO), today) for loan in loans]

    @staticmethod
    def list_loans(group_id, status=None, search=None, borrower_id=None, today=None):
        """
        Loans of a group, newest first, as view models.

        Args:
            status:       filter on the *display* status ('all' or None = no filter)
            search:       case-insensitive substring of the borrower's name
            borrower_id:  only loans of this GroupMember
        """
        query = group_query(Loan, group_id)
        if borrower_id is not None:
            query = query.filter_by(borrower_id=borrower_id)
        loans = query.order_by(Loan.created_at.desc(), Loan.id.desc()).all()

        summaries = LoanService.summarize(loans, today)
        if status and status != 'all':
            summaries = [s for s in summaries if s['status'] == status]
        if search:
            needle = search.strip().lower()
            summaries = [s for s in summaries if needle in s['borrower_name'].lower()]
        return summaries

    @staticmethod
    def get_loan_statistics(group_id, today=None):
        """Header numbers for the loans screen."""
        loans = group_query(Loan, group_id).all()
        summaries = LoanService.summarize(loans, today)
        return {
            'total_active': len(aggregation.active_loans(loans)),
            'total_amount': float(aggregation.active_loans_total(loans)),
            'total_profit': float(aggregation.profit_earned(loans)),
            'pending_approval': sum(1 for loan in loans if loan.status == Loan.STATUS_PENDING),
            'overdue': sum(1 for s in summaries if s['status'] == Loan.STATUS_OVERDUE),
            'available_funds': float(LoanService.available_funds(group_id)),
        }

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    @staticmethod
    def create_loan(group, actor, borrower_id, principal_amount, interest_rate=None,
                    duration_months=None, start_date=None, notes=None, approve=False):
        """
        Issue a loan from the group pool.

        The group row is locked (``SELECT ... FOR UPDATE``) before the funds
        check so the check and the insert form one atomic step.

        Args:
            group:            IkiminaGroup the loan draws on
            actor:            User issuing the loan (stamped as approver if approve)
            borrower_id:      GroupMember id; must be an active member of *group*
            principal_amount: amount lent
            interest_rate:    annual percent (defaults to the group's rate)
            duration_months:  whole months (defaults to DEFAULT_LOAN_DURATION_MONTHS)
            start_date:       defaults to today
            approve:          True → status active now; False → pending approval

        Returns:
            Loan - the committed loan.

        Raises:
            ValidationError, InsufficientFundsError (nothing written).
        """
        if interest_rate is None or interest_rate == '':
            interest_rate = group.interest_rate
        if duration_months is None or duration_months == '':
            duration_months = current_app.config.get('DEFAULT_LOAN_DURATION_MONTHS', 3)
        if start_date is None:
            start_date = date.today()

        try:
            # Serialise loan creation per group
            db.session.query(IkiminaGroup).filter_by(id=group.id).with_for_update().one()

            borrower = group_get(GroupMember, group.id, borrower_id) if borrower_id else None
            if borrower is None or not borrower.is_active:
                raise ValidationError('Borrower must be an active member of this group',
                                      field='borrower_id')

            terms = compute_loan_terms(principal_amount, interest_rate, duration_months, start_date)

            available = LoanService.available_funds(group.id)
            if terms.principal > available:
                raise InsufficientFundsError(terms.principal, available)
        except (ValidationError, InsufficientFundsError) as e:
            db.session.rollback()
            logger.warning('Loan rejected for group %s: %s', group.id, e.message)
            raise

        loan = Loan(
            group_id=group.id,
            borrower_id=borrower.id,
            principal_amount=terms.principal,
            interest_rate=terms.interest_rate,
            duration_months=terms.duration_months,
            start_date=terms.start_date,
            due_date=terms.due_date,
            profit=terms.profit,
            total_payable=terms.total_payable,
            notes=notes or None,
            status=Loan.STATUS_ACTIVE if approve else Loan.STATUS_PENDING,
        )
        if approve:
            loan.approved_by = actor.id
            loan.approved_at = datetime.utcnow()

        db.session.add(loan)
        db.session.flush()
        ActivityLog.record(
            'loan_created', group_id=group.id, user_id=actor.id,
            loan_id=loan.id, borrower_id=borrower.id,
            principal=str(terms.principal), status=loan.status,
        )
        db.session.commit()

        logger.info('Loan %s created for member %s in group %s: principal=%s total=%s status=%s',
                    loan.id, borrower.id, group.id, terms.principal, terms.total_payable, loan.status)
        return loan

    @staticmethod
    def approve_loan(loan, actor):
        """Move a pending loan to active and stamp the approver."""
        if loan.status != Loan.STATUS_PENDING:
            raise InvalidStateError(f'Only pending loans can be approved (loan is {loan.status})')

        loan.status = Loan.STATUS_ACTIVE
        loan.approved_by = actor.id
        loan.approved_at = datetime.utcnow()
        ActivityLog.record('loan_approved', group_id=loan.group_id, user_id=actor.id, loan_id=loan.id)
        db.session.commit()

        logger.info('Loan %s approved by user %s', loan.id, actor.id)
        return loan

    @staticmethod
    def reject_loan(loan, actor):
        """Reject a pending loan request.  The row is deleted, not flagged."""
        if loan.status != Loan.STATUS_PENDING:
            raise InvalidStateError(f'Only pending loans can be rejected (loan is {loan.status})')

        loan_id, group_id = loan.id, loan.group_id
        db.session.delete(loan)
        ActivityLog.record('loan_rejected', group_id=group_id, user_id=actor.id, loan_id=loan_id)
        db.session.commit()

        logger.info('Loan %s rejected by user %s', loan_id, actor.id)

    @staticmethod
    def record_repayment(loan, actor, amount, notes=None, payment_date=None):
        """
        Append a repayment and complete the loan once it is fully repaid.

        The repaid total is re-summed from the repayments table after the
        insert.  Paying more than the remaining balance is accepted and
        simply completes the loan.

        Returns:
            Repayment - the committed row (``loan.status`` reflects any completion).
        """
        amount = money(_positive_decimal(amount, 'amount', 'Repayment amount'))
        if amount <= 0:
            raise ValidationError('Repayment amount must be greater than zero', field='amount')
        if loan.status not in Loan.REPAYING_STATUSES:
            raise InvalidStateError(f'Repayments can only be recorded on active loans (loan is {loan.status})')

        repayment = Repayment(
            loan_id=loan.id,
            amount=amount,
            notes=notes or None,
            payment_date=payment_date or date.today(),
            recorded_by=actor.id,
        )
        db.session.add(repayment)
        db.session.flush()

        total_repaid = LoanService.total_repaid(loan.id)
        if total_repaid >= money(loan.total_payable):
            loan.status = Loan.STATUS_COMPLETED
            logger.info('Loan %s fully repaid (%s of %s)', loan.id, total_repaid, loan.total_payable)

        ActivityLog.record(
            'repayment_recorded', group_id=loan.group_id, user_id=actor.id,
            loan_id=loan.id, amount=str(amount), total_repaid=str(total_repaid),
        )
        db.session.commit()
        return repayment

    @staticmethod
    def get_repayments(loan):
        return [r.to_dict() for r in loan.repayments.order_by(Repayment.payment_date, Repayment.id)]
