"""
Financial aggregations over already-fetched rows.

Every function here is a pure projection: it reads attributes from the rows
it is given, never touches the session and never mutates its input, so
calling it twice on the same rows yields the same result.  Rows may be model
instances or any object exposing the same attribute names.
"""
from decimal import Decimal

from models.contributions import Contribution
from models.loans import Loan
from utils.money import money


def total_savings(contributions):
    """Σ amount of contributions whose status is ``paid``."""
    return money(sum(
        (Decimal(str(c.amount)) for c in contributions if c.status == Contribution.STATUS_PAID),
        Decimal('0'),
    ))


def active_loans(loans):
    """Loans currently being repaid (stored status active or overdue)."""
    return [loan for loan in loans if loan.status in Loan.REPAYING_STATUSES]


def active_loans_total(loans):
    """Σ total_payable over loans in {active, overdue}."""
    return money(sum(
        (Decimal(str(loan.total_payable)) for loan in active_loans(loans)),
        Decimal('0'),
    ))


def profit_earned(loans):
    """Σ profit over all loans regardless of status."""
    return money(sum(
        (Decimal(str(loan.profit or 0)) for loan in loans),
        Decimal('0'),
    ))


def collection_rate(contributions):
    """Paid contributions / all contributions, as a fraction in [0, 1]."""
    contributions = list(contributions)
    if not contributions:
        return 0.0
    paid = sum(1 for c in contributions if c.status == Contribution.STATUS_PAID)
    return paid / len(contributions)


def count_by_status(rows, amount_attr):
    """``[{'status', 'count', 'amount'}]`` in first-seen status order."""
    buckets = {}
    for row in rows:
        bucket = buckets.setdefault(row.status, {'status': row.status, 'count': 0, 'amount': Decimal('0')})
        bucket['count'] += 1
        bucket['amount'] += Decimal(str(getattr(row, amount_attr) or 0))
    return [
        {'status': b['status'], 'count': b['count'], 'amount': float(money(b['amount']))}
        for b in buckets.values()
    ]


def group_stats(contributions, loans, active_member_count):
    """Headline numbers shared by the admin dashboard and the super-admin views."""
    contributions = list(contributions)
    loans = list(loans)
    return {
        'total_savings': float(total_savings(contributions)),
        'active_members': active_member_count,
        'active_loans': len(active_loans(loans)),
        'total_loans_amount': float(active_loans_total(loans)),
        'profit_earned': float(profit_earned(loans)),
        'collection_rate': collection_rate(contributions),
        'pending_contributions': sum(
            1 for c in contributions if c.status == Contribution.STATUS_PENDING
        ),
    }
