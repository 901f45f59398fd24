"""
Database query helpers for group-scoped multi-tenancy.

All data in this application is scoped to an IkiminaGroup.  Every query
against a group-owned model should go through these helpers so that one
group can never see another group's records.

The group id is always passed in explicitly (it comes from the caller's
resolved membership, ``g.group.id``), never read from a global.

Usage
-----
::

    from utils.db_helpers import group_query, group_get_or_404

    loans = group_query(Loan, group.id).order_by(Loan.created_at.desc()).all()
    loan = group_get_or_404(Loan, group.id, loan_id)
"""
from flask import abort


def group_query(model, group_id):
    """Return a query on *model* pre-filtered to *group_id*.

    Examples::

        group_query(Contribution, gid).filter_by(status='paid').all()
        group_query(Loan, gid).count()
    """
    if not hasattr(model, 'group_id'):
        raise AttributeError(
            f"group_query() called on {model.__name__} but it has no group_id column."
        )
    if group_id is None:
        # Return a query that always yields zero rows rather than leaking data
        return model.query.filter(model.id == -1)
    return model.query.filter_by(group_id=group_id)


def group_get(model, group_id, record_id):
    """Fetch a single record by *record_id*, scoped to *group_id*.

    Returns ``None`` if the record does not exist or belongs to another group.
    """
    if group_id is None:
        return None
    return model.query.filter_by(id=record_id, group_id=group_id).first()


def group_get_or_404(model, group_id, record_id):
    """Like ``group_get`` but aborts with 404 if nothing is found."""
    record = group_get(model, group_id, record_id)
    if record is None:
        abort(404)
    return record
