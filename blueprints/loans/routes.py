"""
Loan routes.

  GET  /loans/                     – loans with balance and display status
                                     (?status=&search=); members see their own
  GET  /loans/stats                – header numbers incl. available funds
  GET  /loans/<id>                 – one loan with its repayments
  POST /loans/                     – issue a loan (approve=true to activate now)
  POST /loans/<id>/approve         – pending → active
  POST /loans/<id>/reject          – delete a pending request
  GET  /loans/<id>/repayments      – repayment history
  POST /loans/<id>/repayments      – record a repayment
"""
from flask import jsonify, g, request, abort
from flask_login import current_user

from blueprints.loans import loans_bp
from models.loans import Loan
from services.loan_service import LoanService
from utils.db_helpers import group_get_or_404
from utils.permissions import group_required, capability_required, has_capability, MANAGE_LOANS
from utils.request_data import get_payload, parse_date, parse_int, parse_bool


def _get_visible_loan(loan_id):
    """Admins see any loan of the group; members only their own."""
    loan = group_get_or_404(Loan, g.group.id, loan_id)
    if not has_capability(current_user, MANAGE_LOANS) and loan.borrower_id != g.membership.id:
        abort(404)
    return loan


@loans_bp.route('/')
@group_required
def index():
    borrower_id = None if has_capability(current_user, MANAGE_LOANS) else g.membership.id
    loans = LoanService.list_loans(
        g.group.id,
        status=request.args.get('status'),
        search=request.args.get('search'),
        borrower_id=borrower_id,
    )
    return jsonify({'loans': loans, 'count': len(loans)})


@loans_bp.route('/stats')
@group_required
@capability_required(MANAGE_LOANS)
def stats():
    return jsonify(LoanService.get_loan_statistics(g.group.id))


@loans_bp.route('/<int:loan_id>')
@group_required
def detail(loan_id):
    loan = _get_visible_loan(loan_id)
    summary = LoanService.loan_summary(loan, LoanService.total_repaid(loan.id))
    summary['repayments'] = LoanService.get_repayments(loan)
    return jsonify({'loan': summary})


@loans_bp.route('/', methods=['POST'])
@group_required
@capability_required(MANAGE_LOANS)
def create():
    """Issue a loan; rejected with 400 when it exceeds available funds"""
    data = get_payload()
    loan = LoanService.create_loan(
        g.group,
        current_user,
        borrower_id=parse_int(data.get('borrower_id'), 'borrower_id'),
        principal_amount=data.get('principal_amount'),
        interest_rate=data.get('interest_rate'),
        duration_months=data.get('duration_months'),
        start_date=parse_date(data.get('start_date'), 'start_date'),
        notes=data.get('notes'),
        approve=parse_bool(data.get('approve')),
    )
    message = 'Loan created and approved.' if loan.status == Loan.STATUS_ACTIVE else 'Loan request saved.'
    return jsonify({
        'success': True,
        'message': message,
        'loan': LoanService.loan_summary(loan, 0),
    }), 201


@loans_bp.route('/<int:loan_id>/approve', methods=['POST'])
@group_required
@capability_required(MANAGE_LOANS)
def approve(loan_id):
    loan = group_get_or_404(Loan, g.group.id, loan_id)
    LoanService.approve_loan(loan, current_user)
    return jsonify({
        'success': True,
        'loan': LoanService.loan_summary(loan, LoanService.total_repaid(loan.id)),
    })


@loans_bp.route('/<int:loan_id>/reject', methods=['POST'])
@group_required
@capability_required(MANAGE_LOANS)
def reject(loan_id):
    loan = group_get_or_404(Loan, g.group.id, loan_id)
    LoanService.reject_loan(loan, current_user)
    return jsonify({'success': True, 'message': 'Loan request rejected.'})


@loans_bp.route('/<int:loan_id>/repayments')
@group_required
def repayments(loan_id):
    loan = _get_visible_loan(loan_id)
    return jsonify({'repayments': LoanService.get_repayments(loan)})


@loans_bp.route('/<int:loan_id>/repayments', methods=['POST'])
@group_required
@capability_required(MANAGE_LOANS)
def record_repayment(loan_id):
    loan = group_get_or_404(Loan, g.group.id, loan_id)
    data = get_payload()
    repayment = LoanService.record_repayment(
        loan,
        current_user,
        amount=data.get('amount'),
        notes=data.get('notes'),
        payment_date=parse_date(data.get('payment_date'), 'payment_date'),
    )
    return jsonify({
        'success': True,
        'repayment': repayment.to_dict(),
        'loan': LoanService.loan_summary(loan, LoanService.total_repaid(loan.id)),
    }), 201
