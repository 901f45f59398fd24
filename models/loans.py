from extensions import db
from datetime import datetime


class Loan(db.Model):
    """A peer loan from the group pool to one member.

    ``profit`` and ``total_payable`` are fixed when the loan is created
    (simple pro-rated annual interest); the outstanding balance is never
    stored and is always recomputed from the loan's repayments.
    """
    __tablename__ = 'loans'

    STATUS_PENDING = 'pending'
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_OVERDUE = 'overdue'
    STATUSES = (STATUS_PENDING, STATUS_ACTIVE, STATUS_COMPLETED, STATUS_OVERDUE)

    # Loans still drawing on the pool
    OUTSTANDING_STATUSES = (STATUS_ACTIVE, STATUS_PENDING, STATUS_OVERDUE)
    # Loans that have been disbursed and are being repaid
    REPAYING_STATUSES = (STATUS_ACTIVE, STATUS_OVERDUE)

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('ikimina_groups.id'), nullable=False, index=True)
    borrower_id = db.Column(db.Integer, db.ForeignKey('group_members.id'), nullable=False, index=True)

    principal_amount = db.Column(db.Numeric(14, 2), nullable=False)
    interest_rate = db.Column(db.Numeric(5, 2), nullable=False)   # annual percent
    duration_months = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    total_payable = db.Column(db.Numeric(14, 2), nullable=False)
    profit = db.Column(db.Numeric(14, 2), nullable=False)
    status = db.Column(db.String(10), nullable=False, default=STATUS_PENDING)
    notes = db.Column(db.Text)

    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    group = db.relationship('IkiminaGroup', back_populates='loans')
    borrower = db.relationship('GroupMember')
    approver = db.relationship('User', foreign_keys=[approved_by])
    repayments = db.relationship('Repayment', back_populates='loan', lazy='dynamic',
                                 cascade='all, delete-orphan',
                                 order_by='Repayment.payment_date')

    def __repr__(self):
        return f'<Loan #{self.id} borrower={self.borrower_id}: {self.principal_amount} {self.status}>'
