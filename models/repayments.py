from extensions import db
from datetime import datetime, date


class Repayment(db.Model):
    """One payment against a loan.  Rows are only ever appended."""
    __tablename__ = 'repayments'

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey('loans.id'), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_date = db.Column(db.Date, nullable=False, default=date.today)
    notes = db.Column(db.Text)

    recorded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    loan = db.relationship('Loan', back_populates='repayments')

    def to_dict(self):
        return {
            'id': self.id,
            'loan_id': self.loan_id,
            'amount': float(self.amount),
            'payment_date': self.payment_date.isoformat(),
            'notes': self.notes,
        }

    def __repr__(self):
        return f'<Repayment loan={self.loan_id}: {self.amount}>'
