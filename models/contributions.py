from extensions import db
from datetime import datetime


class Contribution(db.Model):
    """An expected or received savings payment from one member."""
    __tablename__ = 'contributions'

    STATUS_PAID = 'paid'
    STATUS_PENDING = 'pending'
    STATUS_LATE = 'late'
    STATUS_MISSED = 'missed'
    STATUSES = (STATUS_PAID, STATUS_PENDING, STATUS_LATE, STATUS_MISSED)

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('ikimina_groups.id'), nullable=False, index=True)
    member_id = db.Column(db.Integer, db.ForeignKey('group_members.id'), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    paid_date = db.Column(db.Date)
    status = db.Column(db.String(10), nullable=False, default=STATUS_PENDING)
    notes = db.Column(db.Text)

    recorded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    group = db.relationship('IkiminaGroup', back_populates='contributions')
    member = db.relationship('GroupMember')

    @property
    def is_paid(self):
        return self.status == self.STATUS_PAID

    def to_dict(self):
        return {
            'id': self.id,
            'member_id': self.member_id,
            'member_name': self.member.full_name if self.member else 'Unknown',
            'amount': float(self.amount),
            'status': self.status,
            'due_date': self.due_date.isoformat(),
            'paid_date': self.paid_date.isoformat() if self.paid_date else None,
            'notes': self.notes,
        }

    def __repr__(self):
        return f'<Contribution member={self.member_id}: {self.amount} {self.status}>'
