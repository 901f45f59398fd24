"""
IkiminaGroup and GroupMember models.
An IkiminaGroup is the tenant: every contribution, loan and announcement
belongs to exactly one group.  GroupMember links a User to a group.
"""
import uuid
from datetime import datetime
from decimal import Decimal

from extensions import db


class IkiminaGroup(db.Model):
    """A savings group sharing one pool of contributions."""
    __tablename__ = 'ikimina_groups'

    STATUS_ACTIVE = 'active'
    STATUS_PENDING_APPROVAL = 'pending_approval'
    STATUS_DISABLED = 'disabled'
    STATUSES = (STATUS_ACTIVE, STATUS_PENDING_APPROVAL, STATUS_DISABLED)

    PLAN_STARTER = 'starter'
    PLAN_GROWTH = 'growth'
    PLANS = (PLAN_STARTER, PLAN_GROWTH)

    FREQUENCIES = ('weekly', 'biweekly', 'monthly')

    id = db.Column(db.Integer, primary_key=True)
    # Public identifier; its first 8 characters are the join code
    public_id = db.Column(db.String(36), unique=True, nullable=False, index=True,
                          default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    constitution = db.Column(db.Text)
    contribution_amount = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal('0.00'))
    contribution_frequency = db.Column(db.String(20), nullable=False, default='monthly')
    interest_rate = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal('5.00'))
    plan = db.Column(db.String(20), nullable=False, default=PLAN_STARTER)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    payment_confirmed_at = db.Column(db.DateTime)
    payment_confirmed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships (deleting a group deletes everything it owns)
    members = db.relationship('GroupMember', back_populates='group', lazy='dynamic',
                              cascade='all, delete-orphan')
    contributions = db.relationship('Contribution', back_populates='group', lazy='dynamic',
                                    cascade='all, delete-orphan')
    loans = db.relationship('Loan', back_populates='group', lazy='dynamic',
                            cascade='all, delete-orphan')
    announcements = db.relationship('Announcement', back_populates='group', lazy='dynamic',
                                    cascade='all, delete-orphan')
    activity_logs = db.relationship('ActivityLog', back_populates='group', lazy='dynamic',
                                    cascade='all, delete-orphan')

    @property
    def group_code(self):
        """Short code members type in to join the group."""
        return self.public_id[:8].upper()

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'constitution': self.constitution,
            'contribution_amount': float(self.contribution_amount or 0),
            'contribution_frequency': self.contribution_frequency,
            'interest_rate': float(self.interest_rate or 0),
            'group_code': self.group_code,
            'plan': self.plan,
            'status': self.status,
        }

    def __repr__(self):
        return f'<IkiminaGroup {self.name} ({self.status})>'


class GroupMember(db.Model):
    """Membership of one user in one group."""
    __tablename__ = 'group_members'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'group_id', name='uq_group_members_user_group'),
    )

    STATUS_ACTIVE = 'active'
    STATUS_PENDING_REJOIN = 'pending_rejoin'
    STATUS_REMOVED = 'removed'
    STATUSES = (STATUS_ACTIVE, STATUS_PENDING_REJOIN, STATUS_REMOVED)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    group_id = db.Column(db.Integer, db.ForeignKey('ikimina_groups.id'), nullable=False, index=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship('User', back_populates='memberships')
    group = db.relationship('IkiminaGroup', back_populates='members')

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    @property
    def full_name(self):
        return self.user.full_name if self.user else 'Unknown'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'group_id': self.group_id,
            'full_name': self.full_name,
            'email': self.user.email if self.user else '',
            'phone': self.user.phone if self.user else None,
            'is_admin': self.is_admin,
            'status': self.status,
            'joined_at': self.joined_at.date().isoformat() if self.joined_at else None,
        }

    def __repr__(self):
        return f'<GroupMember user={self.user_id} group={self.group_id} {self.status}>'
