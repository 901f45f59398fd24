"""
User Model for Authentication
A user profile plus the role lookups the rest of the app relies on.
"""
from extensions import db
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime


class User(UserMixin, db.Model):
    """User account for authentication"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(30))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    # Login security fields
    failed_login_attempts = db.Column(db.Integer, default=0, nullable=False)
    locked_until = db.Column(db.DateTime)

    # Platform operator; sees every group
    is_super_admin = db.Column(db.Boolean, default=False, nullable=False)

    memberships = db.relationship('GroupMember', back_populates='user', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def set_password(self, password):
        """Hash and set the user's password"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if provided password matches the hash"""
        return check_password_hash(self.password_hash, password)

    def update_last_login(self):
        """Update the last login timestamp"""
        self.last_login = datetime.utcnow()
        db.session.commit()

    def is_locked(self):
        """Check if account is locked due to failed login attempts"""
        if self.locked_until and self.locked_until > datetime.utcnow():
            return True
        return False

    def record_failed_login(self):
        """Record a failed login attempt and lock if threshold exceeded"""
        from flask import current_app
        self.failed_login_attempts += 1

        max_attempts = current_app.config.get('MAX_LOGIN_ATTEMPTS', 5)
        lockout_duration = current_app.config.get('LOCKOUT_DURATION')

        if self.failed_login_attempts >= max_attempts and lockout_duration:
            self.locked_until = datetime.utcnow() + lockout_duration

        db.session.commit()

    def reset_failed_logins(self):
        """Reset failed login attempts after successful login"""
        self.failed_login_attempts = 0
        self.locked_until = None
        db.session.commit()

    # ------------------------------------------------------------------
    # Role lookups
    # ------------------------------------------------------------------

    def get_group_membership(self):
        """Return the user's single *active* GroupMember row, or ``None``."""
        from models.groups import GroupMember
        return self.memberships.filter_by(status=GroupMember.STATUS_ACTIVE).first()

    def get_roles(self):
        """Return the set of Role values this user holds.

        ``super_admin`` comes from the user flag; ``group_admin`` or
        ``member`` from the active membership (if any).
        """
        from utils.permissions import Role
        roles = set()
        if self.is_super_admin:
            roles.add(Role.SUPER_ADMIN)
        membership = self.get_group_membership()
        if membership is not None:
            roles.add(Role.GROUP_ADMIN if membership.is_admin else Role.MEMBER)
        return roles

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'phone': self.phone,
            'is_super_admin': self.is_super_admin,
        }

    def __repr__(self):
        return f'<User {self.email}>'
