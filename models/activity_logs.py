import json
from datetime import datetime

from extensions import db


class ActivityLog(db.Model):
    """Audit trail of group mutations (loan issued, contribution paid, ...)."""
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('ikimina_groups.id'), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    action = db.Column(db.String(50), nullable=False)
    details = db.Column(db.Text)  # JSON
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    group = db.relationship('IkiminaGroup', back_populates='activity_logs')

    @staticmethod
    def record(action, group_id=None, user_id=None, **details):
        """Add a log row to the current session (the caller commits)."""
        entry = ActivityLog(
            action=action,
            group_id=group_id,
            user_id=user_id,
            details=json.dumps(details, default=str) if details else None,
        )
        db.session.add(entry)
        return entry

    def get_details(self):
        if not self.details:
            return {}
        try:
            return json.loads(self.details)
        except (ValueError, TypeError):
            return {}

    def to_dict(self):
        return {
            'id': self.id,
            'action': self.action,
            'user_id': self.user_id,
            'details': self.get_details(),
            'created_at': self.created_at.isoformat(),
        }

    def __repr__(self):
        return f'<ActivityLog {self.action} group={self.group_id}>'
