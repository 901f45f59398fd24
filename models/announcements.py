"""
Announcement models.
Announcement / AnnouncementComment are scoped to one group.
SystemAnnouncement is a platform-wide notice posted by a super admin.
"""
from datetime import datetime

from extensions import db


class Announcement(db.Model):
    """A notice posted to one group by one of its admins."""
    __tablename__ = 'announcements'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('ikimina_groups.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    group = db.relationship('IkiminaGroup', back_populates='announcements')
    author = db.relationship('User', foreign_keys=[created_by])
    comments = db.relationship('AnnouncementComment', back_populates='announcement',
                               lazy='dynamic', cascade='all, delete-orphan',
                               order_by='AnnouncementComment.created_at')

    def to_dict(self, include_comments=False):
        data = {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'author': self.author.full_name if self.author else None,
            'created_at': self.created_at.isoformat(),
            'comment_count': self.comments.count(),
        }
        if include_comments:
            data['comments'] = [c.to_dict() for c in self.comments]
        return data

    def __repr__(self):
        return f'<Announcement {self.title!r}>'


class AnnouncementComment(db.Model):
    __tablename__ = 'announcement_comments'

    id = db.Column(db.Integer, primary_key=True)
    announcement_id = db.Column(db.Integer, db.ForeignKey('announcements.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    announcement = db.relationship('Announcement', back_populates='comments')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'author': self.user.full_name if self.user else None,
            'content': self.content,
            'created_at': self.created_at.isoformat(),
        }


class SystemAnnouncement(db.Model):
    """Platform notice from a super admin."""
    __tablename__ = 'system_announcements'

    AUDIENCE_ALL = 'all'
    AUDIENCE_ADMINS = 'admins'
    AUDIENCE_MEMBERS = 'members'
    AUDIENCES = (AUDIENCE_ALL, AUDIENCE_ADMINS, AUDIENCE_MEMBERS)

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    audience = db.Column(db.String(10), nullable=False, default=AUDIENCE_ALL)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'audience': self.audience,
            'created_at': self.created_at.isoformat(),
        }

    def __repr__(self):
        return f'<SystemAnnouncement {self.title!r} -> {self.audience}>'
