"""
Announcement Service
====================
Group announcements with member comments, and platform-wide system notices.
"""
import logging

from extensions import db
from models.activity_logs import ActivityLog
from models.announcements import Announcement, AnnouncementComment, SystemAnnouncement
from utils.db_helpers import group_query
from utils.errors import ValidationError, InvalidStateError

logger = logging.getLogger(__name__)


def _required_text(value, field, label):
    value = (value or '').strip()
    if not value:
        raise ValidationError(f'{label} is required', field=field)
    return value


class AnnouncementService:

    @staticmethod
    def list_announcements(group_id, include_comments=False):
        rows = group_query(Announcement, group_id)\
            .order_by(Announcement.created_at.desc(), Announcement.id.desc()).all()
        return [a.to_dict(include_comments=include_comments) for a in rows]

    @staticmethod
    def post_announcement(group, actor, title, content):
        announcement = Announcement(
            group_id=group.id,
            title=_required_text(title, 'title', 'Title'),
            content=_required_text(content, 'content', 'Content'),
            created_by=actor.id,
        )
        db.session.add(announcement)
        db.session.flush()
        ActivityLog.record('announcement_posted', group_id=group.id, user_id=actor.id,
                           announcement_id=announcement.id)
        db.session.commit()

        logger.info('Announcement %s posted to group %s', announcement.id, group.id)
        return announcement

    @staticmethod
    def delete_announcement(announcement, actor):
        group_id, announcement_id = announcement.group_id, announcement.id
        db.session.delete(announcement)
        ActivityLog.record('announcement_deleted', group_id=group_id, user_id=actor.id,
                           announcement_id=announcement_id)
        db.session.commit()

    @staticmethod
    def add_comment(announcement, actor, content):
        comment = AnnouncementComment(
            announcement_id=announcement.id,
            user_id=actor.id,
            content=_required_text(content, 'content', 'Comment'),
        )
        db.session.add(comment)
        db.session.commit()
        return comment

    @staticmethod
    def delete_comment(comment, actor, is_group_admin=False):
        """Authors may delete their own comments; group admins may delete any."""
        if comment.user_id != actor.id and not is_group_admin:
            raise InvalidStateError('You can only delete your own comments')
        db.session.delete(comment)
        db.session.commit()

    # ------------------------------------------------------------------
    # System notices
    # ------------------------------------------------------------------

    @staticmethod
    def visible_audiences(is_super_admin=False, is_group_admin=False):
        if is_super_admin:
            return SystemAnnouncement.AUDIENCES
        if is_group_admin:
            return (SystemAnnouncement.AUDIENCE_ALL, SystemAnnouncement.AUDIENCE_ADMINS)
        return (SystemAnnouncement.AUDIENCE_ALL, SystemAnnouncement.AUDIENCE_MEMBERS)

    @staticmethod
    def list_system_notices(is_super_admin=False, is_group_admin=False, limit=None):
        audiences = AnnouncementService.visible_audiences(is_super_admin, is_group_admin)
        query = SystemAnnouncement.query.filter(SystemAnnouncement.audience.in_(audiences))\
            .order_by(SystemAnnouncement.created_at.desc(), SystemAnnouncement.id.desc())
        if limit:
            query = query.limit(limit)
        return [n.to_dict() for n in query.all()]

    @staticmethod
    def post_system_notice(actor, title, content, audience=SystemAnnouncement.AUDIENCE_ALL):
        if audience not in SystemAnnouncement.AUDIENCES:
            raise ValidationError(f'Unknown audience: {audience}', field='audience')
        notice = SystemAnnouncement(
            title=_required_text(title, 'title', 'Title'),
            content=_required_text(content, 'content', 'Content'),
            audience=audience,
            created_by=actor.id,
        )
        db.session.add(notice)
        ActivityLog.record('system_notice_posted', user_id=actor.id, audience=audience)
        db.session.commit()

        logger.info('System notice %s posted for %s', notice.id, audience)
        return notice

    @staticmethod
    def delete_system_notice(notice, actor):
        db.session.delete(notice)
        ActivityLog.record('system_notice_deleted', user_id=actor.id, notice_id=notice.id)
        db.session.commit()
