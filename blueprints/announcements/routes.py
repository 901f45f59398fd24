"""
Announcement routes.

  GET  /announcements/                         – group announcements
  POST /announcements/                         – post (group admin)
  GET  /announcements/<id>                     – one announcement with comments
  POST /announcements/<id>/delete              – delete (group admin)
  POST /announcements/<id>/comments            – comment (any active member)
  POST /announcements/comments/<id>/delete     – delete own comment (or any, as admin)
  GET  /announcements/system                   – platform notices for the caller's role
"""
from flask import jsonify, g, abort
from flask_login import current_user

from blueprints.announcements import announcements_bp
from extensions import db
from models.announcements import Announcement, AnnouncementComment
from services.announcement_service import AnnouncementService
from utils.db_helpers import group_get_or_404
from utils.permissions import (
    group_required, capability_required, has_capability,
    COMMENT, POST_ANNOUNCEMENTS, VIEW_ALL_GROUPS,
)
from utils.request_data import get_payload


@announcements_bp.route('/')
@group_required
def index():
    return jsonify({'announcements': AnnouncementService.list_announcements(g.group.id)})


@announcements_bp.route('/', methods=['POST'])
@group_required
@capability_required(POST_ANNOUNCEMENTS)
def post():
    data = get_payload()
    announcement = AnnouncementService.post_announcement(
        g.group, current_user, data.get('title'), data.get('content'))
    return jsonify({'success': True, 'announcement': announcement.to_dict()}), 201


@announcements_bp.route('/<int:announcement_id>')
@group_required
def detail(announcement_id):
    announcement = group_get_or_404(Announcement, g.group.id, announcement_id)
    return jsonify({'announcement': announcement.to_dict(include_comments=True)})


@announcements_bp.route('/<int:announcement_id>/delete', methods=['POST'])
@group_required
@capability_required(POST_ANNOUNCEMENTS)
def delete(announcement_id):
    announcement = group_get_or_404(Announcement, g.group.id, announcement_id)
    AnnouncementService.delete_announcement(announcement, current_user)
    return jsonify({'success': True})


@announcements_bp.route('/<int:announcement_id>/comments', methods=['POST'])
@group_required
@capability_required(COMMENT)
def comment(announcement_id):
    announcement = group_get_or_404(Announcement, g.group.id, announcement_id)
    new_comment = AnnouncementService.add_comment(announcement, current_user, get_payload().get('content'))
    return jsonify({'success': True, 'comment': new_comment.to_dict()}), 201


@announcements_bp.route('/comments/<int:comment_id>/delete', methods=['POST'])
@group_required
def delete_comment(comment_id):
    found = db.session.get(AnnouncementComment, comment_id)
    # Comments are scoped through their announcement's group
    if found is None or found.announcement.group_id != g.group.id:
        abort(404)
    AnnouncementService.delete_comment(found, current_user,
                                       is_group_admin=has_capability(current_user, POST_ANNOUNCEMENTS))
    return jsonify({'success': True})


@announcements_bp.route('/system')
def system_notices():
    membership = current_user.get_group_membership()
    notices = AnnouncementService.list_system_notices(
        is_super_admin=has_capability(current_user, VIEW_ALL_GROUPS),
        is_group_admin=membership is not None and membership.is_admin,
    )
    return jsonify({'notices': notices})
