# Models package - Import all models for Flask-SQLAlchemy

from models.users import User
from models.groups import IkiminaGroup, GroupMember
from models.contributions import Contribution
from models.loans import Loan
from models.repayments import Repayment
from models.announcements import Announcement, AnnouncementComment, SystemAnnouncement
from models.activity_logs import ActivityLog

__all__ = [
    'User',
    'IkiminaGroup',
    'GroupMember',
    'Contribution',
    'Loan',
    'Repayment',
    'Announcement',
    'AnnouncementComment',
    'SystemAnnouncement',
    'ActivityLog',
]
