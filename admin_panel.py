"""
Flask-Admin panel for eKimina
Accessible at /admin - restricted to super admins
"""
from flask import abort
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from flask_admin.theme import Bootstrap4Theme
from flask_login import current_user


def _is_super_admin():
    return current_user.is_authenticated and current_user.is_super_admin


# ---------------------------------------------------------------------------
# Base secure views
# ---------------------------------------------------------------------------

class SecureAdminIndexView(AdminIndexView):
    """Admin home page - super admins only."""

    @expose('/')
    def index(self):
        if not _is_super_admin():
            abort(403, description='Super admin access required')
        return super().index()

    def is_accessible(self):
        return _is_super_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403, description='Super admin access required')


class SecureModelView(ModelView):
    """Full CRUD model view - super admin only."""

    can_export = True
    page_size = 50
    column_display_pk = True

    def __init__(self, model, session, **kwargs):
        # Prefix endpoints with 'admin_' so they never clash with app
        # blueprints named after the same models (e.g. 'loans').
        if 'endpoint' not in kwargs:
            kwargs['endpoint'] = f'admin_{model.__name__.lower()}'

        # Group-owned tables can always be filtered by group
        if hasattr(model, 'group_id'):
            existing = list(getattr(self.__class__, 'column_filters', None) or [])
            if 'group_id' not in existing:
                existing.insert(0, 'group_id')
            # Set as instance attribute - Flask-Admin reads this in _refresh_cache()
            self.column_filters = existing

        super().__init__(model, session, **kwargs)

    def scaffold_list_columns(self):
        """Ensure group_id always appears in the column list for models that have it."""
        columns = super().scaffold_list_columns()
        if hasattr(self.model, 'group_id') and 'group_id' not in columns:
            columns.insert(1, 'group_id')  # after id
        return columns

    def is_accessible(self):
        return _is_super_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403, description='Super admin access required')


class ReadOnlyModelView(SecureModelView):
    """Read-only view; money rows are only changed through the app."""

    can_create = False
    can_edit = False
    can_delete = False


# ---------------------------------------------------------------------------
# Customised model views
# ---------------------------------------------------------------------------

class UserAdminView(SecureModelView):
    """Users - hide password hash, show useful columns."""
    column_exclude_list = ['password_hash']
    form_excluded_columns = ['password_hash', 'memberships']
    column_searchable_list = ['email', 'full_name', 'phone']
    column_filters = ['is_active', 'is_super_admin']
    column_list = [
        'id', 'full_name', 'email', 'phone', 'is_active', 'is_super_admin',
        'last_login', 'created_at', 'failed_login_attempts', 'locked_until',
    ]


class GroupAdminView(SecureModelView):
    column_searchable_list = ['name', 'public_id']
    column_filters = ['status', 'plan', 'contribution_frequency']
    column_list = [
        'id', 'name', 'public_id', 'plan', 'status', 'contribution_amount',
        'contribution_frequency', 'interest_rate', 'created_at',
    ]
    form_excluded_columns = ['members', 'contributions', 'loans', 'announcements', 'activity_logs']


class MemberAdminView(SecureModelView):
    column_filters = ['status', 'is_admin']


class ContributionAdminView(ReadOnlyModelView):
    column_filters = ['status', 'due_date', 'paid_date']
    column_default_sort = ('due_date', True)


class LoanAdminView(ReadOnlyModelView):
    column_filters = ['status', 'due_date']
    column_default_sort = ('created_at', True)


class ActivityLogAdminView(ReadOnlyModelView):
    column_searchable_list = ['action']
    column_filters = ['action', 'user_id']
    column_default_sort = ('created_at', True)


# ---------------------------------------------------------------------------
# Admin factory
# ---------------------------------------------------------------------------

def init_admin(app, db):
    """Create the Flask-Admin instance and register all model views."""

    admin = Admin(
        app,
        name='eKimina Admin',
        theme=Bootstrap4Theme(),
        index_view=SecureAdminIndexView(),
        url='/admin',
    )

    from models.users import User
    from models.groups import IkiminaGroup, GroupMember
    from models.contributions import Contribution
    from models.loans import Loan
    from models.repayments import Repayment
    from models.announcements import Announcement, AnnouncementComment, SystemAnnouncement
    from models.activity_logs import ActivityLog

    # Core
    admin.add_view(UserAdminView(User, db.session, name='Users', category='Core'))
    admin.add_view(GroupAdminView(IkiminaGroup, db.session, name='Groups', category='Core'))
    admin.add_view(MemberAdminView(GroupMember, db.session, name='Members', category='Core'))

    # Finance
    admin.add_view(ContributionAdminView(Contribution, db.session, name='Contributions', category='Finance'))
    admin.add_view(LoanAdminView(Loan, db.session, name='Loans', category='Finance'))
    admin.add_view(ReadOnlyModelView(Repayment, db.session, name='Repayments', category='Finance'))

    # Communication
    admin.add_view(SecureModelView(Announcement, db.session, name='Announcements', category='Communication'))
    admin.add_view(SecureModelView(AnnouncementComment, db.session, name='Comments', category='Communication'))
    admin.add_view(SecureModelView(SystemAnnouncement, db.session, name='System Notices', category='Communication'))

    # Audit
    admin.add_view(ActivityLogAdminView(ActivityLog, db.session, name='Activity Log', category='Audit'))

    return admin
