from flask import Blueprint, abort
from flask_login import login_required, current_user

from utils.permissions import has_capability, VIEW_ALL_GROUPS

super_admin_bp = Blueprint('super_admin', __name__, url_prefix='/super-admin')


# Every route here is for platform operators only
@super_admin_bp.before_request
@login_required
def require_super_admin():
    if not has_capability(current_user, VIEW_ALL_GROUPS):
        abort(403, description='Super admin access required')

from . import routes
