from flask import Blueprint
from flask_login import login_required

announcements_bp = Blueprint('announcements', __name__, url_prefix='/announcements')

# Require authentication for all routes in this blueprint
@announcements_bp.before_request
@login_required
def require_login():
    pass

from . import routes
