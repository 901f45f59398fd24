from flask import Blueprint
from flask_login import login_required

members_bp = Blueprint('members', __name__, url_prefix='/members')

# Require authentication for all routes in this blueprint
@members_bp.before_request
@login_required
def require_login():
    pass

from . import routes
