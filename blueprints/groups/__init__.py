from flask import Blueprint
from flask_login import login_required

groups_bp = Blueprint('groups', __name__, url_prefix='/groups')

# Require authentication for all routes in this blueprint
@groups_bp.before_request
@login_required
def require_login():
    pass

from . import routes
