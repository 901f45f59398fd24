from flask import Blueprint
from flask_login import login_required

contributions_bp = Blueprint('contributions', __name__, url_prefix='/contributions')

# Require authentication for all routes in this blueprint
@contributions_bp.before_request
@login_required
def require_login():
    pass

from . import routes
