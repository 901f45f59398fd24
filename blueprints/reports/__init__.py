from flask import Blueprint
from flask_login import login_required

reports_bp = Blueprint('reports', __name__, url_prefix='/reports')

# Require authentication for all routes in this blueprint
@reports_bp.before_request
@login_required
def require_login():
    pass

from . import routes
