from flask import Blueprint
from flask_login import login_required

loans_bp = Blueprint('loans', __name__, url_prefix='/loans')

# Require authentication for all routes in this blueprint
@loans_bp.before_request
@login_required
def require_login():
    pass

from . import routes
