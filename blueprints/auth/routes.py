"""
Authentication Routes
Login, logout, registration and the current-user lookup
"""
from flask import jsonify, current_app
from flask_login import login_user, logout_user, current_user, login_required
from datetime import datetime
from . import auth_bp
from .forms import LoginForm, RegisterForm, validate_password_strength, first_form_error
from models.users import User
from extensions import db, limiter
from utils.permissions import primary_role, capabilities_for


def _error(message, status=400, field=None):
    payload = {'success': False, 'error': message}
    if field:
        payload['field'] = field
    return jsonify(payload), status


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")  # Rate limit login attempts
def login():
    """Log a user in with lockout after repeated failures"""
    if current_user.is_authenticated:
        return jsonify({'success': True, 'user': current_user.to_dict()})

    form = LoginForm()
    if not form.validate_on_submit():
        field, message = first_form_error(form)
        return _error(message, field=field)

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()

    if user is None:
        # Generic error to prevent user enumeration
        return _error('Invalid email or password.', 401)

    if user.is_locked():
        minutes_left = int((user.locked_until - datetime.utcnow()).total_seconds() / 60) + 1
        return _error(f'Account temporarily locked due to multiple failed login attempts. '
                      f'Try again in {minutes_left} minutes.', 423)

    if not user.is_active:
        return _error('This account has been deactivated. Please contact support.', 403)

    if not user.check_password(form.password.data):
        user.record_failed_login()
        max_attempts = current_app.config.get('MAX_LOGIN_ATTEMPTS', 5)
        remaining = max(0, max_attempts - user.failed_login_attempts)
        current_app.logger.warning(f'Failed login for user {user.id} ({remaining} attempts left)')
        if remaining > 0:
            return _error(f'Invalid email or password. {remaining} attempts remaining before lockout.', 401)
        return _error('Account locked due to too many failed attempts.', 423)

    login_user(user, remember=form.remember.data)
    user.update_last_login()
    user.reset_failed_logins()
    current_app.logger.info(f'User {user.id} logged in')

    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Create an account; the new user then creates or joins a group"""
    form = RegisterForm()
    if not form.validate_on_submit():
        field, message = first_form_error(form)
        return _error(message, field=field)

    is_valid, message = validate_password_strength(form.password.data)
    if not is_valid:
        return _error(message, field='password')

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        return _error('An account with that email already exists.', 409, field='email')

    user = User(
        email=email,
        full_name=form.full_name.data.strip(),
        phone=(form.phone.data or '').strip() or None,
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()

    login_user(user)
    current_app.logger.info(f'User {user.id} registered')
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout"""
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    """The logged-in user with their roles and active membership"""
    roles = current_user.get_roles()
    membership = current_user.get_group_membership()
    role = primary_role(current_user)
    return jsonify({
        'user': current_user.to_dict(),
        'roles': sorted(r.value for r in roles),
        'primary_role': role.value if role else None,
        'capabilities': sorted(capabilities_for(roles)),
        'membership': membership.to_dict() if membership else None,
        'group': membership.group.to_dict() if membership else None,
    })
