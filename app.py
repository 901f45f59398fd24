import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_wtf.csrf import CSRFError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from config import config
from extensions import db, migrate, login_manager, csrf, limiter
from utils.errors import IkiminaError


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/ekimina.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        # Service modules log through their own module loggers
        for name in ('services', 'blueprints'):
            logging.getLogger(name).addHandler(file_handler)
            logging.getLogger(name).setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('eKimina startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('eKimina startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # User loader callback for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        from models.users import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Please log in to access this page.'}), 401

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models

    # Register blueprints
    from blueprints.auth import auth_bp
    from blueprints.dashboard import dashboard_bp
    from blueprints.groups import groups_bp
    from blueprints.members import members_bp
    from blueprints.contributions import contributions_bp
    from blueprints.loans import loans_bp
    from blueprints.reports import reports_bp
    from blueprints.announcements import announcements_bp
    from blueprints.super_admin import super_admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(groups_bp)
    app.register_blueprint(members_bp)
    app.register_blueprint(contributions_bp)
    app.register_blueprint(loans_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(announcements_bp)
    app.register_blueprint(super_admin_bp)

    # Create database tables
    with app.app_context():
        os.makedirs(app.instance_path, exist_ok=True)
        db.create_all()

    # Register Flask-Admin (must come after db.init_app and all models are loaded)
    from admin_panel import init_admin
    init_admin(app, db)
    # Flask-Admin generates its own form tokens; exempt its blueprint from
    # Flask-WTF's global CSRF so the two don't conflict.
    csrf.exempt(app.blueprints['admin'])

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers (all JSON)"""

    @app.errorhandler(IkiminaError)
    def domain_error(error):
        # Nothing from the failed operation may be committed later
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def database_error(error):
        db.session.rollback()
        app.logger.error(f'Database error: {error}')
        return jsonify({'success': False, 'error': 'A database error occurred. Please try again.'}), 500

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({'success': False, 'error': f'CSRF token validation failed: {error.description}'}), 400

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'success': False, 'error': error.description}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def register_commands(app):
    """Register Flask CLI commands."""

    @app.cli.group('super-admin')
    def super_admin():
        """Manage platform super-admin access."""
        pass

    @super_admin.command('grant')
    @click.argument('email')
    def grant_super_admin(email):
        """Grant super-admin access to a user by EMAIL."""
        from models.users import User
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if user.is_super_admin:
            click.echo(f'"{user.full_name}" ({email}) already has super-admin access.')
            return
        user.is_super_admin = True
        db.session.commit()
        click.echo(f'SUCCESS: "{user.full_name}" ({email}) granted super-admin access.')

    @super_admin.command('revoke')
    @click.argument('email')
    def revoke_super_admin(email):
        """Revoke super-admin access from a user by EMAIL."""
        from models.users import User
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if not user.is_super_admin:
            click.echo(f'"{user.full_name}" ({email}) does not have super-admin access.')
            return
        user.is_super_admin = False
        db.session.commit()
        click.echo(f'SUCCESS: Super-admin access revoked from "{user.full_name}" ({email}).')

    @super_admin.command('list')
    def list_super_admins():
        """List all users with super-admin access."""
        from models.users import User
        admins = User.query.filter_by(is_super_admin=True).all()
        if not admins:
            click.echo('No super admins found.')
            return
        click.echo(f'{"ID":<5} {"Name":<25} {"Email":<40} {"Active":<8}')
        click.echo('-' * 80)
        for u in admins:
            click.echo(f'{u.id:<5} {u.full_name:<25} {u.email:<40} {str(u.is_active):<8}')

    @super_admin.command('create')
    @click.option('--email', prompt=True)
    @click.option('--full-name', prompt=True)
    @click.password_option()
    def create_super_admin(email, full_name, password):
        """Create a new super-admin account."""
        from models.users import User
        from blueprints.auth.forms import validate_password_strength

        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            click.echo(f'ERROR: A user with email "{email}" already exists', err=True)
            return
        is_valid, message = validate_password_strength(password)
        if not is_valid:
            click.echo(f'ERROR: {message}', err=True)
            return

        user = User(email=email, full_name=full_name.strip(), is_super_admin=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f'SUCCESS: Super admin "{user.full_name}" ({email}) created.')


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    # Never use 0.0.0.0 with debug mode - it exposes the debugger to the network
    app.run(host='127.0.0.1', port=5000, debug=True)
