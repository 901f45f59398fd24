"""
Shared pytest fixtures for the eKimina test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.
"""
from datetime import date
from decimal import Decimal

import pytest
from flask import g
from flask.testing import FlaskClient

from app import create_app
from extensions import db as _db


class FreshUserClient(FlaskClient):
    """Test client that re-resolves the logged-in user on every request.

    Requests share the session-wide app context, so ``g`` outlives a single
    request and Flask-Login would otherwise keep serving the cached user.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    application.test_client_class = FreshUserClient
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()
    g.pop('_login_user', None)


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

PASSWORD = 'TestPass1!'


@pytest.fixture
def make_user(app):
    from models.users import User

    def _make(email, full_name='Test User', **kwargs):
        u = User(email=email, full_name=full_name, **kwargs)
        u.set_password(PASSWORD)
        _db.session.add(u)
        _db.session.commit()
        return u
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user('admin@example.com', 'Alice Admin')


@pytest.fixture
def member_user(make_user):
    return make_user('member@example.com', 'Bob Member')


@pytest.fixture
def super_admin_user(make_user):
    return make_user('root@example.com', 'Sam Super', is_super_admin=True)


@pytest.fixture
def group(app, admin_user, member_user):
    """An active group: admin_user is its admin, member_user a plain member."""
    from models.groups import IkiminaGroup, GroupMember
    grp = IkiminaGroup(
        name='Abishyize Hamwe',
        contribution_amount=Decimal('10000.00'),
        contribution_frequency='monthly',
        interest_rate=Decimal('5.00'),
        created_by=admin_user.id,
    )
    _db.session.add(grp)
    _db.session.flush()
    _db.session.add_all([
        GroupMember(user_id=admin_user.id, group_id=grp.id, is_admin=True),
        GroupMember(user_id=member_user.id, group_id=grp.id, is_admin=False),
    ])
    _db.session.commit()
    return grp


@pytest.fixture
def admin_member(group, admin_user):
    return admin_user.get_group_membership()


@pytest.fixture
def member(group, member_user):
    return member_user.get_group_membership()


@pytest.fixture
def add_paid_contribution(app):
    """Insert a paid contribution directly (bypassing the service)."""
    from models.contributions import Contribution

    def _add(grp, membership, amount, paid_date=None):
        c = Contribution(
            group_id=grp.id,
            member_id=membership.id,
            amount=Decimal(str(amount)),
            due_date=paid_date or date.today(),
            paid_date=paid_date or date.today(),
            status=Contribution.STATUS_PAID,
        )
        _db.session.add(c)
        _db.session.commit()
        return c
    return _add


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def login(app):
    """Return a helper giving a test client logged in as *user*."""
    def _login(user, password=PASSWORD):
        client = app.test_client()
        response = client.post('/auth/login', json={'email': user.email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return client
    return _login
