"""
Shared pytest fixtures for the OOS WebApp test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / auth_headers: principal factories
    - owner, admin, outsider: ready-made principals (admin holds a badge)
    - startup: active startup owned by `owner` with bank details filled in
"""

import pytest

from oos import create_app
from oos.models import db as _db
from oos.models.auth import AdminBadge, User
from oos.models.startup import Startup
from oos.services.jwt_service import generate_access_token
from oos.utils.crypto import hash_password

TEST_PASSWORD = "s3cret-pass"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application once per test session."""
    application = create_app("testing")
    application.config["UPLOAD_FOLDER"] = str(tmp_path_factory.mktemp("uploads"))
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Principal factories ──────────────────────────────────────────────────


@pytest.fixture(scope="session")
def _password_hash():
    # bcrypt is deliberately slow; hash once per session
    return hash_password(TEST_PASSWORD)


@pytest.fixture()
def make_user(_password_hash):
    """Factory: make_user("ada@acme.io", badge=True) → committed User."""

    def _make(email, full_name=None, badge=False):
        user = User(email=email, password_hash=_password_hash, full_name=full_name)
        _db.session.add(user)
        _db.session.flush()
        if badge:
            _db.session.add(AdminBadge(user_id=user.id, granted_by=user.id))
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def auth_headers():
    """Factory: auth_headers(user) → Authorization header dict."""

    def _headers(user):
        token = generate_access_token(user.id, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def owner(make_user):
    return make_user("founder@acme.io", full_name="Funmi Founder")


@pytest.fixture()
def admin(make_user):
    return make_user("reviewer@acme.io", full_name="Remi Reviewer", badge=True)


@pytest.fixture()
def outsider(make_user):
    return make_user("stranger@elsewhere.io", full_name="Sam Stranger")


@pytest.fixture()
def startup(owner):
    s = Startup(
        user_id=owner.id,
        name="SolarGrid",
        description="Off-grid solar for rural clinics",
        pitch="Reliable power where the grid never arrives.",
        website_url="https://solargrid.example.com",
        bank_name="First Bank",
        bank_account="0123456789",
        bank_account_name="SolarGrid Ltd",
    )
    _db.session.add(s)
    _db.session.commit()
    return s
