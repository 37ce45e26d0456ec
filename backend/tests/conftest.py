"""
Pytest fixtures for field visits backend tests.

Provides test database setup, catalog/route fixtures, and test client.
"""

import pytest

from fieldvisits import create_app
from fieldvisits.extensions import db
from fieldvisits.models import Product, Role, Store, User
from fieldvisits.services import session_service
from fieldvisits.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    root = tmp_path_factory.mktemp("fieldvisits")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_FOLDER': str(root / "uploads"),
        'QR_FOLDER': str(root / "qr"),
        'QR_CONTENT_PATH': "http://test.local/store-visit?store=",
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def evidence_root(app, tmp_path, monkeypatch):
    """Per-test photo directory."""
    folder = tmp_path / "evidence"
    monkeypatch.setitem(app.config, "UPLOAD_FOLDER", str(folder))
    return folder


@pytest.fixture(scope='function')
def qr_root(app, tmp_path, monkeypatch):
    """Per-test QR image directory."""
    folder = tmp_path / "qr"
    monkeypatch.setitem(app.config, "QR_FOLDER", str(folder))
    return folder


def make_user(db_session, *, name="Ana Agent", email="ana@example.com", role=Role.USER.value) -> User:
    user = User(name=name, email=email, password_hash=hash_password(PASSWORD), role=role)
    db_session.add(user)
    db_session.commit()
    return user


def make_store(db_session, *, name="Main Street Market", address="1 Main St") -> Store:
    store = Store(name=name, address=address, latitude=4.6097, longitude=-74.0817)
    db_session.add(store)
    db_session.commit()
    return store


def make_product(db_session, *, name="Coffee 500g", base_price_cents=1000) -> Product:
    product = Product(name=name, description=f"{name} bag", base_price_cents=base_price_cents)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def agent(db_session):
    """Field agent with an empty route."""
    return make_user(db_session)


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, name="Root Admin", email="admin@example.com", role=Role.ADMIN.value)


@pytest.fixture(scope='function')
def store(db_session):
    return make_store(db_session)


@pytest.fixture(scope='function')
def other_store(db_session):
    return make_store(db_session, name="Harbor Corner Shop", address="9 Dock Rd")


@pytest.fixture(scope='function')
def product(db_session):
    return make_product(db_session)


@pytest.fixture(scope='function')
def routed_agent(db_session, agent, store):
    """Agent whose route contains ``store``."""
    agent.stores.append(store)
    db_session.commit()
    return agent


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin):
    _session, token = session_service.issue_token(admin)
    return auth_headers(token)


@pytest.fixture(scope='function')
def agent_headers(agent):
    _session, token = session_service.issue_token(agent)
    return auth_headers(token)
